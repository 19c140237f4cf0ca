"""Normalized document structures handed over by the upstream spreadsheet parser."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class SectionType(str, Enum):
    """NEIS school-record sections."""
    ACADEMIC_REGISTRY = "학적사항"
    ATTENDANCE = "출결상황"
    AWARDS = "수상경력"
    CERTIFICATIONS = "자격증및인증취득상황"
    CREATIVE_ACTIVITIES = "창의적체험활동상황"
    VOLUNTEER = "봉사활동"
    CLUB = "동아리활동"
    AUTONOMOUS = "자율활동"
    CAREER = "진로활동"
    SUBJECT_DEVELOPMENT = "교과학습발달상황"
    READING = "독서활동상황"
    BEHAVIOR_OPINION = "행동특성및종합의견"
    OVERALL_OPINION = "종합의견"
    SPECIAL_NOTES = "특기사항"
    PHYSICAL = "신체발달상황"
    GENERAL = "general"

    @classmethod
    def from_name(cls, name: Optional[str]) -> "SectionType":
        """Map a free-form section title onto the taxonomy.

        Exact values win; otherwise the longest known value contained in the
        title is used, so "행동특성및종합의견(2학년)" resolves to
        BEHAVIOR_OPINION rather than OVERALL_OPINION.
        """
        if not name:
            return cls.GENERAL
        compact = "".join(name.split())
        for member in cls:
            if member.value == compact:
                return member

        candidates = [m for m in cls if m is not cls.GENERAL and m.value in compact]
        if not candidates:
            return cls.GENERAL
        return max(candidates, key=lambda m: len(m.value))

    @property
    def risk_tier(self) -> "RiskTier":
        return SECTION_RISK_TIERS.get(self, RiskTier.UNCLASSIFIED)

    @property
    def comparison_group(self) -> str:
        """Key of the merged group of related sections compared together."""
        for group_name, members in RELATED_SECTION_GROUPS.items():
            if self in members:
                return group_name
        return self.value


class RiskTier(str, Enum):
    """How sensitive a section is to text shared between students."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    EXCLUDED = "excluded"
    UNCLASSIFIED = "unclassified"


SECTION_RISK_TIERS: Dict[SectionType, RiskTier] = {
    SectionType.BEHAVIOR_OPINION: RiskTier.HIGH,
    SectionType.OVERALL_OPINION: RiskTier.HIGH,
    SectionType.SPECIAL_NOTES: RiskTier.HIGH,
    SectionType.CREATIVE_ACTIVITIES: RiskTier.HIGH,
    SectionType.VOLUNTEER: RiskTier.HIGH,
    SectionType.CLUB: RiskTier.HIGH,
    SectionType.READING: RiskTier.MEDIUM,
    SectionType.AUTONOMOUS: RiskTier.MEDIUM,
    SectionType.CAREER: RiskTier.MEDIUM,
    SectionType.AWARDS: RiskTier.LOW,
    SectionType.CERTIFICATIONS: RiskTier.LOW,
    SectionType.SUBJECT_DEVELOPMENT: RiskTier.LOW,
    SectionType.ACADEMIC_REGISTRY: RiskTier.EXCLUDED,
    SectionType.ATTENDANCE: RiskTier.EXCLUDED,
    SectionType.PHYSICAL: RiskTier.EXCLUDED,
}

RELATED_SECTION_GROUPS: Dict[str, frozenset] = {
    "experiential_activities": frozenset({
        SectionType.CREATIVE_ACTIVITIES,
        SectionType.VOLUNTEER,
        SectionType.CLUB,
        SectionType.AUTONOMOUS,
        SectionType.CAREER,
    }),
    "comprehensive_opinion": frozenset({
        SectionType.BEHAVIOR_OPINION,
        SectionType.OVERALL_OPINION,
        SectionType.SPECIAL_NOTES,
    }),
    "learning_records": frozenset({
        SectionType.READING,
        SectionType.SUBJECT_DEVELOPMENT,
    }),
}


class DocumentFormat(str, Enum):
    NEIS = "neis"
    GENERIC = "generic"


class DocumentRecordStatus(str, Enum):
    """Status of an uploaded document in the session registry."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def cell_text(value: Any) -> str:
    """Stripped text of a cell value; empty string for blank cells."""
    if value is None:
        return ""
    return str(value).strip()


@dataclass
class SectionData:
    title: str
    section_type: SectionType = SectionType.GENERAL
    start_row: int = 0
    end_row: int = 0
    headers: List[str] = field(default_factory=list)
    content_rows: List[List[Any]] = field(default_factory=list)

    def __post_init__(self):
        if self.section_type is SectionType.GENERAL:
            self.section_type = SectionType.from_name(self.title)


@dataclass
class StudentInfo:
    name: str = ""
    student_number: Optional[str] = None
    class_name: Optional[str] = None
    grade: Optional[str] = None
    school: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or "미상"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "student_number": self.student_number,
            "class_name": self.class_name,
            "grade": self.grade,
            "school": self.school,
        }


@dataclass
class StudentRecord:
    info: StudentInfo
    sections: Dict[str, SectionData] = field(default_factory=dict)


@dataclass
class SheetData:
    name: str
    rows: List[List[Any]] = field(default_factory=list)


@dataclass
class RecordDocument:
    """One parsed spreadsheet, either NEIS student records or generic sheets."""
    document_id: str
    file_name: str
    format: DocumentFormat = DocumentFormat.GENERIC
    category: str = "general"
    students: List[StudentRecord] = field(default_factory=list)
    sheets: List[SheetData] = field(default_factory=list)
    total_cells: Optional[int] = None

    def __post_init__(self):
        if self.total_cells is None:
            self.total_cells = self.count_cells()

    def count_cells(self) -> int:
        """Number of non-empty cells the traversal will visit."""
        if self.format == DocumentFormat.NEIS:
            return sum(
                1
                for student in self.students
                for section in student.sections.values()
                for row in section.content_rows
                for value in row
                if cell_text(value)
            )
        return sum(
            1
            for sheet in self.sheets
            for row in sheet.rows
            for value in row
            if cell_text(value)
        )


@dataclass
class DocumentRecord:
    """Registry row for an uploaded document within a session."""
    document: RecordDocument
    session_id: str
    status: DocumentRecordStatus = DocumentRecordStatus.PENDING
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_validation_id: Optional[str] = None

    @property
    def document_id(self) -> str:
        return self.document.document_id

    @property
    def category(self) -> str:
        return self.document.category

    def to_dict(self) -> Dict[str, Any]:
        return {
            "document_id": self.document_id,
            "session_id": self.session_id,
            "file_name": self.document.file_name,
            "format": self.document.format.value,
            "category": self.category,
            "status": self.status.value,
            "total_cells": self.document.total_cells,
            "uploaded_at": self.uploaded_at.isoformat(),
            "last_validation_id": self.last_validation_id,
        }
