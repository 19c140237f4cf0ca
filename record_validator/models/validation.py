"""Findings, cell contexts and per-document validation results."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional
from uuid import uuid4

from record_validator.models.document import SectionType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Severity(str, Enum):
    """Finding severity: blocking, advisory or informational."""
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FindingKind(str, Enum):
    KOREAN_ENGLISH = "korean_english"
    INSTITUTION_NAME = "institution_name"
    KEYWORD_PROHIBITION = "keyword_prohibition"
    GRAMMAR = "grammar"
    FORMAT = "format"
    DATE_PATTERN = "date_pattern"
    DUPLICATE_DETECTION = "duplicate_detection"
    CROSS_SECTION_DUPLICATE = "cross_section_duplicate"
    CROSS_STUDENT_DUPLICATE = "cross_student_duplicate"
    SENTENCE_DUPLICATE = "sentence_duplicate"
    SEMANTIC_REVIEW = "semantic_review"
    SYSTEM = "system"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset({
    DocumentStatus.COMPLETED,
    DocumentStatus.FAILED,
    DocumentStatus.CANCELLED,
})


@dataclass(frozen=True)
class CellLocation:
    sheet: str
    row: int
    column: str
    cell: str

    @property
    def reference(self) -> str:
        return f"{self.sheet}!{self.cell}"

    def to_dict(self) -> Dict[str, Any]:
        return {"sheet": self.sheet, "row": self.row, "column": self.column, "cell": self.cell}


@dataclass(frozen=True)
class AdjacentCells:
    left: Optional[str] = None
    right: Optional[str] = None
    above: Optional[str] = None
    below: Optional[str] = None


@dataclass(frozen=True)
class CellContext:
    """Everything a checker may know about the cell it inspects.

    Built fresh for each cell by the orchestrator and never mutated.
    """
    document_id: str
    sheet: str
    row: int
    column: str
    cell: str
    section_name: Optional[str] = None
    section_type: SectionType = SectionType.GENERAL
    owner: Optional[str] = None
    owner_info: Optional[Mapping[str, Any]] = None
    adjacent: Optional[AdjacentCells] = None
    is_header_row: bool = False
    is_content_row: bool = False

    @property
    def location(self) -> CellLocation:
        return CellLocation(sheet=self.sheet, row=self.row, column=self.column, cell=self.cell)

    @property
    def section_key(self) -> str:
        return self.section_name or self.sheet or "general"


@dataclass(frozen=True)
class HighlightRange:
    start: int
    end: int
    context_before: str = ""
    context_after: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "start": self.start,
            "end": self.end,
            "context_before": self.context_before,
            "context_after": self.context_after,
        }


@dataclass(frozen=True)
class DuplicateReference:
    """Cross-reference from a duplicate finding to the text it matched."""
    location: CellLocation
    similarity: float
    owner: Optional[str] = None
    section: Optional[str] = None
    matched_text: str = ""
    matched_words: tuple = ()
    match_type: str = "similar"
    affected_owners: tuple = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location.to_dict(),
            "reference": self.location.reference,
            "similarity": round(self.similarity, 4),
            "owner": self.owner,
            "section": self.section,
            "matched_text": self.matched_text,
            "matched_words": list(self.matched_words),
            "match_type": self.match_type,
            "affected_owners": list(self.affected_owners),
        }


@dataclass
class Finding:
    kind: FindingKind
    severity: Severity
    message: str
    rule: str
    original_text: str = ""
    location: Optional[CellLocation] = None
    suggestion: Optional[str] = None
    confidence: Optional[float] = None
    highlight: Optional[HighlightRange] = None
    duplicate_of: Optional[DuplicateReference] = None
    id: str = field(default_factory=lambda: uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind.value,
            "severity": self.severity.value,
            "message": self.message,
            "rule": self.rule,
            "original_text": self.original_text,
            "location": self.location.to_dict() if self.location else None,
            "suggestion": self.suggestion,
            "confidence": self.confidence,
            "highlight": self.highlight.to_dict() if self.highlight else None,
            "duplicate_of": self.duplicate_of.to_dict() if self.duplicate_of else None,
        }


@dataclass
class ValidationSummary:
    total_cells: int = 0
    checked_cells: int = 0
    error_count: int = 0
    warning_count: int = 0
    info_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_cells": self.total_cells,
            "checked_cells": self.checked_cells,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
        }


@dataclass
class DocumentResult:
    """Aggregate validation outcome for one document."""
    id: str
    file_name: str
    status: DocumentStatus = DocumentStatus.PENDING
    progress: int = 0
    errors: List[Finding] = field(default_factory=list)
    warnings: List[Finding] = field(default_factory=list)
    info: List[Finding] = field(default_factory=list)
    summary: ValidationSummary = field(default_factory=ValidationSummary)
    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    error_message: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def add(self, finding: Finding) -> None:
        """File a finding into its severity bucket and refresh the counts."""
        if finding.severity == Severity.ERROR:
            self.errors.append(finding)
        elif finding.severity == Severity.WARNING:
            self.warnings.append(finding)
        else:
            self.info.append(finding)
        self.summary.error_count = len(self.errors)
        self.summary.warning_count = len(self.warnings)
        self.summary.info_count = len(self.info)

    def findings(self) -> List[Finding]:
        return [*self.errors, *self.warnings, *self.info]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "file_name": self.file_name,
            "status": self.status.value,
            "progress": self.progress,
            "errors": [f.to_dict() for f in self.errors],
            "warnings": [f.to_dict() for f in self.warnings],
            "info": [f.to_dict() for f in self.info],
            "summary": self.summary.to_dict(),
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "error_message": self.error_message,
        }
