"""Similarity results and corpus entries used by the duplicate checkers."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple
from uuid import uuid4

from record_validator.models.document import SectionType
from record_validator.models.validation import CellLocation, utcnow


@dataclass(frozen=True)
class SimilarityResult:
    jaccard: float
    lcs: float
    edit: float
    weighted: float
    longest_common_substring: str = ""
    matched_words: Tuple[str, ...] = ()


@dataclass(slots=True)
class CorpusEntry:
    """A registered text fragment."""
    registry: str
    group_key: str
    document_id: str
    location: CellLocation
    text: str
    normalized: str
    owner: Optional[str] = None
    section: Optional[str] = None
    section_type: SectionType = SectionType.GENERAL
    word_count: int = 0
    created_at: datetime = field(default_factory=utcnow)
    entry_id: str = field(default_factory=lambda: uuid4().hex)

    @property
    def cell_identity(self) -> Tuple[str, str]:
        return (self.document_id, self.location.reference)


@dataclass(slots=True)
class SentenceEntry:
    sentence: str
    normalized: str
    document_id: str
    location: CellLocation
    owner: Optional[str] = None
    section: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @property
    def cell_identity(self) -> Tuple[str, str]:
        return (self.document_id, self.location.reference)
