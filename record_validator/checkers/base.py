"""
Rule checker contract - every checker inspects one cell's text with its context.
Checkers never mutate the context and return an empty list when nothing is wrong.
"""
import re
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, List, Optional, Sequence

from record_validator.core.config import Settings, get_settings
from record_validator.core.logging import get_logger
from record_validator.models.corpus import CorpusEntry, SimilarityResult
from record_validator.models.validation import (
    CellContext,
    DuplicateReference,
    Finding,
    FindingKind,
    HighlightRange,
    Severity,
)
from record_validator.services.similarity import SimilarityEngine

if TYPE_CHECKING:
    from record_validator.services.corpus_store import CorpusStore

HANGUL_CLASS = "\u1100-\u11FF\u3130-\u318F\uAC00-\uD7AF"
HANGUL_RE = re.compile(f"[{HANGUL_CLASS}]")
NON_HANGUL_RE = re.compile(f"[^{HANGUL_CLASS}]")
LATIN_RE = re.compile(r"[A-Za-z]")
WHITESPACE_RE = re.compile(r"\s+")

DATE_TIME_PATTERNS = [
    re.compile(r"^\d{4}-\d{2}-\d{2}$"),
    re.compile(r"^\d{4}\.\d{2}\.\d{2}$"),
    re.compile(r"^\d{4}/\d{2}/\d{2}$"),
    re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$"),
]


class RuleChecker(ABC):
    """Base class for all rule checkers."""

    kind: FindingKind
    name: str = ""

    def __init__(self):
        self.logger = get_logger(self.__class__.__module__, checker=self.name)

    @abstractmethod
    async def check(self, text: str, context: CellContext) -> List[Finding]:
        """Return the findings for one cell."""

    def should_apply(self, context: CellContext) -> bool:
        """Checkers restricted to some sections override this."""
        return True

    def create_finding(
        self,
        message: str,
        rule: str,
        severity: Severity = Severity.ERROR,
        original_text: str = "",
        suggestion: Optional[str] = None,
        confidence: Optional[float] = None,
        highlight: Optional[HighlightRange] = None,
        duplicate_of: Optional[DuplicateReference] = None,
    ) -> Finding:
        # location is left empty; the orchestrator fills it in
        return Finding(
            kind=self.kind,
            severity=severity,
            message=message,
            rule=rule,
            original_text=original_text,
            suggestion=suggestion,
            confidence=confidence,
            highlight=highlight,
            duplicate_of=duplicate_of,
        )

    @staticmethod
    def highlight_for(text: str, start: int, end: int, radius: int = 15) -> HighlightRange:
        return HighlightRange(
            start=start,
            end=end,
            context_before=text[max(0, start - radius):start],
            context_after=text[end:end + radius],
        )

    @staticmethod
    def is_korean_text(text: str) -> bool:
        return bool(HANGUL_RE.search(text))

    @staticmethod
    def is_english_text(text: str) -> bool:
        return bool(LATIN_RE.search(text))

    @staticmethod
    def korean_ratio(text: str) -> float:
        if not text:
            return 0.0
        return len(HANGUL_RE.findall(text)) / len(text)

    @staticmethod
    def count_words(text: str) -> int:
        return len(text.split())

    @staticmethod
    def normalize_whitespace(text: str) -> str:
        return WHITESPACE_RE.sub(" ", text).strip()

    @staticmethod
    def is_only_numbers(text: str) -> bool:
        return bool(re.fullmatch(r"\d+", text.strip()))

    @staticmethod
    def is_date_time(text: str) -> bool:
        stripped = text.strip()
        return any(p.match(stripped) for p in DATE_TIME_PATTERNS)

    def __repr__(self):
        return f"<{self.__class__.__name__} name={self.name}>"


class CorpusChecker(RuleChecker):
    """
    Base for checkers that compare a cell against previously registered text.

    Subclasses qualify the cell, compare it against their group in the shared
    corpus store and register the cell after comparison.
    """

    registry: str = ""

    def __init__(
        self,
        corpus_store: "CorpusStore",
        engine: Optional[SimilarityEngine] = None,
        settings: Optional[Settings] = None,
    ):
        super().__init__()
        self.settings = settings or get_settings()
        self.corpus = corpus_store
        self.engine = engine or SimilarityEngine.from_settings(self.settings)

    def make_entry(self, text: str, context: CellContext, group_key: str, normalized: str = "") -> CorpusEntry:
        return CorpusEntry(
            registry=self.registry,
            group_key=group_key,
            document_id=context.document_id,
            location=context.location,
            text=text,
            normalized=normalized or self.normalize_whitespace(text).lower(),
            owner=context.owner,
            section=context.section_key,
            section_type=context.section_type,
            word_count=self.count_words(text),
        )

    @staticmethod
    def is_same_cell(entry: CorpusEntry, context: CellContext) -> bool:
        return entry.cell_identity == (context.document_id, context.location.reference)

    @staticmethod
    def reference_to(
        entry: CorpusEntry,
        similarity: SimilarityResult,
        match_type: str = "similar",
        affected_owners: Sequence[str] = (),
    ) -> DuplicateReference:
        return DuplicateReference(
            location=entry.location,
            similarity=similarity.weighted,
            owner=entry.owner,
            section=entry.section,
            matched_text=similarity.longest_common_substring,
            matched_words=similarity.matched_words,
            match_type=match_type,
            affected_owners=tuple(affected_owners),
        )

    @staticmethod
    def percentage(score: float) -> int:
        return int(score * 100 + 0.5)
