from record_validator.models.batch import (
    BatchOptions,
    BatchPriority,
    BatchResult,
    BatchStatus,
    BatchSummary,
)
from record_validator.models.corpus import CorpusEntry, SentenceEntry, SimilarityResult
from record_validator.models.document import (
    DocumentFormat,
    DocumentRecord,
    DocumentRecordStatus,
    RecordDocument,
    RiskTier,
    SectionData,
    SectionType,
    SheetData,
    StudentInfo,
    StudentRecord,
)
from record_validator.models.validation import (
    AdjacentCells,
    CellContext,
    CellLocation,
    DocumentResult,
    DocumentStatus,
    DuplicateReference,
    Finding,
    FindingKind,
    HighlightRange,
    Severity,
    ValidationSummary,
)

__all__ = [
    "AdjacentCells",
    "BatchOptions",
    "BatchPriority",
    "BatchResult",
    "BatchStatus",
    "BatchSummary",
    "CellContext",
    "CellLocation",
    "CorpusEntry",
    "DocumentFormat",
    "DocumentRecord",
    "DocumentRecordStatus",
    "DocumentResult",
    "DocumentStatus",
    "DuplicateReference",
    "Finding",
    "FindingKind",
    "HighlightRange",
    "RecordDocument",
    "RiskTier",
    "SectionData",
    "SectionType",
    "SentenceEntry",
    "SheetData",
    "Severity",
    "SimilarityResult",
    "StudentInfo",
    "StudentRecord",
    "ValidationSummary",
]
