"""Batch validation options and results."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from record_validator.models.validation import DocumentResult, utcnow


class BatchStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class BatchPriority(str, Enum):
    SPEED = "speed"
    ACCURACY = "accuracy"
    BALANCED = "balanced"


class BatchOptions(BaseModel):
    """Which documents to validate and how."""
    validate_all: bool = False
    selected_categories: List[str] = Field(default_factory=list)
    selected_document_ids: List[str] = Field(default_factory=list)
    max_concurrency: int = Field(default=3, ge=1, le=10)
    priority: BatchPriority = BatchPriority.BALANCED


@dataclass
class BatchSummary:
    total_files: int = 0
    completed_files: int = 0
    failed_files: int = 0
    cancelled_files: int = 0
    total_errors: int = 0
    total_warnings: int = 0
    total_info: int = 0
    processing_time_seconds: float = 0.0

    @property
    def settled_files(self) -> int:
        return self.completed_files + self.failed_files + self.cancelled_files

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_files": self.total_files,
            "completed_files": self.completed_files,
            "failed_files": self.failed_files,
            "cancelled_files": self.cancelled_files,
            "total_errors": self.total_errors,
            "total_warnings": self.total_warnings,
            "total_info": self.total_info,
            "processing_time_seconds": round(self.processing_time_seconds, 3),
        }


@dataclass
class BatchResult:
    batch_id: str
    session_id: str
    document_ids: List[str]
    options: BatchOptions
    status: BatchStatus = BatchStatus.PENDING
    progress: int = 0
    results: Dict[str, DocumentResult] = field(default_factory=dict)
    summary: BatchSummary = field(default_factory=BatchSummary)
    started_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    estimated_completion_time: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (BatchStatus.COMPLETED, BatchStatus.FAILED, BatchStatus.CANCELLED)

    def to_dict(self, include_findings: bool = False) -> Dict[str, Any]:
        results = {}
        for document_id, result in self.results.items():
            payload = result.to_dict()
            if not include_findings:
                payload.pop("errors")
                payload.pop("warnings")
                payload.pop("info")
            results[document_id] = payload

        return {
            "batch_id": self.batch_id,
            "session_id": self.session_id,
            "document_ids": list(self.document_ids),
            "status": self.status.value,
            "progress": self.progress,
            "results": results,
            "summary": self.summary.to_dict(),
            "options": self.options.model_dump(mode="json"),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "estimated_completion_time": (
                self.estimated_completion_time.isoformat() if self.estimated_completion_time else None
            ),
        }
