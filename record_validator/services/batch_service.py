"""
Batch validation service - validates many documents of a session in
bounded-concurrency chunks, one corpus store per batch.
"""
from __future__ import annotations

import asyncio
import math
import time
from collections import defaultdict
from datetime import timedelta
from typing import Any, Dict, List, Optional, Set
from uuid import uuid4

from record_validator.core.config import Settings
from record_validator.core.errors import BatchStartError
from record_validator.core.logging import LogEvent
from record_validator.models.batch import BatchOptions, BatchResult, BatchStatus
from record_validator.models.document import DocumentRecord, DocumentRecordStatus
from record_validator.models.validation import DocumentResult, DocumentStatus, utcnow
from record_validator.repositories.documents import DocumentRepository
from record_validator.services.base_service import BaseService
from record_validator.services.corpus_store import CorpusStore
from record_validator.services.validation_service import ValidationService

ELIGIBLE_STATUSES = (DocumentRecordStatus.PENDING, DocumentRecordStatus.FAILED)


class BatchValidationService(BaseService):
    """
    Batch coordinator.

    Each batch gets its own CorpusStore so cross-student and cross-section
    matches are found among the batch's documents.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        documents: Optional[DocumentRepository] = None,
        validation_service: Optional[ValidationService] = None,
    ):
        super().__init__(settings)
        self.documents = documents or DocumentRepository()
        self.validation_service = validation_service or ValidationService(self.settings)
        self._batches: Dict[str, BatchResult] = {}
        self._stores: Dict[str, CorpusStore] = {}
        self._cancelled: Set[str] = set()
        self._tasks: Dict[str, asyncio.Task] = {}

    # ------------------------------------------------------------------
    # Starting
    # ------------------------------------------------------------------

    async def start_batch(self, session_id: str, options: BatchOptions) -> str:
        """Resolve the target documents and schedule the batch. Returns the batch id."""
        records = await self._resolve_targets(session_id, options)
        if not records:
            raise BatchStartError("No files selected for validation", session_id)

        batch_id = uuid4().hex
        batch = BatchResult(
            batch_id=batch_id,
            session_id=session_id,
            document_ids=[record.document_id for record in records],
            options=options,
        )
        batch.summary.total_files = len(records)
        self._batches[batch_id] = batch
        self._stores[batch_id] = CorpusStore(self.settings)

        self.logger.info(
            LogEvent.BATCH_STARTED,
            batch_id=batch_id,
            session_id=session_id,
            total_files=len(records),
            max_concurrency=options.max_concurrency,
            priority=options.priority.value,
        )

        task = asyncio.create_task(self._run_batch(batch, records))
        self._tasks[batch_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(batch_id, None))
        return batch_id

    async def validate_category(self, session_id: str, category: str, **options: Any) -> str:
        options.setdefault("max_concurrency", self.settings.batch_default_concurrency)
        return await self.start_batch(session_id, BatchOptions(selected_categories=[category], **options))

    async def validate_all(self, session_id: str, **options: Any) -> str:
        options.setdefault("max_concurrency", self.settings.batch_default_concurrency)
        return await self.start_batch(session_id, BatchOptions(validate_all=True, **options))

    async def _resolve_targets(self, session_id: str, options: BatchOptions) -> List[DocumentRecord]:
        if options.validate_all:
            records = await self.documents.list_by_session(session_id)
        elif options.selected_document_ids:
            wanted = set(options.selected_document_ids)
            records = [
                record
                for record in await self.documents.list_by_session(session_id)
                if record.document_id in wanted
            ]
        elif options.selected_categories:
            records = []
            for category in options.selected_categories:
                records.extend(await self.documents.list_by_category(session_id, category))
        else:
            records = []

        return [record for record in records if record.status in ELIGIBLE_STATUSES]

    # ------------------------------------------------------------------
    # Processing
    # ------------------------------------------------------------------

    async def _run_batch(self, batch: BatchResult, records: List[DocumentRecord]):
        if batch.status == BatchStatus.PENDING:
            batch.status = BatchStatus.PROCESSING
        started = time.monotonic()
        durations: List[float] = []
        chunk_size = batch.options.max_concurrency

        try:
            for offset in range(0, len(records), chunk_size):
                if self._is_cancelled(batch.batch_id):
                    break
                chunk = records[offset:offset + chunk_size]
                outcomes = await asyncio.gather(
                    *(self._run_document(batch, record, durations) for record in chunk),
                    return_exceptions=True,
                )
                for record, outcome in zip(chunk, outcomes):
                    if isinstance(outcome, BaseException):
                        await self._record_exception(batch, record, outcome)

            if self._is_cancelled(batch.batch_id):
                self._settle_skipped(batch)
            else:
                batch.status = BatchStatus.COMPLETED
                batch.progress = 100
                batch.completed_at = utcnow()
                self.logger.info(
                    LogEvent.BATCH_COMPLETED,
                    batch_id=batch.batch_id,
                    completed=batch.summary.completed_files,
                    failed=batch.summary.failed_files,
                    errors=batch.summary.total_errors,
                    warnings=batch.summary.total_warnings,
                )
        except Exception as e:
            batch.status = BatchStatus.FAILED
            batch.completed_at = utcnow()
            self.logger.error(LogEvent.BATCH_FAILED, batch_id=batch.batch_id, error=str(e), exc_info=True)
        finally:
            batch.summary.processing_time_seconds = time.monotonic() - started

    async def _run_document(self, batch: BatchResult, record: DocumentRecord, durations: List[float]):
        if self._is_cancelled(batch.batch_id):
            return

        document_id = record.document_id
        started = time.monotonic()
        await self.documents.update_status(document_id, DocumentRecordStatus.PROCESSING, validation_id=document_id)

        self.validation_service.register(record.document)
        if self._is_cancelled(batch.batch_id):
            # register() cleared any flag set while the status update was pending
            self.validation_service.cancel(document_id)
        result = await self.validation_service.validate(document_id, self._stores[batch.batch_id])

        durations.append(time.monotonic() - started)
        self._record_result(batch, result)

        if result.status == DocumentStatus.COMPLETED:
            await self.documents.update_status(document_id, DocumentRecordStatus.COMPLETED)
        elif result.status == DocumentStatus.FAILED:
            await self.documents.update_status(document_id, DocumentRecordStatus.FAILED)
        else:
            await self.documents.update_status(document_id, DocumentRecordStatus.PENDING)

        self._update_progress(batch, durations)

    def _record_result(self, batch: BatchResult, result: DocumentResult):
        batch.results[result.id] = result
        summary = batch.summary
        summary.total_errors += result.summary.error_count
        summary.total_warnings += result.summary.warning_count
        summary.total_info += result.summary.info_count

        if result.status == DocumentStatus.COMPLETED:
            summary.completed_files += 1
        elif result.status == DocumentStatus.CANCELLED:
            summary.cancelled_files += 1
        else:
            summary.failed_files += 1
            self.logger.warning(
                LogEvent.BATCH_DOCUMENT_FAILED,
                batch_id=batch.batch_id,
                document_id=result.id,
                error=result.error_message,
            )

    async def _record_exception(self, batch: BatchResult, record: DocumentRecord, error: BaseException):
        batch.summary.failed_files += 1
        await self.documents.update_status(record.document_id, DocumentRecordStatus.FAILED)
        self.logger.warning(
            LogEvent.BATCH_DOCUMENT_FAILED,
            batch_id=batch.batch_id,
            document_id=record.document_id,
            error=str(error),
        )
        self._update_progress(batch)

    def _settle_skipped(self, batch: BatchResult):
        """Count documents never started because the batch was cancelled."""
        summary = batch.summary
        untouched = summary.total_files - summary.settled_files
        if untouched > 0:
            summary.cancelled_files += untouched

    def _update_progress(self, batch: BatchResult, durations: Optional[List[float]] = None):
        summary = batch.summary
        if not summary.total_files:
            return
        progress = math.floor(summary.settled_files / summary.total_files * 100)
        batch.progress = max(batch.progress, progress)

        remaining = summary.total_files - summary.settled_files
        if durations:
            average = sum(durations) / len(durations)
            batch.estimated_completion_time = utcnow() + timedelta(seconds=average * remaining)

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel_batch(self, batch_id: str) -> bool:
        batch = self._batches.get(batch_id)
        if batch is None or batch.status in (BatchStatus.COMPLETED, BatchStatus.FAILED):
            return False
        if batch.status == BatchStatus.CANCELLED:
            return True

        self._cancelled.add(batch_id)
        batch.status = BatchStatus.CANCELLED
        batch.completed_at = utcnow()
        for document_id in batch.document_ids:
            self.validation_service.cancel(document_id)

        self.logger.info(LogEvent.BATCH_CANCELLED, batch_id=batch_id, progress=batch.progress)
        return True

    def _is_cancelled(self, batch_id: str) -> bool:
        return batch_id in self._cancelled

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_batch_result(self, batch_id: str) -> Optional[BatchResult]:
        return self._batches.get(batch_id)

    def get_session_batches(self, session_id: str) -> List[BatchResult]:
        batches = [batch for batch in self._batches.values() if batch.session_id == session_id]
        return sorted(batches, key=lambda batch: batch.started_at, reverse=True)

    async def get_category_stats(self, batch_id: str) -> Dict[str, Dict[str, Any]]:
        """Per-category totals for the documents of one batch."""
        batch = self._batches.get(batch_id)
        if batch is None:
            return {}

        stats: Dict[str, Dict[str, Any]] = defaultdict(
            lambda: {"total_files": 0, "completed_files": 0, "total_errors": 0, "total_warnings": 0}
        )
        for document_id in batch.document_ids:
            record = await self.documents.get(document_id)
            category = record.category if record else "unknown"
            entry = stats[category]
            entry["total_files"] += 1

            result = batch.results.get(document_id)
            if result is None:
                continue
            if result.status == DocumentStatus.COMPLETED:
                entry["completed_files"] += 1
            entry["total_errors"] += result.summary.error_count
            entry["total_warnings"] += result.summary.warning_count

        for entry in stats.values():
            files = entry["total_files"]
            entry["average_errors_per_file"] = round(entry["total_errors"] / files, 2) if files else 0.0
            entry["average_warnings_per_file"] = round(entry["total_warnings"] / files, 2) if files else 0.0
        return dict(stats)

    def cleanup_old_batches(self, max_age_hours: Optional[int] = None) -> int:
        """Forget finished batches older than max_age_hours. Returns the number removed."""
        hours = max_age_hours if max_age_hours is not None else self.settings.result_retention_hours
        cutoff = utcnow() - timedelta(hours=hours)
        stale = [
            batch_id
            for batch_id, batch in self._batches.items()
            if batch.is_terminal and batch.started_at < cutoff
        ]
        for batch_id in stale:
            self._batches.pop(batch_id, None)
            self._stores.pop(batch_id, None)
            self._cancelled.discard(batch_id)
        return len(stale)

    def get_service_stats(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in BatchStatus}
        for batch in self._batches.values():
            counts[batch.status.value] += 1
        return {
            "total_batches": len(self._batches),
            "active_batches": counts[BatchStatus.PENDING.value] + counts[BatchStatus.PROCESSING.value],
            "completed_batches": counts[BatchStatus.COMPLETED.value],
            "failed_batches": counts[BatchStatus.FAILED.value],
            "cancelled_batches": counts[BatchStatus.CANCELLED.value],
        }

    def corpus_for(self, batch_id: str) -> Optional[CorpusStore]:
        return self._stores.get(batch_id)

    async def wait(self, batch_id: str):
        """Await the batch task if it is still running."""
        task = self._tasks.get(batch_id)
        if task is not None:
            await asyncio.gather(task, return_exceptions=True)
