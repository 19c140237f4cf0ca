"""
Validation service - walks every non-empty cell of a document through the
ordered rule checkers and aggregates the findings into a DocumentResult.
"""
from __future__ import annotations

import asyncio
import weakref
from datetime import timedelta
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set

from record_validator.checkers import RuleChecker, build_checkers
from record_validator.core.config import Settings
from record_validator.core.errors import ResourceNotFoundError, ValidationRunError
from record_validator.core.logging import LogEvent
from record_validator.models.document import (
    DocumentFormat,
    RecordDocument,
    RiskTier,
    SectionData,
    StudentRecord,
    cell_text,
)
from record_validator.models.validation import (
    AdjacentCells,
    CellContext,
    CellLocation,
    DocumentResult,
    DocumentStatus,
    Finding,
    FindingKind,
    Severity,
    ValidationSummary,
    utcnow,
)
from record_validator.repositories.redis import ResultCache
from record_validator.services.base_service import BaseService
from record_validator.services.corpus_store import CorpusStore

CheckerFactory = Callable[[CorpusStore], List[RuleChecker]]


class ValidationCancelled(Exception):
    """Raised inside the traversal when the document's cancel flag is observed."""


def column_letter(index: int) -> str:
    """Spreadsheet column name for a 1-based index: 1 -> A, 27 -> AA."""
    letters = ""
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        letters = chr(65 + remainder) + letters
    return letters


def _neighbour(row: Sequence, index: int) -> Optional[str]:
    if 0 <= index < len(row):
        return cell_text(row[index]) or None
    return None


class ValidationService(BaseService):
    """
    Cell traversal orchestrator.

    Features:
    - pending -> processing -> completed | failed | cancelled state machine
    - cooperative cancellation polled per row (per cell in high-risk sections)
    - checker failures are logged and treated as zero findings
    - optional Redis cache for finished results
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        corpus_store: Optional[CorpusStore] = None,
        checkers: Optional[List[RuleChecker]] = None,
        checker_factory: Optional[CheckerFactory] = None,
        result_cache: Optional[ResultCache] = None,
    ):
        super().__init__(settings)
        self.corpus_store = corpus_store or CorpusStore(self.settings)
        if checkers is not None:
            self._checker_factory: CheckerFactory = lambda store: checkers
        else:
            self._checker_factory = checker_factory or (lambda store: build_checkers(self.settings, store))
        self._checker_sets: "weakref.WeakKeyDictionary[CorpusStore, List[RuleChecker]]" = weakref.WeakKeyDictionary()

        if result_cache is None and self.settings.redis_url:
            result_cache = ResultCache(self.settings)
        self.result_cache = result_cache

        self._documents: Dict[str, RecordDocument] = {}
        self._results: Dict[str, DocumentResult] = {}
        self._cancelled: Set[str] = set()
        self._tasks: Dict[str, asyncio.Task] = {}

    def checkers_for(self, corpus_store: CorpusStore) -> List[RuleChecker]:
        """Checker instances bound to one corpus store, built once per store."""
        if corpus_store not in self._checker_sets:
            self._checker_sets[corpus_store] = self._checker_factory(corpus_store)
        return self._checker_sets[corpus_store]

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def register(self, document: RecordDocument) -> DocumentResult:
        """Create (or reset) the pending result for a document."""
        existing = self._results.get(document.document_id)
        if existing is not None and existing.status == DocumentStatus.PROCESSING:
            raise ValidationRunError("Document is already being validated", document.document_id)

        result = DocumentResult(
            id=document.document_id,
            file_name=document.file_name,
            summary=ValidationSummary(total_cells=document.total_cells or 0),
        )
        self._documents[document.document_id] = document
        self._results[document.document_id] = result
        self._cancelled.discard(document.document_id)
        return result

    def start(self, document_id: str, corpus_store: Optional[CorpusStore] = None) -> DocumentResult:
        """Schedule validation in the background and return immediately."""
        result = self._require(document_id)
        if result.status == DocumentStatus.PROCESSING or document_id in self._tasks:
            return result
        if result.is_terminal:
            result = self.register(self._documents[document_id])

        self._cancelled.discard(document_id)
        task = asyncio.create_task(self.validate(document_id, corpus_store))
        self._tasks[document_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(document_id, None))
        return result

    async def validate(self, document_id: str, corpus_store: Optional[CorpusStore] = None) -> DocumentResult:
        result = self._require(document_id)
        document = self._documents[document_id]
        store = corpus_store or self.corpus_store
        checkers = self.checkers_for(store)

        result.status = DocumentStatus.PROCESSING
        result.started_at = utcnow()
        result.progress = 0
        self.logger.info(
            LogEvent.VALIDATION_STARTED,
            document_id=document_id,
            file_name=document.file_name,
            format=document.format.value,
            total_cells=result.summary.total_cells,
        )

        try:
            self._raise_if_cancelled(document_id)
            store.discard_document(document_id)
            if document.format == DocumentFormat.NEIS:
                await self._traverse_neis(document, result, checkers)
            else:
                await self._traverse_sheets(document, result, checkers)
        except ValidationCancelled:
            self._finish(result, DocumentStatus.CANCELLED)
            self.logger.info(LogEvent.VALIDATION_CANCELLED, document_id=document_id, progress=result.progress)
        except asyncio.CancelledError:
            self._finish(result, DocumentStatus.CANCELLED)
            self.logger.info(LogEvent.VALIDATION_CANCELLED, document_id=document_id, progress=result.progress)
            raise
        except Exception as e:
            result.error_message = str(e)
            result.add(Finding(
                kind=FindingKind.SYSTEM,
                severity=Severity.ERROR,
                message=f"System error: {e}",
                rule="system-validation",
                location=CellLocation(sheet="System", row=0, column="A", cell="A0"),
            ))
            self._finish(result, DocumentStatus.FAILED)
            self.logger.error(LogEvent.VALIDATION_FAILED, document_id=document_id, error=str(e), exc_info=True)
        else:
            result.progress = 100
            self._finish(result, DocumentStatus.COMPLETED)
            self.logger.info(
                LogEvent.VALIDATION_COMPLETED,
                document_id=document_id,
                errors=result.summary.error_count,
                warnings=result.summary.warning_count,
                info=result.summary.info_count,
                checked_cells=result.summary.checked_cells,
            )

        await self._cache(result)
        return result

    def cancel(self, document_id: str) -> bool:
        """Request cancellation; False when the document is unknown or already finished."""
        result = self._results.get(document_id)
        if result is None or result.is_terminal:
            return False

        self._cancelled.add(document_id)
        if result.status == DocumentStatus.PENDING and document_id not in self._tasks:
            self._finish(result, DocumentStatus.CANCELLED)
            self.logger.info(LogEvent.VALIDATION_CANCELLED, document_id=document_id, progress=0)
        return True

    def is_cancelled(self, document_id: str) -> bool:
        return document_id in self._cancelled

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    async def _traverse_neis(self, document: RecordDocument, result: DocumentResult, checkers: List[RuleChecker]):
        for student in document.students:
            for section_name, section in student.sections.items():
                await self._traverse_section(document, student, section_name, section, result, checkers)

    async def _traverse_section(
        self,
        document: RecordDocument,
        student: StudentRecord,
        section_name: str,
        section: SectionData,
        result: DocumentResult,
        checkers: List[RuleChecker],
    ):
        owner = student.info.display_name
        owner_info = student.info.to_dict()
        sheet = f"{owner}_{section_name}"
        poll_each_cell = (
            self.settings.poll_cancel_per_cell_high_risk
            and section.section_type.risk_tier is RiskTier.HIGH
        )
        prefix = f"[{owner} - {section_name}] "

        for row_index, row in enumerate(section.content_rows):
            self._raise_if_cancelled(document.document_id)
            sheet_row = section.start_row + row_index + 3

            for col_index, value in enumerate(row):
                text = cell_text(value)
                if not text:
                    continue
                if poll_each_cell:
                    self._raise_if_cancelled(document.document_id)

                column = column_letter(col_index + 1)
                context = CellContext(
                    document_id=document.document_id,
                    sheet=sheet,
                    row=sheet_row,
                    column=column,
                    cell=f"{column}{sheet_row}",
                    section_name=section_name,
                    section_type=section.section_type,
                    owner=owner,
                    owner_info=owner_info,
                    adjacent=AdjacentCells(
                        left=_neighbour(row, col_index - 1),
                        right=_neighbour(row, col_index + 1),
                    ),
                    is_header_row=False,
                    is_content_row=True,
                )
                await self._visit(text, context, result, checkers, prefix)

    async def _traverse_sheets(self, document: RecordDocument, result: DocumentResult, checkers: List[RuleChecker]):
        for sheet in document.sheets:
            rows = sheet.rows
            for row_index, row in enumerate(rows):
                self._raise_if_cancelled(document.document_id)
                above = rows[row_index - 1] if row_index > 0 else ()
                below = rows[row_index + 1] if row_index + 1 < len(rows) else ()

                for col_index, value in enumerate(row):
                    text = cell_text(value)
                    if not text:
                        continue
                    column = column_letter(col_index + 1)
                    context = CellContext(
                        document_id=document.document_id,
                        sheet=sheet.name,
                        row=row_index + 1,
                        column=column,
                        cell=f"{column}{row_index + 1}",
                        adjacent=AdjacentCells(
                            left=_neighbour(row, col_index - 1),
                            right=_neighbour(row, col_index + 1),
                            above=_neighbour(above, col_index),
                            below=_neighbour(below, col_index),
                        ),
                    )
                    await self._visit(text, context, result, checkers)

    async def _visit(
        self,
        text: str,
        context: CellContext,
        result: DocumentResult,
        checkers: Iterable[RuleChecker],
        prefix: str = "",
    ):
        for checker in checkers:
            try:
                if not checker.should_apply(context):
                    continue
                findings = await checker.check(text, context)
            except Exception as e:
                self.logger.warning(
                    LogEvent.CHECKER_FAILED,
                    checker=checker.name,
                    document_id=context.document_id,
                    cell=context.location.reference,
                    error=str(e),
                    exc_info=True,
                )
                continue

            # a checker that resumed after cancellation reports nothing
            self._raise_if_cancelled(context.document_id)

            for finding in findings:
                if finding.location is None:
                    finding.location = context.location
                    finding.message = f"{prefix}{finding.message}"
                if not finding.original_text:
                    finding.original_text = text
                result.add(finding)

        summary = result.summary
        summary.checked_cells += 1
        if summary.total_cells:
            result.progress = min(99, round(summary.checked_cells / summary.total_cells * 100))

        if summary.checked_cells % self.settings.yield_every_cells == 0:
            await asyncio.sleep(0)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_result(self, document_id: str) -> Optional[DocumentResult]:
        return self._results.get(document_id)

    async def fetch_result(self, document_id: str) -> Optional[dict]:
        """Result payload from memory, falling back to the result cache."""
        result = self._results.get(document_id)
        if result is not None:
            return result.to_dict()
        if self.result_cache is None:
            return None
        return await self.result_cache.fetch(document_id)

    def get_recent(self, limit: int = 10) -> List[DocumentResult]:
        results = sorted(self._results.values(), key=lambda r: r.created_at, reverse=True)
        return results[:limit]

    def cleanup(self, max_age_hours: Optional[int] = None) -> int:
        """Drop finished results older than max_age_hours. Returns the number removed."""
        hours = max_age_hours if max_age_hours is not None else self.settings.result_retention_hours
        cutoff = utcnow() - timedelta(hours=hours)
        stale = [
            document_id
            for document_id, result in self._results.items()
            if result.is_terminal and result.created_at < cutoff
        ]
        for document_id in stale:
            self._results.pop(document_id, None)
            self._documents.pop(document_id, None)
            self._cancelled.discard(document_id)
        return len(stale)

    def stats(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in DocumentStatus}
        for result in self._results.values():
            counts[result.status.value] += 1
        return {
            "total": len(self._results),
            "active": counts[DocumentStatus.PROCESSING.value],
            **counts,
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require(self, document_id: str) -> DocumentResult:
        result = self._results.get(document_id)
        if result is None:
            raise ResourceNotFoundError("Validation", document_id)
        return result

    def _raise_if_cancelled(self, document_id: str):
        if document_id in self._cancelled:
            raise ValidationCancelled(document_id)

    @staticmethod
    def _finish(result: DocumentResult, status: DocumentStatus):
        result.status = status
        result.completed_at = utcnow()

    async def _cache(self, result: DocumentResult):
        if self.result_cache is not None and result.is_terminal:
            await self.result_cache.store(result.id, result.to_dict())
