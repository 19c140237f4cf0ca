import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from record_validator.checkers import DocumentDuplicateChecker, KoreanEnglishChecker, RuleChecker
from record_validator.core.errors import ResourceNotFoundError, ValidationRunError
from record_validator.models.validation import DocumentStatus, FindingKind, Severity
from record_validator.services.corpus_store import CorpusStore
from record_validator.services.validation_service import ValidationService, column_letter

OPINION = "행동특성및종합의견"
ENGLISH = "학생이 program을 통해 성장함."


class RecordingChecker(RuleChecker):
    """Remembers every context and optionally runs a hook."""

    kind = FindingKind.FORMAT
    name = "recorder"

    def __init__(self, hook=None):
        super().__init__()
        self.contexts = []
        self.hook = hook

    async def check(self, text, context):
        self.contexts.append(context)
        if self.hook is not None:
            return self.hook(text, context) or []
        return []


class ExplodingChecker(RuleChecker):
    kind = FindingKind.GRAMMAR
    name = "exploding"

    async def check(self, text, context):
        raise RuntimeError("checker bug")


class Unprintable:
    def __str__(self):
        raise ValueError("cell value cannot be rendered")


def service_with(settings, *checkers, **kwargs) -> ValidationService:
    return ValidationService(settings, checkers=list(checkers), **kwargs)


class TestColumnLetter:
    @pytest.mark.parametrize("index, expected", [(1, "A"), (26, "Z"), (27, "AA"), (52, "AZ"), (703, "AAA")])
    def test_column_letter(self, index, expected) -> None:
        assert column_letter(index) == expected


class TestValidate:
    @pytest.mark.asyncio
    async def test_completed_result(self, settings, make_sheet_document) -> None:
        service = service_with(settings, KoreanEnglishChecker())
        service.register(make_sheet_document([[ENGLISH, None, "  "], ["정상적인 문장임."]]))

        result = await service.validate("sheet-1")

        assert result.status == DocumentStatus.COMPLETED
        assert result.progress == 100
        assert result.summary.total_cells == 2
        assert result.summary.checked_cells == 2
        assert result.summary.warning_count == 1
        finding = result.warnings[0]
        assert finding.location.reference == "Sheet1!A1"
        assert finding.original_text == ENGLISH
        assert finding.message == '허용되지 않은 영문 표현: "program"'
        assert result.started_at is not None
        assert result.completed_at is not None

    @pytest.mark.asyncio
    async def test_failing_checker_is_skipped(self, settings, make_sheet_document) -> None:
        service = service_with(settings, ExplodingChecker(), KoreanEnglishChecker())
        service.register(make_sheet_document([[ENGLISH]]))

        result = await service.validate("sheet-1")

        assert result.status == DocumentStatus.COMPLETED
        assert [f.rule for f in result.findings()] == ["korean-english-rule"]

    @pytest.mark.asyncio
    async def test_traversal_failure_marks_document_failed(self, settings, make_sheet_document) -> None:
        service = service_with(settings, KoreanEnglishChecker())
        service.register(make_sheet_document([[Unprintable()]], total_cells=1))

        result = await service.validate("sheet-1")

        assert result.status == DocumentStatus.FAILED
        assert result.error_message == "cell value cannot be rendered"
        assert len(result.errors) == 1
        system = result.errors[0]
        assert system.kind == FindingKind.SYSTEM
        assert system.rule == "system-validation"
        assert system.location.reference == "System!A0"
        assert system.message == "System error: cell value cannot be rendered"

    @pytest.mark.asyncio
    async def test_progress_is_capped_until_completion(self, settings, make_sheet_document) -> None:
        service = ValidationService(settings, checkers=[])
        seen = []
        service._checker_factory = lambda store: [
            RecordingChecker(lambda text, context: seen.append(service.get_result("sheet-1").progress))
        ]
        service.register(make_sheet_document([["첫째 칸"], ["둘째 칸"], ["셋째 칸"]], total_cells=2))

        result = await service.validate("sheet-1")

        assert seen == [0, 50, 99]
        assert result.progress == 100

    @pytest.mark.asyncio
    async def test_unknown_document(self, settings) -> None:
        with pytest.raises(ResourceNotFoundError):
            await service_with(settings).validate("missing")

    @pytest.mark.asyncio
    async def test_revalidation_replaces_corpus_entries(self, settings, make_sheet_document, corpus_store) -> None:
        text = "매사에 성실하고 책임감이 강하므로 역할을 끝까지 완수하는 태도가 돋보임."
        service = ValidationService(
            settings,
            corpus_store=corpus_store,
            checker_factory=lambda store: [DocumentDuplicateChecker(store, settings=settings)],
        )
        service.register(make_sheet_document([[text]]))
        await service.validate("sheet-1")
        service.register(make_sheet_document([[text]]))

        result = await service.validate("sheet-1")

        assert result.findings() == []
        assert corpus_store.total_entries == 1


class TestContexts:
    @pytest.mark.asyncio
    async def test_neis_cells_are_addressed_by_student_and_section(self, settings, make_neis_document) -> None:
        recorder = RecordingChecker()
        service = service_with(settings, recorder, KoreanEnglishChecker())
        service.register(make_neis_document({"김민준": {OPINION: [ENGLISH]}}, start_row=10))

        result = await service.validate("neis-1")

        context = recorder.contexts[0]
        assert context.sheet == f"김민준_{OPINION}"
        assert context.cell == "A13"
        assert context.row == 13
        assert context.cell == f"{context.column}{context.row}"
        assert context.owner == "김민준"
        assert context.owner_info["grade"] == "2"
        assert context.section_name == OPINION
        assert context.is_content_row

        finding = result.warnings[0]
        assert finding.message == f'[김민준 - {OPINION}] 허용되지 않은 영문 표현: "program"'
        assert finding.location.cell == "A13"

    @pytest.mark.asyncio
    async def test_sheet_cells_see_their_neighbours(self, settings, make_sheet_document) -> None:
        recorder = RecordingChecker()
        service = service_with(settings, recorder)
        service.register(make_sheet_document([["가", "나"], ["다", None]]))

        await service.validate("sheet-1")

        first = recorder.contexts[0]
        assert (first.cell, first.row, first.column) == ("A1", 1, "A")
        assert first.adjacent.right == "나"
        assert first.adjacent.below == "다"
        assert first.adjacent.left is None
        assert not first.is_content_row
        assert [c.cell for c in recorder.contexts] == ["A1", "B1", "A2"]

    def test_checkers_are_built_once_per_store(self, settings) -> None:
        calls = []

        def factory(store):
            calls.append(store)
            return []

        service = ValidationService(settings, checker_factory=factory)
        other = CorpusStore(settings)

        service.checkers_for(service.corpus_store)
        service.checkers_for(service.corpus_store)
        service.checkers_for(other)

        assert calls == [service.corpus_store, other]


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_during_traversal_discards_late_findings(self, settings, make_sheet_document) -> None:
        service = ValidationService(settings, checkers=[])

        def cancel_then_report(text, context):
            service.cancel(context.document_id)
            return [canceller.create_finding("late", "late-rule", Severity.ERROR)]

        canceller = RecordingChecker(cancel_then_report)
        service._checker_factory = lambda store: [canceller]
        service.register(make_sheet_document([["첫째 칸"], ["둘째 칸"]]))

        result = await service.validate("sheet-1")

        assert result.status == DocumentStatus.CANCELLED
        assert result.findings() == []
        assert len(canceller.contexts) == 1

    def test_cancel_pending_document_without_task(self, settings, make_sheet_document) -> None:
        service = service_with(settings)
        service.register(make_sheet_document([["내용"]]))

        assert service.cancel("sheet-1") is True
        assert service.get_result("sheet-1").status == DocumentStatus.CANCELLED
        assert service.cancel("sheet-1") is False

    def test_cancel_unknown_document(self, settings) -> None:
        assert service_with(settings).cancel("missing") is False

    @pytest.mark.asyncio
    async def test_register_clears_cancel_flag(self, settings, make_sheet_document) -> None:
        service = service_with(settings)
        document = make_sheet_document([["내용"]])
        service.register(document)
        service.cancel("sheet-1")

        service.register(document)
        result = await service.validate("sheet-1")

        assert not service.is_cancelled("sheet-1")
        assert result.status == DocumentStatus.COMPLETED

    def test_register_refuses_running_document(self, settings, make_sheet_document) -> None:
        service = service_with(settings)
        document = make_sheet_document([["내용"]])
        service.register(document).status = DocumentStatus.PROCESSING

        with pytest.raises(ValidationRunError):
            service.register(document)


class TestBackground:
    @pytest.mark.asyncio
    async def test_start_runs_validation_in_background(self, settings, make_sheet_document) -> None:
        service = service_with(settings, KoreanEnglishChecker())
        service.register(make_sheet_document([[ENGLISH]]))

        result = service.start("sheet-1")
        assert result.status == DocumentStatus.PENDING
        assert service.start("sheet-1") is result

        await service._tasks["sheet-1"]
        await asyncio.sleep(0)

        assert result.status == DocumentStatus.COMPLETED
        assert "sheet-1" not in service._tasks

    @pytest.mark.asyncio
    async def test_start_after_completion_resets_result(self, settings, make_sheet_document) -> None:
        service = service_with(settings, KoreanEnglishChecker())
        service.register(make_sheet_document([[ENGLISH]]))
        first = await service.validate("sheet-1")

        second = service.start("sheet-1")
        await service._tasks["sheet-1"]

        assert second is not first
        assert second.status == DocumentStatus.COMPLETED
        assert second.summary.warning_count == 1


class TestQueries:
    @pytest.mark.asyncio
    async def test_recent_stats_and_cleanup(self, settings, make_sheet_document) -> None:
        service = service_with(settings)
        service.register(make_sheet_document([["내용"]], document_id="old"))
        service.register(make_sheet_document([["내용"]], document_id="new"))
        service.register(make_sheet_document([["내용"]], document_id="waiting"))
        await service.validate("old")
        await service.validate("new")
        service.get_result("old").created_at -= timedelta(hours=48)
        service.get_result("new").created_at -= timedelta(hours=1)

        assert [r.id for r in service.get_recent(limit=2)] == ["waiting", "new"]
        assert service.stats() == {
            "total": 3,
            "active": 0,
            "pending": 1,
            "processing": 0,
            "completed": 2,
            "failed": 0,
            "cancelled": 0,
        }

        assert service.cleanup(max_age_hours=24) == 1
        assert service.get_result("old") is None
        assert service.get_result("new") is not None

    @pytest.mark.asyncio
    async def test_fetch_result_falls_back_to_cache(self, settings, make_sheet_document) -> None:
        cache = MagicMock()
        cache.store = AsyncMock(return_value=True)
        cache.fetch = AsyncMock(return_value={"id": "evicted", "status": "completed"})
        service = service_with(settings, result_cache=cache)
        service.register(make_sheet_document([["내용"]]))

        await service.validate("sheet-1")

        cache.store.assert_awaited_once()
        assert cache.store.await_args.args[0] == "sheet-1"
        assert (await service.fetch_result("sheet-1"))["status"] == "completed"
        assert await service.fetch_result("evicted") == {"id": "evicted", "status": "completed"}
        cache.fetch.assert_awaited_once_with("evicted")

    @pytest.mark.asyncio
    async def test_fetch_result_without_cache(self, settings) -> None:
        assert await service_with(settings).fetch_result("missing") is None
