import asyncio
from datetime import timedelta

import pytest

from record_validator.models.corpus import CorpusEntry, SentenceEntry
from record_validator.models.document import SectionType
from record_validator.models.validation import CellLocation, utcnow
from record_validator.services.corpus_store import CorpusStore


def entry(
    text: str,
    cell: str = "A1",
    document_id: str = "doc-1",
    owner: str = "김민준",
    registry: str = "cross_student",
    group_key: str = "comprehensive_opinion",
    age_hours: float = 0,
) -> CorpusEntry:
    return CorpusEntry(
        registry=registry,
        group_key=group_key,
        document_id=document_id,
        location=CellLocation(sheet=f"{owner}_행동특성및종합의견", row=1, column="A", cell=cell),
        text=text,
        normalized=text,
        owner=owner,
        section="행동특성및종합의견",
        section_type=SectionType.BEHAVIOR_OPINION,
        created_at=utcnow() - timedelta(hours=age_hours),
    )


def sentence(text: str, cell: str = "A1", document_id: str = "doc-1", owner: str = "김민준", age_hours: float = 0):
    return SentenceEntry(
        sentence=text,
        normalized=text,
        document_id=document_id,
        location=CellLocation(sheet="Sheet1", row=1, column="A", cell=cell),
        owner=owner,
        created_at=utcnow() - timedelta(hours=age_hours),
    )


class TestRegister:
    def test_entries_are_grouped_by_registry_and_key(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("가나다", cell="A1"))
        corpus_store.register(entry("라마바", cell="A2", group_key="learning_records"))
        corpus_store.register(entry("사아자", cell="A3", registry="document"))

        texts = [e.text for e in corpus_store.entries("cross_student", ["comprehensive_opinion"])]
        assert texts == ["가나다"]
        assert corpus_store.total_entries == 3

    def test_same_cell_replaces_previous_entry(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("처음 내용", cell="A1"))
        corpus_store.register(entry("수정된 내용", cell="A1"))

        texts = [e.text for e in corpus_store.entries("cross_student", ["comprehensive_opinion"])]
        assert texts == ["수정된 내용"]

    def test_group_cap_keeps_newest(self, settings) -> None:
        store = CorpusStore(settings.model_copy(update={"corpus_max_entries_per_group": 3}))
        for index in range(5):
            store.register(entry(f"내용{index}", cell=f"A{index}"))

        texts = [e.text for e in store.entries("cross_student", ["comprehensive_opinion"])]
        assert texts == ["내용2", "내용3", "내용4"]

    def test_total_cap_triggers_cleanup_of_stale_entries(self, settings) -> None:
        store = CorpusStore(settings.model_copy(update={"corpus_max_total_entries": 2}))
        store.register(entry("오래된 내용", cell="A1", age_hours=30))
        store.register(entry("새 내용", cell="A2"))
        store.register(entry("또 다른 내용", cell="A3"))

        texts = [e.text for e in store.entries("cross_student", ["comprehensive_opinion"])]
        assert texts == ["새 내용", "또 다른 내용"]

    def test_sentence_bucket_cap_keeps_newest(self, settings) -> None:
        store = CorpusStore(settings.model_copy(update={"corpus_max_entries_per_group": 2}))
        for index, owner in enumerate(["김민준", "이서연", "박지호"]):
            store.register_sentence(sentence("같은 문장입니다", cell=f"A{index}", owner=owner))

        assert [e.owner for e in store.sentence_matches("같은 문장입니다")] == ["이서연", "박지호"]

    def test_sentence_total_cap_evicts_oldest(self, settings) -> None:
        store = CorpusStore(settings.model_copy(update={"corpus_max_total_entries": 10, "corpus_max_entries_per_group": 5}))
        for index in range(40):
            owner = f"학생{index}"
            for part in range(2):
                store.register_sentence(
                    sentence(f"{owner}의 {part}번째 문장입니다", cell=f"A{index}", owner=owner, age_hours=(40 - index) / 100)
                )

        assert store.total_sentences == 10
        assert {e.owner for e in store.sentences()} == {f"학생{index}" for index in range(35, 40)}


class TestCleanup:
    def test_evicts_entries_older_than_max_age(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("오래된 내용", cell="A1", age_hours=25))
        corpus_store.register(entry("새 내용", cell="A2", age_hours=1))
        corpus_store.register_sentence(sentence("오래된 문장입니다", age_hours=48))

        evicted = corpus_store.cleanup()

        assert evicted == 2
        assert corpus_store.total_entries == 1
        assert list(corpus_store.sentences()) == []

    def test_nothing_to_evict(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("새 내용"))
        assert corpus_store.cleanup() == 0


class TestDiscardDocument:
    def test_drops_only_that_document(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("첫 문서", cell="A1", document_id="doc-1"))
        corpus_store.register(entry("둘째 문서", cell="A1", document_id="doc-2"))
        corpus_store.register_sentence(sentence("첫 문서의 문장입니다", document_id="doc-1"))

        removed = corpus_store.discard_document("doc-1")

        assert removed == 2
        assert [e.document_id for e in corpus_store.entries("cross_student", ["comprehensive_opinion"])] == ["doc-2"]
        assert list(corpus_store.sentences()) == []


class TestSentences:
    def test_same_cell_sentence_is_registered_once(self, corpus_store: CorpusStore) -> None:
        corpus_store.register_sentence(sentence("반복되는 문장입니다"))
        corpus_store.register_sentence(sentence("반복되는 문장입니다"))
        corpus_store.register_sentence(sentence("반복되는 문장입니다", cell="B1"))

        assert len(corpus_store.sentence_matches("반복되는 문장입니다")) == 2


class TestLocks:
    def test_lock_is_shared_per_group(self, corpus_store: CorpusStore) -> None:
        assert corpus_store.lock("document", "g1") is corpus_store.lock("document", "g1")
        assert corpus_store.lock("document", "g1") is not corpus_store.lock("document", "g2")

    @pytest.mark.asyncio
    async def test_lock_serializes_compare_then_register(self, corpus_store: CorpusStore) -> None:
        seen = []

        async def compare_then_register(cell: str) -> None:
            async with corpus_store.lock("cross_student", "comprehensive_opinion"):
                seen.append(len(corpus_store.entries("cross_student", ["comprehensive_opinion"])))
                await asyncio.sleep(0)
                corpus_store.register(entry("같은 내용", cell=cell))

        await asyncio.gather(*(compare_then_register(f"A{i}") for i in range(4)))

        assert seen == [0, 1, 2, 3]


class TestReporting:
    def test_statistics(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("같은 내용", cell="A1", owner="김민준"))
        corpus_store.register(entry("같은 내용", cell="A2", owner="이서연"))
        corpus_store.register(entry("다른 내용", cell="A3", owner="이서연", registry="document", group_key="doc-1:x"))

        stats = corpus_store.statistics()

        assert stats["total_entries"] == 3
        assert stats["total_groups"] == 2
        assert stats["total_owners"] == 2
        assert stats["average_entries_per_owner"] == 1.5
        assert stats["registry_distribution"] == {"cross_student": 2, "document": 1}
        assert stats["group_distribution"]["cross_student:comprehensive_opinion"] == 2
        assert stats["risk_tier_distribution"] == {"high": 3}

    def test_duplicate_report_lists_repeated_texts(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("같은 내용", cell="A1", owner="김민준"))
        corpus_store.register(entry("같은 내용", cell="A2", owner="이서연"))
        corpus_store.register(entry("혼자인 내용", cell="A3", owner="이서연"))

        report = corpus_store.duplicate_report()

        assert len(report) == 1
        assert report[0]["count"] == 2
        assert report[0]["owners"] == sorted(["김민준", "이서연"])

    def test_clear(self, corpus_store: CorpusStore) -> None:
        corpus_store.register(entry("내용"))
        corpus_store.register_sentence(sentence("문장입니다 문장입니다"))
        corpus_store.clear()
        assert corpus_store.total_entries == 0
        assert corpus_store.statistics()["total_sentences"] == 0
