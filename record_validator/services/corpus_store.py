"""Corpus store - registries of previously seen text for the duplicate checkers."""
from __future__ import annotations

import asyncio
from collections import Counter, defaultdict
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple

from record_validator.core.config import Settings
from record_validator.core.logging import LogEvent
from record_validator.models.corpus import CorpusEntry, SentenceEntry
from record_validator.models.validation import utcnow
from record_validator.services.base_service import BaseService

GroupId = Tuple[str, str]


class CorpusStore(BaseService):
    """
    In-memory text corpus shared by the duplicate checkers of one session or batch.

    Entries live in groups keyed by (registry, group key), oldest first.
    A group holds at most one entry per cell. Sentence buckets share the
    per-group cap and the sentence registry as a whole shares the total cap.
    """

    def __init__(self, settings: Optional[Settings] = None):
        super().__init__(settings)
        self._groups: Dict[GroupId, List[CorpusEntry]] = defaultdict(list)
        self._locks: Dict[GroupId, asyncio.Lock] = {}
        self._sentences: Dict[str, List[SentenceEntry]] = defaultdict(list)

    # ------------------------------------------------------------------
    # Text registries
    # ------------------------------------------------------------------

    def lock(self, registry: str, key: str) -> asyncio.Lock:
        """Lock guarding compare-then-register on one group."""
        group_id = (registry, key)
        if group_id not in self._locks:
            self._locks[group_id] = asyncio.Lock()
        return self._locks[group_id]

    def entries(self, registry: str, keys: Iterable[str]) -> List[CorpusEntry]:
        snapshot: List[CorpusEntry] = []
        for key in keys:
            snapshot.extend(self._groups.get((registry, key), ()))
        return snapshot

    def register(self, entry: CorpusEntry) -> None:
        group = self._groups[(entry.registry, entry.group_key)]
        identity = entry.cell_identity
        group[:] = [existing for existing in group if existing.cell_identity != identity]
        group.append(entry)

        overflow = len(group) - self.settings.corpus_max_entries_per_group
        if overflow > 0:
            del group[:overflow]

        if self.total_entries > self.settings.corpus_max_total_entries:
            self.cleanup()

    @property
    def total_entries(self) -> int:
        return sum(len(group) for group in self._groups.values())

    def cleanup(self, now: Optional[datetime] = None) -> int:
        """Evict stale entries and trim oversized groups. Returns the eviction count."""
        now = now or utcnow()
        cutoff = now - timedelta(hours=self.settings.corpus_max_age_hours)
        cap = self.settings.corpus_max_entries_per_group
        evicted = 0

        for group_id in list(self._groups):
            group = self._groups[group_id]
            fresh = [entry for entry in group if entry.created_at >= cutoff]
            if len(fresh) > cap:
                fresh = fresh[-cap:]
            evicted += len(group) - len(fresh)
            if fresh:
                self._groups[group_id] = fresh
            else:
                del self._groups[group_id]

        for key in list(self._sentences):
            bucket = self._sentences[key]
            fresh_sentences = [entry for entry in bucket if entry.created_at >= cutoff]
            if len(fresh_sentences) > cap:
                fresh_sentences = fresh_sentences[-cap:]
            evicted += len(bucket) - len(fresh_sentences)
            if fresh_sentences:
                self._sentences[key] = fresh_sentences
            else:
                del self._sentences[key]
        evicted += self._trim_sentences(self.settings.corpus_max_total_entries)

        if evicted:
            self.logger.info(
                LogEvent.CORPUS_CLEANUP,
                evicted=evicted,
                remaining=self.total_entries,
                remaining_sentences=self.total_sentences,
            )
        return evicted

    def discard_document(self, document_id: str) -> int:
        """Drop every entry of a document before it is validated again."""
        removed = 0
        for group_id in list(self._groups):
            group = self._groups[group_id]
            kept = [entry for entry in group if entry.document_id != document_id]
            removed += len(group) - len(kept)
            if kept:
                self._groups[group_id] = kept
            else:
                del self._groups[group_id]

        for key in list(self._sentences):
            bucket = self._sentences[key]
            kept_sentences = [entry for entry in bucket if entry.document_id != document_id]
            removed += len(bucket) - len(kept_sentences)
            if kept_sentences:
                self._sentences[key] = kept_sentences
            else:
                del self._sentences[key]
        return removed

    # ------------------------------------------------------------------
    # Sentence registry
    # ------------------------------------------------------------------

    def sentence_matches(self, normalized: str) -> List[SentenceEntry]:
        return list(self._sentences.get(normalized, ()))

    def sentences(self) -> Iterator[SentenceEntry]:
        for bucket in list(self._sentences.values()):
            yield from bucket

    def register_sentence(self, entry: SentenceEntry) -> None:
        bucket = self._sentences[entry.normalized]
        identity = entry.cell_identity
        if any(existing.cell_identity == identity for existing in bucket):
            return
        bucket.append(entry)

        overflow = len(bucket) - self.settings.corpus_max_entries_per_group
        if overflow > 0:
            del bucket[:overflow]

        if self.total_sentences > self.settings.corpus_max_total_entries:
            self.cleanup()

    @property
    def total_sentences(self) -> int:
        return sum(len(bucket) for bucket in self._sentences.values())

    def _trim_sentences(self, limit: int) -> int:
        """Drop the oldest sentences beyond limit."""
        overflow = self.total_sentences - limit
        if overflow <= 0:
            return 0
        oldest = sorted(self.sentences(), key=lambda entry: entry.created_at)[:overflow]
        dropped = {id(entry) for entry in oldest}
        for key in list(self._sentences):
            kept = [entry for entry in self._sentences[key] if id(entry) not in dropped]
            if kept:
                self._sentences[key] = kept
            else:
                del self._sentences[key]
        return overflow

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def statistics(self) -> Dict[str, Any]:
        all_entries = [entry for group in self._groups.values() for entry in group]
        owners = {entry.owner for entry in all_entries if entry.owner}
        total = len(all_entries)

        per_group = {
            f"{registry}:{key}": len(group)
            for (registry, key), group in self._groups.items()
        }
        per_tier = Counter(entry.section_type.risk_tier.value for entry in all_entries)
        per_registry = Counter(entry.registry for entry in all_entries)

        return {
            "total_entries": total,
            "total_groups": len(self._groups),
            "total_owners": len(owners),
            "total_sentences": self.total_sentences,
            "average_entries_per_group": round(total / len(self._groups), 2) if self._groups else 0.0,
            "average_entries_per_owner": round(total / len(owners), 2) if owners else 0.0,
            "registry_distribution": dict(per_registry),
            "group_distribution": per_group,
            "risk_tier_distribution": dict(per_tier),
        }

    def duplicate_report(self) -> List[Dict[str, Any]]:
        """Identical normalized texts registered more than once, most frequent first."""
        by_text: Dict[str, List[CorpusEntry]] = defaultdict(list)
        for group in self._groups.values():
            for entry in group:
                if entry.normalized:
                    by_text[entry.normalized].append(entry)

        report = []
        for normalized, entries in by_text.items():
            cells = {entry.cell_identity: entry for entry in entries}
            if len(cells) < 2:
                continue
            report.append({
                "text": entries[0].text,
                "count": len(cells),
                "owners": sorted({entry.owner for entry in cells.values() if entry.owner}),
                "locations": [
                    {
                        "document_id": entry.document_id,
                        "reference": entry.location.reference,
                        "owner": entry.owner,
                        "section": entry.section,
                    }
                    for entry in cells.values()
                ],
            })
        report.sort(key=lambda item: item["count"], reverse=True)
        return report

    def clear(self) -> None:
        self._groups.clear()
        self._sentences.clear()
        self._locks.clear()
