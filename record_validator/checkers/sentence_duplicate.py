"""
Sentence-level duplicate checker.

Cell text is split into sentences the way record editors split it in their
spreadsheet macros: paragraph breaks collapse, sentence-final periods become
a backslash delimiter, remaining line breaks are removed. Sentences repeated
inside the cell are errors; sentences seen in other students' cells are
warnings.
"""
import re
from typing import Dict, List, Optional, Tuple

from record_validator.checkers.base import RuleChecker
from record_validator.core.config import Settings, get_settings
from record_validator.models.corpus import SentenceEntry
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity
from record_validator.services.similarity import is_standard_expression

FILLER_SENTENCES = frozenset({
    "참여함", "활동함", "학습함", "수행함", "완성함",
    "노력함", "발표함", "토론함", "협력함",
})
LETTER_RE = re.compile(r"[가-힣a-zA-Z]")
SENTENCE_PUNCT_RE = re.compile(r"[.!?。]")
SPACES_RE = re.compile(r"\s+")

SENTENCE_LOCK_KEY = "all"
SUGGESTION = "중복된 문장을 다른 표현으로 수정하거나 삭제하세요"


def split_sentences(text: str, min_length: int = 10) -> List[str]:
    processed = text.replace("\n\n", "\n")
    processed = processed.replace(". ", ".\\")
    processed = processed.replace(".\n", ".\\")
    processed = processed.replace("\n", "")
    processed = processed.replace("\\\\", "\\")

    sentences = []
    for sentence in processed.split("\\"):
        sentence = sentence.strip()
        if len(sentence) < min_length:
            continue
        if len(LETTER_RE.findall(sentence)) < 5 or sentence in FILLER_SENTENCES or is_standard_expression(sentence):
            continue
        sentences.append(sentence)
    return sentences


def sentence_key(sentence: str) -> str:
    return SPACES_RE.sub(" ", SENTENCE_PUNCT_RE.sub("", sentence.lower())).strip()


def word_overlap(left: str, right: str) -> float:
    a, b = set(left.split()), set(right.split())
    union = a | b
    if not union:
        return 0.0
    return len(a & b) / len(union)


def truncate(sentence: str, limit: int = 50) -> str:
    return sentence if len(sentence) <= limit else sentence[: limit - 3] + "..."


class SentenceDuplicateChecker(RuleChecker):
    kind = FindingKind.SENTENCE_DUPLICATE
    name = "sentence_duplicate"

    def __init__(self, corpus_store, settings: Optional[Settings] = None):
        super().__init__()
        self.settings = settings or get_settings()
        self.corpus = corpus_store

    def should_apply(self, context: CellContext) -> bool:
        return context.is_content_row

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        min_length = self.settings.sentence_min_length
        if not text or len(text.strip()) < min_length:
            return []

        stripped = text.strip()
        sentences = split_sentences(stripped, min_length)
        if len(sentences) < 2:
            return []

        findings = self._internal_duplicates(sentences, stripped)
        async with self.corpus.lock("sentence", SENTENCE_LOCK_KEY):
            findings.extend(self._external_duplicates(sentences, stripped, context))
            for sentence in sentences:
                self.corpus.register_sentence(SentenceEntry(
                    sentence=sentence,
                    normalized=sentence_key(sentence),
                    document_id=context.document_id,
                    location=context.location,
                    owner=context.owner,
                    section=context.section_key,
                ))
        return findings

    def _internal_duplicates(self, sentences: List[str], text: str) -> List[Finding]:
        findings = []
        first_seen: Dict[str, int] = {}
        for index, sentence in enumerate(sentences):
            key = sentence_key(sentence)
            if key not in first_seen:
                first_seen[key] = index
                continue
            findings.append(self._finding(
                sentence,
                text,
                f"문장 {index + 1}이 문장 {first_seen[key] + 1}과 중복됩니다",
                "internal",
                Severity.ERROR,
                0.95,
            ))
        return findings

    def _is_foreign(self, entry: SentenceEntry, context: CellContext) -> bool:
        if context.owner:
            return entry.owner != context.owner
        return entry.cell_identity != (context.document_id, context.location.reference)

    def _external_duplicates(self, sentences: List[str], text: str, context: CellContext) -> List[Finding]:
        findings = []
        for sentence in dict.fromkeys(sentences):
            key = sentence_key(sentence)

            exact = [e for e in self.corpus.sentence_matches(key) if self._is_foreign(e, context)]
            if exact:
                owners = ", ".join(dict.fromkeys(e.owner or "unknown" for e in exact))
                locations = ", ".join(dict.fromkeys(e.location.reference for e in exact))
                findings.append(self._finding(
                    sentence,
                    text,
                    f"다른 위치와 문장 중복: {owners} ({locations})",
                    "external",
                    Severity.WARNING,
                    0.8,
                ))

            best = self._best_near_match(key, context)
            if best is not None:
                score, entry = best
                findings.append(self._finding(
                    sentence,
                    text,
                    f'유사한 문장 발견 (유사도: {int(score * 100 + 0.5)}%): "{truncate(entry.normalized)}"',
                    "similar",
                    Severity.WARNING,
                    0.8,
                ))
        return findings

    def _best_near_match(self, key: str, context: CellContext) -> Optional[Tuple[float, SentenceEntry]]:
        best: Optional[Tuple[float, SentenceEntry]] = None
        threshold = self.settings.sentence_similarity_threshold
        for entry in self.corpus.sentences():
            if entry.normalized == key or not self._is_foreign(entry, context):
                continue
            score = word_overlap(key, entry.normalized)
            if score >= threshold and (best is None or score > best[0]):
                best = (score, entry)
        return best

    def _finding(
        self,
        sentence: str,
        text: str,
        detail: str,
        variant: str,
        severity: Severity,
        confidence: float,
    ) -> Finding:
        start = text.find(sentence)
        highlight = self.highlight_for(text, start, start + len(sentence)) if start != -1 else None
        return self.create_finding(
            f"문장 중복 검출: {detail}",
            f"sentence-duplicate-{variant}",
            severity,
            original_text=text,
            suggestion=SUGGESTION,
            confidence=confidence,
            highlight=highlight,
        )
