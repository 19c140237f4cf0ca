"""The same student's text repeated across different record sections."""
import re
from typing import List, Tuple

from record_validator.checkers.base import CorpusChecker
from record_validator.models.corpus import CorpusEntry, SimilarityResult
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity
from record_validator.services.similarity import is_standard_expression

COMMON_PHRASES = (
    "참여함", "활동함", "학습함", "수행함", "완성함",
    "노력함", "발표함", "토론함", "협력함", "탐구함",
    "이해함", "습득함", "개선함", "성장함", "발전함",
)
NUMERIC_LIKE_RE = re.compile(r"^\d+[.\-/년월일\s]*\d*$")
KEY_STRIP_RE = re.compile(r"[.,!?。\s]")


def duplicate_key(text: str) -> str:
    """Lowercased text with punctuation and whitespace removed."""
    return KEY_STRIP_RE.sub("", text.lower())


class CrossSectionDuplicateChecker(CorpusChecker):
    kind = FindingKind.CROSS_SECTION_DUPLICATE
    name = "cross_section_duplicate"
    registry = "cross_section"

    def should_apply(self, context: CellContext) -> bool:
        return bool(context.owner)

    def qualifies(self, text: str) -> bool:
        stripped = text.strip()
        if len(stripped) < self.settings.cross_section_min_length:
            return False
        if len(stripped.split()) <= 3 and any(phrase in stripped for phrase in COMMON_PHRASES):
            return False
        return not NUMERIC_LIKE_RE.match(stripped) and not is_standard_expression(stripped)

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not context.owner or not self.qualifies(text):
            return []

        key = duplicate_key(text)
        group_key = f"{context.document_id}:{context.owner}"
        findings: List[Tuple[float, Finding]] = []

        async with self.corpus.lock(self.registry, group_key):
            for entry in self.corpus.entries(self.registry, [group_key]):
                if entry.section == context.section_key or self.is_same_cell(entry, context):
                    continue
                if entry.normalized == key:
                    findings.append((1.0, self._exact(text, entry)))
                    continue
                similarity = self.engine.compare(text, entry.text)
                severity = self.engine.severity_for(similarity.weighted)
                if severity is not None:
                    findings.append((similarity.weighted, self._similar(text, entry, similarity, severity)))
            self.corpus.register(self.make_entry(text, context, group_key, normalized=key))

        findings.sort(key=lambda item: item[0], reverse=True)
        return [finding for _, finding in findings]

    def _exact(self, text: str, entry: CorpusEntry) -> Finding:
        reference = self.reference_to(
            entry,
            SimilarityResult(jaccard=1.0, lcs=1.0, edit=1.0, weighted=1.0, longest_common_substring=entry.text),
            match_type="exact",
        )
        return self.create_finding(
            f"동일한 내용이 {entry.section}에 이미 입력되었습니다 ({entry.location.reference})",
            "duplicate-exact",
            Severity.ERROR,
            original_text=text,
            suggestion="동일한 내용을 삭제하거나 구체적인 차이점을 추가하세요",
            confidence=1.0,
            duplicate_of=reference,
        )

    def _similar(self, text: str, entry: CorpusEntry, similarity: SimilarityResult, severity: Severity) -> Finding:
        return self.create_finding(
            f"{entry.section}와 유사한 내용이 발견되었습니다 (유사도: {self.percentage(similarity.weighted)}%)",
            "duplicate-similar",
            severity,
            original_text=text,
            suggestion="내용을 더욱 구체적이고 차별화된 내용으로 수정하세요",
            confidence=similarity.weighted,
            duplicate_of=self.reference_to(entry, similarity),
        )
