"""Repeated text within one section of one document."""
from typing import List, Tuple

from record_validator.checkers.base import CorpusChecker
from record_validator.models.corpus import CorpusEntry, SimilarityResult
from record_validator.models.validation import CellContext, Finding, FindingKind
from record_validator.services.similarity import is_standard_expression


class DocumentDuplicateChecker(CorpusChecker):
    """
    Compares a cell with earlier cells of the same section in the same document.

    Only cells of the same owner are compared, so for NEIS records this finds
    text repeated inside one student's section; generic sheets have
    no owner and compare sheet-wide.
    """

    kind = FindingKind.DUPLICATE_DETECTION
    name = "duplicate_detection"
    registry = "document"

    def qualifies(self, text: str) -> bool:
        stripped = text.strip()
        if not stripped or self.is_only_numbers(stripped) or self.is_date_time(stripped):
            return False
        if len(stripped) < self.settings.duplicate_min_length:
            return False
        if not self.is_korean_text(stripped):
            return False
        return not is_standard_expression(stripped)

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not self.qualifies(text):
            return []

        group_key = f"{context.document_id}:{context.section_key}"
        async with self.corpus.lock(self.registry, group_key):
            matches: List[Tuple[CorpusEntry, SimilarityResult]] = []
            for entry in self.corpus.entries(self.registry, [group_key]):
                if entry.owner != context.owner or self.is_same_cell(entry, context):
                    continue
                similarity = self.engine.compare(text, entry.text)
                if self.engine.severity_for(similarity.weighted) is not None:
                    matches.append((entry, similarity))
            self.corpus.register(self.make_entry(text, context, group_key))

        matches.sort(key=lambda match: match[1].weighted, reverse=True)
        return [self._finding(text, entry, similarity) for entry, similarity in matches]

    def _finding(self, text: str, entry: CorpusEntry, similarity: SimilarityResult) -> Finding:
        percent = self.percentage(similarity.weighted)
        if entry.owner:
            source = f"{entry.owner}의 {entry.section or '기록'}"
        else:
            source = entry.location.reference

        if percent >= 90:
            message = f"거의 동일한 내용이 {source}에서 발견됨 (유사도: {percent}%)"
            suggestion = "내용을 다시 작성하거나 차별화된 표현을 사용하세요"
        else:
            message = f"매우 유사한 내용이 {source}에서 발견됨 (유사도: {percent}%)"
            suggestion = "중복되는 부분을 수정하여 고유한 내용으로 작성하세요"

        return self.create_finding(
            message,
            "text-duplicate",
            self.engine.severity_for(similarity.weighted),
            original_text=text,
            suggestion=suggestion,
            confidence=similarity.weighted,
            duplicate_of=self.reference_to(entry, similarity),
        )
