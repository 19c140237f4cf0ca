"""
Cross-student duplicate detection - text shared between different students.

Entries are grouped by the comparison group of their section so related
sections (for example club and volunteer activities) are compared together.
When the matched text belongs to the same document, the earlier student's
cell receives a mirror finding, so both students carry the duplicate.
A match in another document is reported on the later cell only, since the
earlier document's result is already final.
"""
from typing import List, Optional, Sequence

from record_validator.checkers.base import HANGUL_RE, CorpusChecker
from record_validator.models.corpus import CorpusEntry, SimilarityResult
from record_validator.models.document import RiskTier, SectionType
from record_validator.models.validation import (
    CellContext,
    DuplicateReference,
    Finding,
    FindingKind,
    Severity,
)
from record_validator.services.similarity import is_standard_expression

MATCH_TYPE_TEXT = {
    "exact": "거의 동일한 내용",
    "high_similarity": "높은 유사도",
    "template": "템플릿 사용",
}

MATCH_TYPE_SUGGESTIONS = {
    "exact": "내용을 완전히 다시 작성하여 학생 개별 특성을 반영하세요",
    "high_similarity": "유사한 부분을 수정하여 학생만의 고유한 내용으로 작성하세요",
    "template": "공통 템플릿 사용이 의심됩니다. 학생별 개별 특성을 더 구체적으로 기술하세요",
}

MAX_AFFECTED_OWNERS = 5


def comparison_key(context: CellContext) -> str:
    if context.section_type is SectionType.GENERAL:
        return f"section:{context.section_key}"
    return context.section_type.comparison_group


class CrossStudentDuplicateChecker(CorpusChecker):
    kind = FindingKind.CROSS_STUDENT_DUPLICATE
    name = "cross_student_duplicate"
    registry = "cross_student"

    def should_apply(self, context: CellContext) -> bool:
        return bool(context.owner)

    def qualifies(self, text: str, context: CellContext) -> bool:
        stripped = text.strip()
        if len(stripped) < self.settings.cross_student_min_length:
            return False
        if not self.is_korean_text(stripped):
            return False
        if context.section_type.risk_tier is RiskTier.EXCLUDED:
            return False
        if self.is_only_numbers(stripped) or self.is_date_time(stripped):
            return False
        if len(HANGUL_RE.findall(stripped)) < len(stripped) * self.settings.cross_student_korean_ratio:
            return False
        return not is_standard_expression(stripped)

    def match_type(self, score: float) -> Optional[str]:
        if score >= self.settings.cross_student_exact_threshold:
            return "exact"
        if score >= self.settings.cross_student_high_threshold:
            return "high_similarity"
        if score >= self.settings.cross_student_template_threshold:
            return "template"
        return None

    @staticmethod
    def severity_for(match_type: str, tier: RiskTier) -> Severity:
        if match_type == "exact":
            return Severity.ERROR
        if match_type == "high_similarity":
            return Severity.ERROR if tier is RiskTier.HIGH else Severity.WARNING
        if tier in (RiskTier.HIGH, RiskTier.MEDIUM):
            return Severity.WARNING
        return Severity.INFO

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not context.owner or not self.qualifies(text, context):
            return []

        group_key = comparison_key(context)
        matches = []
        async with self.corpus.lock(self.registry, group_key):
            group = self.corpus.entries(self.registry, [group_key])
            candidates = [
                entry for entry in reversed(group)
                if entry.owner != context.owner and not self.is_same_cell(entry, context)
            ][: self.settings.cross_student_max_comparisons]

            for entry in candidates:
                similarity = self.engine.compare(text, entry.text)
                match_type = self.match_type(similarity.weighted)
                if match_type is None:
                    continue
                affected = self.find_affected_owners(entry, similarity, group)
                owners = list(dict.fromkeys([context.owner, entry.owner, *affected]))
                matches.append((entry, similarity, match_type, owners))

            self.corpus.register(self.make_entry(text, context, group_key))

        matches.sort(key=lambda match: match[1].weighted, reverse=True)
        findings = []
        for entry, similarity, match_type, owners in matches:
            findings.append(self._finding(text, context, entry, similarity, match_type, owners))
            if entry.document_id == context.document_id:
                findings.append(self._mirror(text, context, entry, similarity, match_type, owners))
        return findings

    @staticmethod
    def find_affected_owners(
        source: CorpusEntry,
        similarity: SimilarityResult,
        group: Sequence[CorpusEntry],
    ) -> List[str]:
        """Other owners whose text shares a long matched word with the source."""
        long_words = [word for word in similarity.matched_words if len(word) > 3]
        affected: List[str] = []
        for entry in group:
            if not entry.owner or entry.owner == source.owner or entry.owner in affected:
                continue
            if any(word in entry.text for word in long_words):
                affected.append(entry.owner)
            if len(affected) >= MAX_AFFECTED_OWNERS:
                break
        return affected

    def _message(self, owner: str, section: Optional[str], percent: int, match_type: str, owners: List[str]) -> str:
        message = f"{MATCH_TYPE_TEXT[match_type]}: {owner}의 {section or '기록'}과 {percent}% 유사"
        message += f" (관련 학생: {', '.join(owners[:3])})"
        additional = len(owners) - 3
        if additional > 0:
            message += f" (추가 {additional}명의 학생과도 유사)"
        return message

    def _finding(self, text, context, entry, similarity, match_type, owners) -> Finding:
        percent = self.percentage(similarity.weighted)
        return self.create_finding(
            self._message(entry.owner, entry.section, percent, match_type, owners),
            f"cross-student-{match_type}",
            self.severity_for(match_type, context.section_type.risk_tier),
            original_text=text,
            suggestion=MATCH_TYPE_SUGGESTIONS[match_type],
            confidence=similarity.weighted,
            duplicate_of=self.reference_to(entry, similarity, match_type, owners),
        )

    def _mirror(self, text, context, entry, similarity, match_type, owners) -> Finding:
        """Finding placed on the earlier cell, pointing at the current one."""
        percent = self.percentage(similarity.weighted)
        message = self._message(context.owner, context.section_key, percent, match_type, owners)
        finding = self.create_finding(
            f"[{entry.owner} - {entry.section}] {message}",
            f"cross-student-{match_type}",
            self.severity_for(match_type, entry.section_type.risk_tier),
            original_text=entry.text,
            suggestion=MATCH_TYPE_SUGGESTIONS[match_type],
            confidence=similarity.weighted,
            duplicate_of=DuplicateReference(
                location=context.location,
                similarity=similarity.weighted,
                owner=context.owner,
                section=context.section_key,
                matched_text=similarity.longest_common_substring,
                matched_words=similarity.matched_words,
                match_type=match_type,
                affected_owners=tuple(owners),
            ),
        )
        finding.location = entry.location
        return finding
