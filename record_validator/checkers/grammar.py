"""Light-weight Korean grammar and style checks."""
import re
from typing import List, Optional

from record_validator.checkers.base import RuleChecker
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity

SENTENCE_END_RE = re.compile(r"[.!?。]$")
MULTI_SPACE_RE = re.compile(r"\s{2,}")
PARTICLE_AFTER_PARENS_RE = re.compile(r"([가-힣]+)\(([^)]*)\)\s*([을를])")
LIST_ITEM_RES = (
    re.compile(r"^[\d\s]*[-•·]\s"),
    re.compile(r"^\d+\.\s"),
    re.compile(r"^[가나다라마바사아자차카타파하]\.\s"),
)
VERB_ENDINGS = ("다", "었다", "였다", "했다", "됐다", "된다", "한다", "있다", "없다")

ENGLISH_EXPRESSIONS = {
    "feedback": "피드백",
    "workshop": "워크숍",
    "seminar": "세미나",
    "project": "프로젝트",
    "program": "프로그램",
    "portfolio": "포트폴리오",
    "presentation": "발표",
    "report": "보고서",
    "assignment": "과제",
    "homework": "숙제",
    "test": "시험",
    "quiz": "퀴즈",
    "review": "검토, 복습",
    "practice": "연습",
    "training": "훈련",
    "activity": "활동",
    "experience": "경험",
    "interview": "인터뷰",
    "survey": "설문조사",
    "research": "연구",
    "study": "공부, 연구",
}
ENGLISH_EXPRESSION_RES = {
    english: re.compile(rf"\b{english}\b", re.IGNORECASE | re.ASCII)
    for english in ENGLISH_EXPRESSIONS
}


def has_final_consonant(char: str) -> Optional[bool]:
    """Whether a precomposed Hangul syllable ends in a batchim; None otherwise."""
    if not "가" <= char <= "힣":
        return None
    return (ord(char) - 0xAC00) % 28 != 0


def object_particle_for(word: str) -> Optional[str]:
    if not word:
        return None
    batchim = has_final_consonant(word[-1])
    if batchim is None:
        return "을"
    return "을" if batchim else "를"


class GrammarChecker(RuleChecker):
    kind = FindingKind.GRAMMAR
    name = "grammar"

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not text or self.is_only_numbers(text) or self.is_date_time(text):
            return []

        stripped = text.strip()
        findings: List[Finding] = []
        findings.extend(self._missing_period(stripped, text))
        findings.extend(self._double_spacing(stripped, text))
        findings.extend(self._particle_after_parentheses(stripped, text))
        findings.extend(self._english_expressions(stripped, text))
        return findings

    def _missing_period(self, stripped: str, original: str) -> List[Finding]:
        if len(stripped) < 10 or self._is_title(stripped) or self._is_list_item(stripped):
            return []
        if SENTENCE_END_RE.search(stripped):
            return []
        if not any(ending in stripped for ending in VERB_ENDINGS):
            return []
        return [self.create_finding(
            "문장의 끝에 마침표가 빠져있습니다",
            "missing-period",
            Severity.WARNING,
            original_text=original,
            suggestion=f"{stripped}.",
        )]

    def _double_spacing(self, stripped: str, original: str) -> List[Finding]:
        if not MULTI_SPACE_RE.search(stripped):
            return []
        return [self.create_finding(
            "연속된 공백이 발견되었습니다",
            "double-spacing",
            Severity.INFO,
            original_text=original,
            suggestion=self.normalize_whitespace(stripped),
        )]

    def _particle_after_parentheses(self, stripped: str, original: str) -> List[Finding]:
        findings = []
        for match in PARTICLE_AFTER_PARENS_RE.finditer(stripped):
            word, inner, particle = match.groups()
            expected = object_particle_for(word)
            if expected and expected != particle:
                findings.append(self.create_finding(
                    f'조사 사용이 부적절합니다. "{word}"에는 "{expected}"이 적절합니다',
                    "particle-with-parentheses",
                    Severity.WARNING,
                    original_text=original,
                    suggestion=stripped.replace(match.group(0), f"{word}({inner}){expected}", 1),
                ))
        return findings

    def _english_expressions(self, stripped: str, original: str) -> List[Finding]:
        findings = []
        for english, korean in ENGLISH_EXPRESSIONS.items():
            if ENGLISH_EXPRESSION_RES[english].search(stripped):
                findings.append(self.create_finding(
                    f'영어 표현 "{english}"는 한글로 표기하는 것이 권장됩니다',
                    "english-expression",
                    Severity.INFO,
                    original_text=original,
                    suggestion=f'"{korean}" 사용 권장',
                ))
        return findings

    @staticmethod
    def _is_title(text: str) -> bool:
        return (
            len(text) < 50
            and not any(marker in text for marker in ("다", "었", "했"))
            and not re.search(r"[.!?]", text)
        )

    @staticmethod
    def _is_list_item(text: str) -> bool:
        return any(pattern.search(text) for pattern in LIST_ITEM_RES)
