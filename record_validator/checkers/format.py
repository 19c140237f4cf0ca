"""Special characters, quotation marks and bracket balance."""
import re
from typing import List

from record_validator.checkers.base import HANGUL_CLASS, RuleChecker
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity

PROHIBITED_CHAR_RE = re.compile(f"[^{HANGUL_CLASS}a-zA-Z0-9\\s\\-(),'.]")

NON_STANDARD_QUOTES = (
    (re.compile("[“”]"), "영문 따옴표"),
    (re.compile("[‘’]"), "영문 작은따옴표"),
    (re.compile("[「」]"), "일본식 따옴표"),
    (re.compile("[『』]"), "일본식 겹따옴표"),
)

BRACKET_PAIRS = (
    ("(", ")", "소괄호"),
    ("[", "]", "대괄호"),
    ("{", "}", "중괄호"),
    ("〈", "〉", "홑화살괄호"),
    ("《", "》", "겹화살괄호"),
)

CHAR_DESCRIPTIONS = {
    "!": "느낌표(!)",
    "?": "물음표(?)",
    "@": "골뱅이(@)",
    "#": "우물정자(#)",
    "$": "달러($)",
    "%": "퍼센트(%)",
    "^": "캐럿(^)",
    "&": "앰퍼샌드(&)",
    "*": "별표(*)",
    "+": "플러스(+)",
    "=": "등호(=)",
    "|": "세로선(|)",
    "\\": "역슬래시(\\)",
    "/": "슬래시(/)",
    ":": "콜론(:)",
    ";": "세미콜론(;)",
    "<": "작다기호(<)",
    ">": "크다기호(>)",
    "~": "틸드(~)",
    "`": "백틱(`)",
    "₩": "원화기호(₩)",
}

CHAR_SUGGESTIONS = {
    "!": "문장 끝에는 마침표(.) 사용",
    "?": "의문문이 아닌 경우 마침표(.) 사용",
    "@": "이메일 주소가 아닌 경우 삭제",
    "#": '삭제 또는 "제" 등으로 대체',
    "$": '삭제 또는 "달러" 등으로 표기',
    "%": '삭제 또는 "퍼센트" 등으로 표기',
    "&": '삭제 또는 "그리고", "와/과" 등으로 대체',
    "*": "삭제",
    "+": '삭제 또는 "플러스" 등으로 표기',
    "=": "삭제",
    "|": "삭제",
    "\\": "삭제",
    "/": '삭제 또는 "또는" 등으로 대체',
    ":": "삭제",
    ";": "삭제",
    "<": "삭제",
    ">": "삭제",
    "~": "삭제 또는 하이픈(-) 사용",
    "`": "삭제 또는 작은따옴표(') 사용",
    "₩": '삭제 또는 "원" 등으로 표기',
}


class FormatChecker(RuleChecker):
    kind = FindingKind.FORMAT
    name = "format"

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not text:
            return []
        findings: List[Finding] = []
        findings.extend(self._special_characters(text))
        findings.extend(self._quotation_marks(text))
        findings.extend(self._bracket_balance(text))
        return findings

    def _special_characters(self, text: str) -> List[Finding]:
        findings = []
        for char in dict.fromkeys(PROHIBITED_CHAR_RE.findall(text)):
            findings.append(self.create_finding(
                f"허용되지 않은 특수문자 사용: {CHAR_DESCRIPTIONS.get(char, f'특수문자({char})')}",
                "prohibited-special-character",
                Severity.WARNING,
                original_text=text,
                suggestion=CHAR_SUGGESTIONS.get(char, "허용된 문자로 대체"),
            ))
        return findings

    def _quotation_marks(self, text: str) -> List[Finding]:
        findings = []
        for pattern, description in NON_STANDARD_QUOTES:
            if pattern.search(text):
                findings.append(self.create_finding(
                    f"비표준 따옴표 사용: {description}",
                    "non-standard-quotation-marks",
                    Severity.INFO,
                    original_text=text,
                    suggestion="표준 따옴표(' 또는 \") 사용 권장",
                ))

        if text.count("'") % 2:
            findings.append(self.create_finding(
                "짝이 맞지 않는 작은따옴표가 있습니다",
                "mismatched-single-quotes",
                Severity.WARNING,
                original_text=text,
                suggestion="따옴표 쌍을 확인하세요",
            ))
        if text.count('"') % 2:
            findings.append(self.create_finding(
                "짝이 맞지 않는 큰따옴표가 있습니다",
                "mismatched-double-quotes",
                Severity.WARNING,
                original_text=text,
                suggestion="따옴표 쌍을 확인하세요",
            ))
        return findings

    def _bracket_balance(self, text: str) -> List[Finding]:
        findings = []
        for opening, closing, label in BRACKET_PAIRS:
            opened, closed = text.count(opening), text.count(closing)
            if opened != closed:
                findings.append(self.create_finding(
                    f"{label}의 개수가 맞지 않습니다 (열림: {opened}, 닫힘: {closed})",
                    "mismatched-brackets",
                    Severity.WARNING,
                    original_text=text,
                    suggestion=f"{label} 쌍을 확인하세요",
                ))
        return findings
