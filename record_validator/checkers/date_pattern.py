"""
Date pattern checker - dates in records are written as yyyy.mm.dd.

Bare "number." runs outside a valid date are suspicious, short number.number.
runs are malformed dates, and one cell should not mix date styles.
"""
import re
from datetime import date
from typing import List, NamedTuple, Optional

from record_validator.checkers.base import RuleChecker
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity

PROBLEMATIC_NUMBER_RE = re.compile(r"\d+\.")
INVALID_DATE_RES = (
    re.compile(r"\d+\.\d+\."),
    re.compile(r"\d{1,3}\.\d{1,3}\."),
    re.compile(r"\d+\.\s"),
)
VALID_DATE_RES = (
    re.compile(r"\d{4}\.\d{1,2}\.\d{1,2}\."),
    re.compile(r"\d{4}\.\d{1,2}\.\d{1,2}\.-\d{4}\.\d{1,2}\.\d{1,2}\."),
    re.compile(r"\d{4}년\s*\d{1,2}월\s*\d{1,2}일"),
    re.compile(r"\d{4}-\d{2}-\d{2}"),
)
DATE_LIKE_RE = re.compile(r"\d{4}[.\-/년]\d{1,2}[.\-/월]\d{1,2}일?")
DATE_KEYWORDS = ("년", "월", "일", "기간", "날짜", "일정", "시기")


class Span(NamedTuple):
    text: str
    start: int
    end: int


def _spans(pattern: re.Pattern, text: str) -> List[Span]:
    return [Span(m.group(0), m.start(), m.end()) for m in pattern.finditer(text)]


def date_style(value: str) -> str:
    if "년" in value and "월" in value:
        return "한국어 형식"
    if "." in value:
        return "점 구분 형식"
    if "-" in value:
        return "하이픈 구분 형식"
    if "/" in value:
        return "슬래시 구분 형식"
    return "기타 형식"


class DatePatternChecker(RuleChecker):
    kind = FindingKind.DATE_PATTERN
    name = "date_pattern"

    def should_apply(self, context: CellContext) -> bool:
        return context.is_content_row

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not text or len(text.strip()) < 3:
            return []
        stripped = text.strip()
        if self.is_date_time(stripped) or self.is_only_numbers(stripped):
            return []

        valid_dates = [span for pattern in VALID_DATE_RES for span in _spans(pattern, stripped)]
        findings: List[Finding] = []

        for span in _spans(PROBLEMATIC_NUMBER_RE, stripped):
            if self._inside(span, valid_dates):
                continue
            findings.append(self.create_finding(
                f'잘못된 숫자 형식: "{span.text}" - 날짜 형식으로 변경이 필요할 수 있습니다',
                "problematic-number-pattern",
                Severity.WARNING,
                original_text=text,
                suggestion=self.suggest_date_format(span.text),
                confidence=0.8,
                highlight=self.highlight_for(stripped, span.start, span.end, radius=10),
            ))

        for pattern in INVALID_DATE_RES:
            for span in _spans(pattern, stripped):
                if self._inside(span, valid_dates):
                    continue
                findings.append(self.create_finding(
                    f'잘못된 날짜 형식: "{span.text}" - 올바른 날짜 형식을 사용하세요',
                    "invalid-date-format",
                    Severity.ERROR,
                    original_text=text,
                    suggestion=self.suggest_proper_date(span.text),
                    confidence=0.9,
                    highlight=self.highlight_for(stripped, span.start, span.end, radius=10),
                ))

        consistency = self._format_consistency(stripped, text)
        if consistency:
            findings.append(consistency)
        return findings

    @staticmethod
    def _inside(span: Span, valid_dates: List[Span]) -> bool:
        return any(span.start >= v.start and span.end <= v.end for v in valid_dates)

    def _format_consistency(self, stripped: str, original: str) -> Optional[Finding]:
        has_date_words = any(keyword in stripped for keyword in DATE_KEYWORDS)
        if not has_date_words and not re.search(r"\d{4}.*\d{1,2}.*\d{1,2}", stripped):
            return None

        dates = DATE_LIKE_RE.findall(stripped)
        if len(dates) < 2:
            return None
        styles = list(dict.fromkeys(date_style(value) for value in dates))
        if len(styles) < 2:
            return None
        return self.create_finding(
            f"날짜 형식이 일치하지 않습니다: {', '.join(styles)}",
            "date-format-inconsistency",
            Severity.WARNING,
            original_text=original,
            suggestion="일관된 날짜 형식을 사용하세요 (예: 2024.01.01.)",
        )

    @staticmethod
    def suggest_date_format(fragment: str) -> str:
        numbers = re.findall(r"\d+", fragment)
        if numbers:
            number = numbers[0]
            if len(number) == 4:
                return f'"{fragment}"가 날짜라면 "{number}.01.01." 형식으로 작성하세요'
            if len(number) <= 2:
                return f'"{fragment}"가 날짜라면 "{date.today().year}.{number.zfill(2)}.01." 형식으로 작성하세요'
        return f'"{fragment}"를 "YYYY.MM.DD." 형식의 날짜로 변경하세요'

    @staticmethod
    def suggest_proper_date(fragment: str) -> str:
        numbers = re.findall(r"\d+", fragment)
        if len(numbers) >= 3:
            year, month, day = numbers[:3]
            year = year if len(year) == 4 else f"20{year}"
            return f'"{fragment}"를 "{year}.{month.zfill(2)}.{day.zfill(2)}." 형식으로 변경하세요'
        if len(numbers) == 2:
            first, second = numbers
            return (
                f'"{fragment}"를 "{date.today().year}.{first.zfill(2)}.{second.zfill(2)}." '
                "형식으로 변경하세요"
            )
        return f'"{fragment}"를 "YYYY.MM.DD." 형식으로 변경하세요 (예: 2024.03.15.)'
