"""English words in Korean record text."""
import re
from typing import List

from record_validator.checkers.base import RuleChecker
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity

ALLOWED_TERMS = frozenset({
    # general acronyms
    "CEO", "PD", "UCC", "IT", "POP", "CF", "TV", "PAPS", "SNS", "PPT",
    "DVD", "CD", "USB", "GPS", "LED", "LCD", "AI", "VR", "AR",
    "URL", "HTTP", "HTTPS", "WWW", "PC", "OS", "SW", "HW",
    # education
    "STEAM", "STEM", "IB", "AP", "SAT", "TOEIC", "TOEFL", "IELTS",
    "GPA", "R&E", "MOOC",
    # short common words
    "OK", "NO", "YES", "Q&A", "FAQ", "TIP", "TOP", "NEW", "HOT",
    "ON", "OFF", "UP", "DOWN", "IN", "OUT",
})

# ASCII word boundaries so that "program을" still yields "program"
ALLOWED_PATTERNS = [
    re.compile(r"\b\d+[가-힣\s]*[A-Za-z]+[가-힣\s]*\d*\b", re.ASCII),  # road addresses
    re.compile(r"\b[A-Z][a-z]+\s[A-Z][a-z]+\b", re.ASCII),  # foreign names
    re.compile(r"\b(?:https?://)?(?:www\.)?[a-zA-Z0-9-]+\.[a-zA-Z]{2,}(?:/\S*)?\b", re.ASCII),
    re.compile(r"\b[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b", re.ASCII),
    re.compile(r"\b[A-Z]{1,3}\d{2,6}[A-Z]?\b", re.ASCII),  # model codes
    re.compile(r"\b\d+[a-zA-Z]{1,3}\b", re.ASCII),  # units
]

ENGLISH_WORD_RE = re.compile(r"\b[A-Za-z]+(?:&[A-Za-z]+)*\b", re.ASCII)
ENGLISH_PHRASE_RE = re.compile(r"\b[A-Z][a-z]+\s[A-Z][a-z]+(?:\s[A-Z][a-z]+)?\b", re.ASCII)
FOREIGN_NAME_RE = re.compile(r"^[A-Z][a-z]+(?:\s[A-Z][a-z]+){1,2}$")

BOOK_CONTEXTS = ("도서", "책", "저서", "논문", "학술지", "잡지", "신문")
TECHNICAL_CONTEXTS = (
    "프로그램", "시스템", "소프트웨어", "하드웨어", "네트워크",
    "데이터베이스", "알고리즘", "인터페이스", "플랫폼", "애플리케이션",
)

KOREAN_ALTERNATIVES = {
    "PROGRAM": "프로그램",
    "SYSTEM": "시스템",
    "PROJECT": "프로젝트",
    "TEAM": "팀",
    "GROUP": "그룹",
    "CLASS": "수업",
    "COURSE": "과정",
    "TEST": "시험",
    "EXAM": "시험",
    "STUDY": "학습",
    "CLUB": "동아리",
    "ACTIVITY": "활동",
    "EVENT": "행사",
    "CONTEST": "대회",
    "COMPETITION": "경시대회",
    "FESTIVAL": "축제",
    "CAMP": "캠프",
    "WORKSHOP": "워크숍",
    "SEMINAR": "세미나",
    "CONFERENCE": "회의",
}


class KoreanEnglishChecker(RuleChecker):
    """Flags English words that should be written in Korean."""

    kind = FindingKind.KOREAN_ENGLISH
    name = "korean_english"

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not text or self.is_only_numbers(text) or self.is_date_time(text):
            return []
        if not self.is_english_text(text):
            return []

        normalized = self.normalize_whitespace(text)
        findings = []
        for match in self.extract_english(normalized):
            if self.is_allowed(match, normalized):
                continue
            findings.append(self.create_finding(
                f'허용되지 않은 영문 표현: "{match}"',
                "korean-english-rule",
                Severity.WARNING,
                original_text=text,
                suggestion=KOREAN_ALTERNATIVES.get(match.upper(), "한글 표기 권장"),
            ))
        return findings

    @staticmethod
    def extract_english(text: str) -> List[str]:
        matches = ENGLISH_WORD_RE.findall(text) + ENGLISH_PHRASE_RE.findall(text)
        return list(dict.fromkeys(matches))

    def is_allowed(self, english: str, full_text: str) -> bool:
        if english.upper() in ALLOWED_TERMS:
            return True
        if any(p.search(english) or p.search(full_text) for p in ALLOWED_PATTERNS):
            return True
        if FOREIGN_NAME_RE.match(english):
            return True
        if any(word in full_text for word in BOOK_CONTEXTS):
            return True
        if re.search(f"['\"]{re.escape(english)}['\"]", full_text):
            return True
        return any(word in full_text for word in TECHNICAL_CONTEXTS)
