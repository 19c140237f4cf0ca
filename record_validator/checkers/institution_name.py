"""Specific institution and instructor names, which school records must not name."""
import re
from typing import List

from record_validator.checkers.base import RuleChecker
from record_validator.models.validation import CellContext, Finding, FindingKind, Severity

ALLOWED_INSTITUTIONS = (
    # agencies under the Ministry of Education
    "대한민국학술원",
    "국사편찬위원회",
    "국립국제교육원",
    "국립특수교육원",
    "교원소청심사위원회",
    "중앙교육연수원",
    "교육부",
    "교육청",
    "교육지원청",
    "직속기관",
    "소속기관",
    "학교밖교육기관",
    "교육기관",
    "교육관련기관",
)

# a name starts where the previous character is not Hangul; particles may follow
_START = r"(?<![가-힣])"

PROHIBITED_PATTERNS = [
    re.compile(_START + r"[가-힣]+대학교?"),
    re.compile(_START + r"[가-힣]+(?:회사|기업|그룹|코퍼레이션)"),
    re.compile(r"[가-힣A-Za-z]+\s?(?:Corp|Inc|Ltd)\b", re.IGNORECASE),
    re.compile(_START + r"[가-힣]+병원"),
    re.compile(_START + r"[가-힣]+의료원"),
    re.compile(_START + r"[가-힣]+재단"),
    re.compile(_START + r"[가-힣]+법인"),
    re.compile(_START + r"[가-힣]+연구소"),
    re.compile(_START + r"[가-힣]+연구원"),
    re.compile(_START + r"[가-힣]+(?:연구|문화)?센터"),
    re.compile(_START + r"[가-힣]+학원"),
    re.compile(_START + r"[가-힣]+박물관"),
    re.compile(_START + r"[가-힣]+미술관"),
    re.compile(_START + r"[가-힣]+(?:교회|성당|사찰)"),
    re.compile(r"\b[A-Z][a-zA-Z]*\s?[가-힣]*(?:코리아|Korea)", re.IGNORECASE),
    re.compile(_START + r"[가-힣]+(?:방송|미디어|언론|신문|잡지)사"),
]

ALLOWED_PATTERNS = [
    re.compile(r"[가-힣]+교육청"),
    re.compile(r"[가-힣]+교육지원청"),
    re.compile(r"교육관련기관"),
    re.compile(r"학교밖교육기관"),
    re.compile(r"교육기관"),
    re.compile(r"교육부.*기관"),
    re.compile(r"교육부.*소속"),
]

INSTRUCTOR_RE = re.compile(
    _START + r"([가-힣]{2,4})\s?(?:선생님?|교사|강사|교수|박사|원장|대표|관장)(?![가-힣])"
)
# role words that precede a title without naming anyone
GENERIC_ROLES = frozenset({
    "담임", "지도", "진로", "상담", "전문", "외부", "담당", "교과", "초청",
    "보건", "사서", "체육", "음악", "미술", "과학", "영어", "수학", "국어",
})

VOLUNTEER_KEYWORDS = ("봉사", "봉사활동", "자원봉사", "장소", "주관기관")


class InstitutionNameChecker(RuleChecker):
    kind = FindingKind.INSTITUTION_NAME
    name = "institution_name"

    async def check(self, text: str, context: CellContext) -> List[Finding]:
        if not text or self.is_only_numbers(text) or self.is_date_time(text):
            return []

        normalized = self.normalize_whitespace(text)
        # volunteer locations may name the host institution
        if self.is_volunteer_context(normalized, context):
            return []

        findings = []
        for match in self.find_institutions(normalized):
            if self.is_allowed(match):
                continue
            findings.append(self.create_finding(
                f'구체적인 기관명 사용 금지: "{match}"',
                "institution-name-rule",
                Severity.ERROR,
                original_text=text,
                suggestion=self.suggest_alternative(match),
            ))

        for match in self.find_instructors(normalized):
            findings.append(self.create_finding(
                f'특정 강사명 사용 금지: "{match}"',
                "instructor-name-rule",
                Severity.ERROR,
                original_text=text,
                suggestion="강사, 전문가, 외부 강사 등으로 표기",
            ))
        return findings

    @staticmethod
    def is_volunteer_context(text: str, context: CellContext) -> bool:
        sheet = context.sheet or ""
        section = context.section_name or ""
        return any(
            keyword in text or keyword in sheet or keyword in section
            for keyword in VOLUNTEER_KEYWORDS
        )

    @staticmethod
    def find_institutions(text: str) -> List[str]:
        matches = []
        for pattern in PROHIBITED_PATTERNS:
            match = pattern.search(text)
            if match:
                matches.append(match.group(0).strip())
        return list(dict.fromkeys(matches))

    @staticmethod
    def find_instructors(text: str) -> List[str]:
        return [
            match.group(0)
            for match in INSTRUCTOR_RE.finditer(text)
            if match.group(1) not in GENERIC_ROLES
        ]

    @staticmethod
    def is_allowed(institution: str) -> bool:
        if institution in ALLOWED_INSTITUTIONS:
            return True
        if any(p.search(institution) for p in ALLOWED_PATTERNS):
            return True
        return any(keyword in institution for keyword in ALLOWED_INSTITUTIONS)

    @staticmethod
    def suggest_alternative(institution: str) -> str:
        if "대학" in institution:
            return "대학교, 고등교육기관"
        if "병원" in institution:
            return "의료기관"
        if "연구" in institution:
            return "연구기관"
        if "센터" in institution:
            return "문화시설, 교육시설"
        if "학원" in institution:
            return "교육기관"
        if "재단" in institution or "법인" in institution:
            return "기관, 단체"
        if "박물관" in institution or "미술관" in institution:
            return "문화시설"
        if any(word in institution for word in ("교회", "성당", "사찰")):
            return "종교시설"
        if "회사" in institution or "기업" in institution:
            return "기업체, 사업체"
        return "관련 기관, 외부 기관"
