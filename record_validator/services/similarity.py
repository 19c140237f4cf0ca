"""Multi-metric text similarity for duplicate detection."""
from __future__ import annotations

import re
from dataclasses import dataclass
from difflib import SequenceMatcher
from typing import List, Optional, Tuple

from record_validator.core.config import Settings, get_settings
from record_validator.models.corpus import SimilarityResult
from record_validator.models.validation import Severity

_HANGUL = "\u1100-\u11FF\u3130-\u318F\uAC00-\uD7AF"
_TOKEN_SPLIT_RE = re.compile(f"[^{_HANGUL}\\s]")
_NON_HANGUL_RE = re.compile(f"[^{_HANGUL}]")

STANDARD_EXPRESSIONS = (
    "성실한 자세", "적극적인 참여", "바른 인성", "창의적 사고",
    "협력적 태도", "책임감 있는", "꾸준한 노력", "긍정적인 마음",
    "리더십을 발휘", "배려하는 마음", "성장하는 모습", "발전하는 자세",
    "노력하는 모습", "관심을 보임", "참여도가 높음", "이해도가 높음",
    "잘 수행함", "성과를 보임", "향상됨", "발전함",
)


@dataclass(frozen=True)
class SimilarityWeights:
    jaccard: float = 0.4
    lcs: float = 0.4
    edit: float = 0.2


@dataclass(frozen=True)
class SimilarityThresholds:
    error: float = 0.90
    warning: float = 0.80
    info: float = 0.70

    def severity_for(self, score: float) -> Optional[Severity]:
        if score >= self.error:
            return Severity.ERROR
        if score >= self.warning:
            return Severity.WARNING
        if score >= self.info:
            return Severity.INFO
        return None


def tokenize(text: str) -> List[str]:
    """Hangul word tokens of at least two characters, lowercased."""
    cleaned = _TOKEN_SPLIT_RE.sub(" ", text)
    return [word.lower() for word in cleaned.split() if len(word) >= 2]


def normalize_for_comparison(text: str) -> str:
    """Hangul-only form with all whitespace removed."""
    return _NON_HANGUL_RE.sub("", text).lower()


def levenshtein(a: str, b: str) -> int:
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            current.append(min(
                previous[j] + 1,
                current[j - 1] + 1,
                previous[j - 1] + (ca != cb),
            ))
        previous = current
    return previous[-1]


def is_standard_expression(text: str) -> bool:
    """True for short texts built around a sanctioned stock phrase."""
    normalized = text.strip().lower()
    return any(
        expression in normalized and len(normalized) < len(expression) + 20
        for expression in STANDARD_EXPRESSIONS
    )


class SimilarityEngine:
    """Weighted combination of token overlap, longest common run and edit distance."""

    def __init__(
        self,
        weights: Optional[SimilarityWeights] = None,
        thresholds: Optional[SimilarityThresholds] = None,
    ):
        self.weights = weights or SimilarityWeights()
        self.thresholds = thresholds or SimilarityThresholds()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SimilarityEngine":
        settings = settings or get_settings()
        return cls(
            weights=SimilarityWeights(
                jaccard=settings.similarity_jaccard_weight,
                lcs=settings.similarity_lcs_weight,
                edit=settings.similarity_edit_weight,
            ),
            thresholds=SimilarityThresholds(
                error=settings.similarity_error_threshold,
                warning=settings.similarity_warning_threshold,
                info=settings.similarity_info_threshold,
            ),
        )

    def jaccard(self, left: str, right: str) -> Tuple[float, Tuple[str, ...]]:
        a = set(tokenize(left))
        b = set(tokenize(right))
        union = a | b
        if not union:
            return 0.0, ()
        intersection = a & b
        return len(intersection) / len(union), tuple(sorted(intersection))

    def longest_common_run(self, left: str, right: str) -> Tuple[float, str]:
        a = normalize_for_comparison(left)
        b = normalize_for_comparison(right)
        shorter = min(len(a), len(b))
        if shorter == 0:
            return 0.0, ""
        matcher = SequenceMatcher(None, a, b, autojunk=False)
        match = matcher.find_longest_match(0, len(a), 0, len(b))
        return match.size / shorter, a[match.a:match.a + match.size]

    def edit_similarity(self, left: str, right: str) -> float:
        a = normalize_for_comparison(left)
        b = normalize_for_comparison(right)
        longest = max(len(a), len(b))
        if longest == 0:
            return 1.0
        return 1.0 - levenshtein(a, b) / longest

    def compare(self, left: str, right: str) -> SimilarityResult:
        jaccard, matched_words = self.jaccard(left, right)
        lcs, substring = self.longest_common_run(left, right)
        edit = self.edit_similarity(left, right)

        weighted = (
            jaccard * self.weights.jaccard
            + lcs * self.weights.lcs
            + edit * self.weights.edit
        )
        return SimilarityResult(
            jaccard=jaccard,
            lcs=lcs,
            edit=edit,
            weighted=min(1.0, max(0.0, weighted)),
            longest_common_substring=substring,
            matched_words=matched_words,
        )

    def severity_for(self, score: float) -> Optional[Severity]:
        return self.thresholds.severity_for(score)
