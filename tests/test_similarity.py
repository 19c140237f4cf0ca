import pytest

from record_validator.models.validation import Severity
from record_validator.services.similarity import (
    SimilarityEngine,
    SimilarityThresholds,
    SimilarityWeights,
    is_standard_expression,
    levenshtein,
    normalize_for_comparison,
    tokenize,
)

# 31 characters, seven tokens of two or more Hangul characters
SENTENCE = "학생은 수업 시간에 적극적으로 참여하며 친구들과 협력함."


class TestTokenize:
    def test_drops_punctuation_and_short_tokens(self) -> None:
        assert tokenize("나는 책, 그리고 공책!") == ["나는", "그리고", "공책"]

    def test_latin_and_digits_are_separators(self) -> None:
        assert tokenize("AI수업 2024년도") == ["수업", "년도"]

    def test_normalize_keeps_only_hangul(self) -> None:
        assert normalize_for_comparison("학생 A는 3번 발표함.") == "학생는번발표함"


class TestLevenshtein:
    def test_identical(self) -> None:
        assert levenshtein("학생", "학생") == 0

    def test_single_substitution(self) -> None:
        assert levenshtein("수업시간", "수학시간") == 1

    def test_against_empty(self) -> None:
        assert levenshtein("", "발표") == 2


class TestSimilarityEngine:
    def test_sentence_fixture_is_31_characters(self) -> None:
        assert len(SENTENCE) == 31

    def test_identical_text_scores_one(self, engine: SimilarityEngine) -> None:
        result = engine.compare(SENTENCE, SENTENCE)
        assert result.weighted == pytest.approx(1.0)
        assert result.jaccard == 1.0
        assert result.lcs == 1.0
        assert result.edit == 1.0

    def test_single_token_change_lands_between_info_and_error(self, engine: SimilarityEngine) -> None:
        changed = SENTENCE.replace("수업", "수학")
        result = engine.compare(SENTENCE, changed)

        assert 0.70 < result.weighted < 0.90
        assert result.jaccard == pytest.approx(6 / 8)
        assert result.edit == pytest.approx(1 - 1 / 24)

    def test_score_is_symmetric(self, engine: SimilarityEngine) -> None:
        other = "학생은 쉬는 시간에 친구들과 함께 독서 토론을 진행함."
        assert engine.compare(SENTENCE, other).weighted == pytest.approx(
            engine.compare(other, SENTENCE).weighted
        )

    def test_score_stays_in_unit_interval(self) -> None:
        engine = SimilarityEngine(weights=SimilarityWeights(jaccard=1.0, lcs=1.0, edit=1.0))
        assert engine.compare(SENTENCE, SENTENCE).weighted == 1.0

    def test_unrelated_text_scores_low(self, engine: SimilarityEngine) -> None:
        result = engine.compare(SENTENCE, "체육 대회 준비 과정에서 장비를 정리함.")
        assert result.weighted < 0.70
        assert engine.severity_for(result.weighted) is None

    def test_no_tokens_gives_zero_jaccard(self, engine: SimilarityEngine) -> None:
        score, matched = engine.jaccard("A B C", "1 2 3")
        assert score == 0.0
        assert matched == ()

    def test_both_empty_after_normalization(self, engine: SimilarityEngine) -> None:
        assert engine.edit_similarity("abc", "123") == 1.0
        assert engine.longest_common_run("abc", "123") == (0.0, "")

    def test_matched_words_are_reported(self, engine: SimilarityEngine) -> None:
        result = engine.compare(SENTENCE, SENTENCE.replace("수업", "수학"))
        assert "적극적으로" in result.matched_words
        assert "수업" not in result.matched_words

    def test_longest_common_run_is_relative_to_shorter_text(self, engine: SimilarityEngine) -> None:
        score, substring = engine.longest_common_run("친구들과 협력함", SENTENCE)
        assert score == 1.0
        assert substring == "친구들과협력함"


class TestThresholds:
    @pytest.mark.parametrize(
        "score, expected",
        [
            (0.95, Severity.ERROR),
            (0.90, Severity.ERROR),
            (0.85, Severity.WARNING),
            (0.70, Severity.INFO),
            (0.69, None),
        ],
    )
    def test_severity_bands(self, score: float, expected) -> None:
        assert SimilarityThresholds().severity_for(score) == expected

    def test_engine_reads_thresholds_from_settings(self, settings) -> None:
        tuned = settings.model_copy(update={"similarity_error_threshold": 0.99})
        engine = SimilarityEngine.from_settings(tuned)
        assert engine.severity_for(0.95) == Severity.WARNING


class TestStandardExpressions:
    def test_short_stock_phrase_is_standard(self) -> None:
        assert is_standard_expression("수업에 성실한 자세로 임함")

    def test_long_text_with_stock_phrase_is_not_standard(self) -> None:
        text = "성실한 자세로 실험 보고서를 작성하고 오차의 원인을 스스로 분석하여 개선 방안을 제시함."
        assert not is_standard_expression(text)

    def test_plain_text_is_not_standard(self) -> None:
        assert not is_standard_expression(SENTENCE)
