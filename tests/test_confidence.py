"""
Tests for the additive confidence model and its band caps.
"""

import pytest

from agentic_rag.pipeline.confidence import (
    ConfidenceScorer,
    apply_band_cap,
    confidence_band,
    consistency_bonus,
    question_penalty,
    score_gap_penalty,
    source_count_bonus,
)
from agentic_rag.schemas.retrieval import SearchResult

QUESTION = "what is the capital of France"


def _results(*scores):
    return [SearchResult(text=f"chunk {i}", score=s) for i, s in enumerate(scores)]


@pytest.fixture
def scorer() -> ConfidenceScorer:
    return ConfidenceScorer()


class TestConfidenceScorer:
    def test_single_strong_result_should_score_ninety(self, scorer):
        confidence = scorer.evaluate(_results(0.9), QUESTION)

        assert confidence.value == 90.0
        assert confidence.band == "Very High"
        assert confidence.factors.base == pytest.approx(90.0)

    def test_empty_results_should_score_zero(self, scorer):
        confidence = scorer.evaluate([], QUESTION)

        assert confidence.value == 0.0
        assert confidence.band == "Very Low"

    def test_corroborated_results_should_be_capped_at_ninety_five(self, scorer):
        assert scorer.score(_results(0.95, 0.94, 0.93, 0.92), QUESTION) == 95.0

    def test_weak_result_and_short_question_should_floor_at_five(self, scorer):
        confidence = scorer.evaluate(_results(0.1), "hi")

        assert confidence.value == 5.0
        assert confidence.band == "Very Low"

    def test_two_moderate_results_should_land_in_medium(self, scorer):
        confidence = scorer.evaluate(_results(0.6, 0.55), QUESTION)

        assert confidence.value == pytest.approx(61.5)
        assert confidence.band == "Medium"

    @pytest.mark.parametrize(
        "scores",
        [(1.0,), (1.0, 1.0, 1.0, 1.0, 1.0), (0.0,), (0.0, 0.0), (0.99, 0.1), (0.45, 0.44, 0.2)],
    )
    def test_value_should_stay_within_bounds(self, scorer, scores):
        for question in ("", "hi", QUESTION):
            assert 0.0 <= scorer.score(_results(*scores), question) <= 100.0


class TestFactors:
    def test_source_count_bonus(self):
        assert [source_count_bonus(n) for n in range(6)] == [0.0, 0.0, 3.0, 5.0, 7.0, 7.0]

    def test_consistency_bonus_needs_two_results(self):
        assert consistency_bonus([0.9]) == 0.0
        assert consistency_bonus([0.9, 0.88]) == 3.0
        assert consistency_bonus([0.9, 0.2]) == 0.0

    def test_question_penalty_by_word_count(self):
        assert question_penalty(None) == -5.0
        assert question_penalty("refund policy") == -5.0
        assert question_penalty("what is refund policy") == -2.0
        assert question_penalty(QUESTION) == 0.0

    def test_score_gap_penalty(self):
        assert score_gap_penalty([0.9, 0.5]) == -3.0
        assert score_gap_penalty([0.9, 0.65]) == -1.0
        assert score_gap_penalty([0.9, 0.85]) == 0.0

    def test_band_caps(self):
        assert apply_band_cap(99.0) == 95.0
        assert apply_band_cap(84.0) == 84.0
        assert apply_band_cap(69.0) == 69.0
        assert apply_band_cap(2.0) == 5.0

    @pytest.mark.parametrize(
        "value, band",
        [(85, "Very High"), (84.9, "High"), (70, "High"), (50, "Medium"), (30, "Low"), (29.9, "Very Low")],
    )
    def test_band_boundaries(self, value, band):
        assert confidence_band(value).value == band
