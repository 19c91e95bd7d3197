"""
Unit Tests for ethics simulator scoring helpers
"""
import pytest

from prepx.services.ethics_service import (
    normalize_evaluation,
    aggregate_dimensions,
    aggregate_tendencies,
    calculate_total_score,
    ranked_tendencies,
    percentile_rank,
    SCORING_DIMENSIONS,
    ETHICAL_TENDENCIES,
)


class TestNormalizeEvaluation:
    """Coercing model output into the evaluation shape"""

    def test_fills_missing_with_neutral(self):
        evaluation = normalize_evaluation({})

        assert set(evaluation["dimensionScores"]) == set(SCORING_DIMENSIONS)
        assert all(v == 50 for v in evaluation["dimensionScores"].values())
        assert all(v == 50 for v in evaluation["ethicalIndicators"].values())
        assert evaluation["score"] == 50
        assert evaluation["feedback"] == "Evaluation pending."
        assert evaluation["details"] == {"strengths": [], "weaknesses": []}

    def test_clamps_and_coerces(self):
        evaluation = normalize_evaluation({
            "dimensionScores": {"decision_quality": 140, "reasoning_depth": "72.6", "stakeholder_consideration": -5},
            "ethicalIndicators": {"justice": "n/a"},
            "score": 88,
            "feedback": "Clear reasoning.",
        })

        assert evaluation["dimensionScores"]["decision_quality"] == 100
        assert evaluation["dimensionScores"]["reasoning_depth"] == 73
        assert evaluation["dimensionScores"]["stakeholder_consideration"] == 0
        assert evaluation["ethicalIndicators"]["justice"] == 50
        assert evaluation["score"] == 88
        assert evaluation["feedback"] == "Clear reasoning."

    def test_score_defaults_to_weighted_total(self):
        evaluation = normalize_evaluation({"dimensionScores": {key: 80 for key in SCORING_DIMENSIONS}})
        assert evaluation["score"] == 80


class TestAggregates:

    def test_dimensions_average(self):
        scores = aggregate_dimensions([
            {key: 60 for key in SCORING_DIMENSIONS},
            {key: 81 for key in SCORING_DIMENSIONS},
        ])
        assert all(v == 70 for v in scores.values())

    def test_dimensions_empty(self):
        assert aggregate_dimensions([]) == {key: 0 for key in SCORING_DIMENSIONS}

    def test_tendencies_empty_is_neutral(self):
        assert aggregate_tendencies([]) == {key: 50 for key in ETHICAL_TENDENCIES}

    def test_tendencies_missing_keys_count_as_zero(self):
        result = aggregate_tendencies([{"care": 90}, {"care": 70, "justice": 40}])

        assert result["care"] == 80
        assert result["justice"] == 20
        assert result["utilitarian"] == 0


class TestTotalScore:

    def test_weighted_sum(self):
        scores = {
            "decision_quality": 100,
            "reasoning_depth": 80,
            "stakeholder_consideration": 60,
            "practical_implementation": 40,
        }
        # 30 + 20 + 15 + 8
        assert calculate_total_score(scores) == 73

    def test_difficulty_multiplier(self):
        scores = {key: 50 for key in SCORING_DIMENSIONS}
        assert calculate_total_score(scores, multiplier=2.0) == 100


class TestRanking:

    def test_strongest_first(self):
        ranked = ranked_tendencies({"utilitarian": 40, "deontological": 90, "virtue": 60, "care": 90, "justice": 10})
        assert ranked == ["deontological", "care", "virtue", "utilitarian", "justice"]

    def test_percentile(self):
        assert percentile_rank(70, [50, 60, 70, 80]) == 50.0
        assert percentile_rank(90, [10, 20, 30]) == 100.0
        assert percentile_rank(10, [10, 20]) == 0.0

    def test_percentile_without_peers(self):
        assert percentile_rank(42, []) == 100.0
