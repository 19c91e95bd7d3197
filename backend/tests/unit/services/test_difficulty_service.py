"""
Unit Tests for difficulty prediction and progress helpers
"""
import pytest

from prepx.core.exceptions import ValidationError
from prepx.services.difficulty_service import (
    difficulty_service,
    score_to_difficulty,
    predict_rule_based,
    step_difficulty,
    comfort_level,
)

ANALYTICAL_QUESTION = (
    "Critically analyse the implications of cooperative federalism; evaluate and discuss to what "
    "extent it has been substantiated in practice, and assess its interlink with fiscal devolution?"
)


class TestScoreToDifficulty:

    def test_thresholds(self):
        assert score_to_difficulty(0.0) == "easy"
        assert score_to_difficulty(0.349) == "easy"
        assert score_to_difficulty(0.35) == "medium"
        assert score_to_difficulty(0.649) == "medium"
        assert score_to_difficulty(0.65) == "hard"
        assert score_to_difficulty(1.0) == "hard"


class TestRuleBasedPrediction:
    """Complexity scoring from the question text"""

    def test_short_recall_question_is_easy(self):
        result = predict_rule_based("What is GDP?", "mcq")

        assert result["predicted_difficulty"] == "easy"
        assert result["complexity_score"] < 0.35
        assert result["factors"]["word_count"] == 3
        assert result["factors"]["analytical_keywords"] == []
        assert result["factors"]["multi_part"] is False

    def test_analytical_essay_is_hard(self):
        result = predict_rule_based(ANALYTICAL_QUESTION, "essay")

        assert result["predicted_difficulty"] == "hard"
        assert result["factors"]["multi_part"] is True
        assert "critically" in result["factors"]["analytical_keywords"]
        assert len(result["factors"]["analytical_keywords"]) >= 3

    def test_statement_style_mcq_bumps_score(self):
        plain = predict_rule_based("Consider the following about the Finance Commission.", "mcq")
        statements = predict_rule_based(
            "Consider the following statements about the Finance Commission. Which are correct.", "mcq"
        )
        assert statements["complexity_score"] > plain["complexity_score"]

    def test_score_and_confidence_bounded(self):
        result = predict_rule_based(ANALYTICAL_QUESTION * 10, "essay")

        assert 0 <= result["complexity_score"] <= 1.0
        assert 0.6 <= result["confidence"] <= 0.95

    def test_unknown_type_uses_default_weight(self):
        result = predict_rule_based("What is GDP?")
        assert result["factors"]["question_type"] is None
        assert result["complexity_score"] == pytest.approx(0.106)


class TestStepDifficulty:

    def test_steps_within_levels(self):
        assert step_difficulty("easy", 1) == "medium"
        assert step_difficulty("medium", -1) == "easy"

    def test_clamped_at_edges(self):
        assert step_difficulty("hard", 1) == "hard"
        assert step_difficulty("easy", -1) == "easy"

    def test_unknown_starts_at_medium(self):
        assert step_difficulty("unknown", 0) == "medium"
        assert step_difficulty("unknown", 1) == "hard"


class TestComfortLevel:

    def test_levels(self):
        assert comfort_level(0, 0) == "Not Started"
        assert comfort_level(5, 0.9) == "Beginner"
        assert comfort_level(20, 0.4) == "Beginner"
        assert comfort_level(20, 0.6) == "Intermediate"
        assert comfort_level(20, 0.9) == "Advanced"
        assert comfort_level(60, 0.8) == "Advanced"
        assert comfort_level(60, 0.9) == "Mastered"


class TestPredict:
    """Service entry point without an AI key"""

    @pytest.mark.asyncio
    async def test_empty_text_rejected(self):
        with pytest.raises(ValidationError):
            await difficulty_service.predict("   ")

    @pytest.mark.asyncio
    async def test_falls_back_to_rule_based(self):
        result = await difficulty_service.predict("What is GDP?", "mcq", use_ai=True)

        assert result["source"] == "rule_based"
        assert result["difficulty"] == "easy"
        assert result["ai_analysis"] is None
