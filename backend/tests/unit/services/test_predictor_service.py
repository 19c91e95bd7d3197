"""
Unit Tests for topic prediction helpers
"""
import pytest

from prepx.services.predictor_service import (
    predict_from_history,
    proficiency_for,
    resource_suggestions,
)

RISING = {"2019": 1, "2020": 0, "2021": 2, "2022": 3, "2023": 4}
DECLINING = {"2017": 3, "2018": 3, "2019": 3, "2020": 0, "2021": 0, "2022": 0, "2023": 1}


class TestPredictFromHistory:
    """Forecast derived from year -> question count history"""

    def test_rising_topic(self):
        result = predict_from_history(RISING, 2023)

        assert result["trend"] == "rising"
        assert result["difficulty_score"] == pytest.approx(7.2)
        assert result["predicted_probability"] == pytest.approx(0.86)
        assert result["confidence_score"] == pytest.approx(0.65)
        assert result["year_over_year_change"] == pytest.approx(800.0)
        assert result["is_trending"] is True

    def test_declining_topic(self):
        result = predict_from_history(DECLINING, 2023)

        assert result["trend"] == "declining"
        assert result["is_trending"] is False
        assert result["year_over_year_change"] < 0

    def test_empty_history(self):
        result = predict_from_history({}, 2023)

        assert result["trend"] == "stable"
        assert result["predicted_probability"] == 0
        assert result["difficulty_score"] == pytest.approx(2.0)
        assert result["year_over_year_change"] == 0.0
        assert result["is_trending"] is False

    def test_new_topic_counts_as_full_change(self):
        result = predict_from_history({"2023": 2}, 2023)

        assert result["year_over_year_change"] == 100.0
        assert result["trend"] == "rising"

    def test_scores_bounded(self):
        heavy = {str(year): 20 for year in range(2000, 2024)}
        result = predict_from_history(heavy, 2023)

        assert 1.0 <= result["difficulty_score"] <= 10.0
        assert result["predicted_probability"] <= 1.0
        assert result["confidence_score"] <= 0.95


class TestProficiency:

    def test_levels(self):
        assert proficiency_for(0, 0) == "beginner"
        assert proficiency_for(5, 3) == "intermediate"
        assert proficiency_for(10, 8) == "advanced"
        assert proficiency_for(20, 18) == "mastered"

    def test_high_accuracy_needs_volume(self):
        assert proficiency_for(4, 4) == "beginner"
        assert proficiency_for(9, 9) == "intermediate"


class TestResources:

    def test_known_subject(self):
        assert "Laxmikanth Indian Polity" in resource_suggestions("polity")

    def test_unknown_subject(self):
        assert resource_suggestions("astrology") == ["UPSC Study Material", "Previous Year Questions"]
