"""
Unit Tests for assistant helpers (follow-ups, prompts, preferences, check-ins)
"""
import pytest
from datetime import date, timedelta

from prepx.core.exceptions import ValidationError
from prepx.services.assistant_service import (
    extract_follow_ups,
    strip_follow_ups,
    default_follow_ups,
    fallback_response,
    build_system_prompt,
    GENERIC_FOLLOW_UPS,
)
from prepx.services.assistant_preferences_service import (
    build_preference_lines,
    mock_preview,
    validate_preferences,
    checkin_streak,
    TEACHING_STYLES,
    TONES,
)

REPLY = (
    "Article 21 guarantees the right to life and personal liberty.\n\n"
    "**You might also want to ask:**\n"
    "- What is the procedure established by law?\n"
    "- Short?\n"
    "• How did Maneka Gandhi case widen Article 21?"
)


class TestFollowUps:
    """Follow-up question parsing"""

    def test_extracts_questions(self):
        assert extract_follow_ups(REPLY) == [
            "What is the procedure established by law?",
            "How did Maneka Gandhi case widen Article 21?",
        ]

    def test_no_section(self):
        assert extract_follow_ups("Just an answer.") == []
        assert extract_follow_ups(None) == []

    def test_strip_removes_section(self):
        assert strip_follow_ups(REPLY) == "Article 21 guarantees the right to life and personal liberty."

    def test_strip_without_section_is_identity(self):
        assert strip_follow_ups("  plain answer ") == "plain answer"

    def test_defaults_by_keyword(self):
        questions = default_follow_ups("Explain the basic structure of the Constitution")

        assert len(questions) == 3
        assert "federal structure" in questions[1]

    def test_generic_defaults(self):
        assert default_follow_ups("Tell me about monsoon winds") == GENERIC_FOLLOW_UPS


class TestPrompts:

    def test_fallback_mentions_name_and_weak_topics(self):
        text = fallback_response(
            "What is federalism?",
            {"user_name": "Asha", "weak_topics": [{"topic": "Polity"}, {"topic": "Economy"}, {"topic": "Art"}]},
        )

        assert text.startswith("Hello Asha!")
        assert "Polity, Economy" in text
        assert "Economy, Art" not in text

    def test_fallback_without_context(self):
        assert fallback_response("Hi", {}).startswith("Hello there!")

    def test_system_prompt_includes_context(self):
        prompt = build_system_prompt(
            {"user_name": "Asha", "exam_stage": "mains", "weak_topics": [{"topic": "Ethics"}], "accuracy": 62},
            [],
            {"teaching_style": "concise", "tone": "strict"},
        )

        assert "Name: Asha" in prompt
        assert "(mains)" in prompt
        assert "Weak areas needing attention: Ethics" in prompt
        assert "Current accuracy: 62%" in prompt
        assert TEACHING_STYLES["concise"] in prompt
        assert TONES["strict"] in prompt


class TestPreferenceLines:

    def test_defaults(self):
        lines = build_preference_lines({})

        assert lines[0] == f"- {TEACHING_STYLES['detailed']}"
        assert lines[1] == f"- {TONES['friendly']}"
        assert len(lines) == 7

    def test_toggles_drop_lines(self):
        lines = build_preference_lines({
            "use_examples": False,
            "include_mnemonics": False,
            "suggest_practice": False,
        })
        assert len(lines) == 4

    def test_preview_combines_style_and_tone(self):
        assert mock_preview("concise", "formal") != mock_preview("detailed", "formal")
        assert mock_preview("unknown", None) == mock_preview("detailed", None)


class TestValidatePreferences:

    def test_valid(self):
        validate_preferences({"teaching_style": "socratic", "tone": "motivational", "depth_level": 5, "language": "hindi"})

    def test_partial_update_allowed(self):
        validate_preferences({"tone": "formal"})

    @pytest.mark.parametrize("data,field", [
        ({"teaching_style": "lecture"}, "teaching_style"),
        ({"tone": "sarcastic"}, "tone"),
        ({"depth_level": 6}, "depth_level"),
        ({"depth_level": 0}, "depth_level"),
        ({"language": "french"}, "language"),
    ])
    def test_invalid(self, data, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_preferences(data)
        assert exc_info.value.details["field"] == field


class TestCheckinStreak:
    """Consecutive study check-in days"""

    def test_no_checkins(self):
        assert checkin_streak([], today=date(2024, 5, 10)) == 0

    def test_streak_including_today(self):
        today = date(2024, 5, 10)
        dates = [today - timedelta(days=i) for i in range(4)]

        assert checkin_streak(dates, today=today) == 4

    def test_streak_ending_yesterday(self):
        today = date(2024, 5, 10)
        dates = [today - timedelta(days=i) for i in range(1, 3)]

        assert checkin_streak(dates, today=today) == 2

    def test_gap_breaks_streak(self):
        today = date(2024, 5, 10)
        dates = [today, today - timedelta(days=1), today - timedelta(days=3)]

        assert checkin_streak(dates, today=today) == 2

    def test_old_checkins_only(self):
        today = date(2024, 5, 10)
        assert checkin_streak([today - timedelta(days=5)], today=today) == 0
