"""
Unit Tests for settings parsing helpers
"""
from prepx.core.config import parse_cors_origins, parse_csv_list, settings


class TestParseCorsOrigins:

    def test_comma_separated(self):
        assert parse_cors_origins("http://a.com, http://b.com,") == ["http://a.com", "http://b.com"]

    def test_json_list(self):
        assert parse_cors_origins('["http://a.com", "http://b.com"]') == ["http://a.com", "http://b.com"]

    def test_list_passthrough(self):
        assert parse_cors_origins(["http://a.com"]) == ["http://a.com"]

    def test_other_types(self):
        assert parse_cors_origins(None) == []


class TestParseCsvList:

    def test_lowercases_and_strips(self):
        assert parse_csv_list(" Pro, PREMIUM ,annual") == ["pro", "premium", "annual"]

    def test_empty(self):
        assert parse_csv_list("") == []


class TestSettings:
    """Settings loaded from the test environment"""

    def test_pro_tiers(self):
        assert "pro" in settings.PRO_TIERS
        assert "free" not in settings.PRO_TIERS

    def test_rate_limit_disabled_for_tests(self):
        assert settings.RATE_LIMIT_ENABLED is False

    def test_cors_origins_parsed(self):
        assert isinstance(settings.CORS_ORIGINS, list)
        assert len(settings.CORS_ORIGINS) > 0
