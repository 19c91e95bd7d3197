"""
Unit Tests for database URL handling and request logging rules
"""
import pytest
from sqlalchemy.pool import NullPool

from prepx.core import database
from prepx.core.middleware import should_skip_logging, slow_threshold_ms, SLOW_REQUEST_MS, SLOW_AI_REQUEST_MS


class TestDatabaseUrl:

    @pytest.mark.parametrize('raw, expected', [
        ('postgresql://u:p@db/prepx', 'postgresql+asyncpg://u:p@db/prepx'),
        ('postgres://u:p@db/prepx', 'postgresql+asyncpg://u:p@db/prepx'),
        ('sqlite:///./local.db', 'sqlite+aiosqlite:///./local.db'),
        ('sqlite+aiosqlite:///./test.db', 'sqlite+aiosqlite:///./test.db'),
    ])
    def test_async_driver(self, monkeypatch, raw, expected):
        monkeypatch.setattr(database.settings, 'DATABASE_URL', raw)
        assert database.get_database_url() == expected

    def test_sqlite_uses_null_pool(self):
        options = database.engine_options('sqlite+aiosqlite:///./test.db')

        assert options['poolclass'] is NullPool
        assert options['connect_args'] == {'check_same_thread': False}

    def test_production_postgres_pool(self, monkeypatch):
        monkeypatch.setattr(database.settings, 'DEBUG', False)
        monkeypatch.setattr(database.settings, 'ENVIRONMENT', 'production')

        options = database.engine_options('postgresql+asyncpg://u:p@db/prepx')

        assert 'poolclass' not in options
        assert options['pool_pre_ping'] is True
        assert options['pool_size'] == database.settings.DB_POOL_SIZE


class TestRequestLoggingRules:

    @pytest.mark.parametrize('path', ['/health', '/api/v1/health', '/docs', '/static/app.js'])
    def test_skipped(self, path):
        assert should_skip_logging(path) is True

    def test_api_logged(self):
        assert should_skip_logging('/api/v1/bookmarks') is False

    @pytest.mark.parametrize('path', [
        '/api/v1/assistant/message',
        '/api/v1/questions/generate',
        '/api/v1/ethics/sessions/abc/stage',
        '/api/v1/voice/generate',
    ])
    def test_ai_routes_get_wider_budget(self, path):
        assert slow_threshold_ms(path) == SLOW_AI_REQUEST_MS

    def test_default_budget(self):
        assert slow_threshold_ms('/api/v1/bookmarks/count') == SLOW_REQUEST_MS
