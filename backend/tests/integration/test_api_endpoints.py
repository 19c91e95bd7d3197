"""
Integration Tests for API Endpoints
Every feature router rejects anonymous callers and answers signed-in students
"""
import pytest
from httpx import AsyncClient

PROTECTED_ENDPOINTS = [
    '/api/v1/auth/me',
    '/api/v1/subscriptions/me',
    '/api/v1/referrals/me',
    '/api/v1/bookmarks',
    '/api/v1/assistant/usage',
    '/api/v1/questions',
    '/api/v1/difficulty/badges',
    '/api/v1/practice/sessions/history',
    '/api/v1/predictor/dashboard',
    '/api/v1/ethics/profile',
    '/api/v1/community/discussions',
    '/api/v1/voice/preferences',
    '/api/v1/weekly-documentary/schedule',
    '/api/v1/social/dashboard',
]


class TestAuthenticationRequired:

    @pytest.mark.asyncio
    @pytest.mark.parametrize('path', PROTECTED_ENDPOINTS)
    async def test_anonymous_rejected(self, client: AsyncClient, path):
        response = await client.get(path)
        assert response.status_code == 401

    @pytest.mark.asyncio
    @pytest.mark.parametrize('path', [p for p in PROTECTED_ENDPOINTS if '/social/' not in p])
    async def test_student_allowed(self, client: AsyncClient, auth_headers, path):
        response = await client.get(path, headers=auth_headers)
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_inactive_user_forbidden(self, client: AsyncClient, test_user, auth_headers, db_session):
        test_user.is_active = False
        await db_session.commit()

        response = await client.get('/api/v1/bookmarks', headers=auth_headers)
        assert response.status_code == 403


class TestErrorEnvelope:
    """Domain errors share one JSON shape"""

    @pytest.mark.asyncio
    async def test_not_found_shape(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/questions/does-not-exist', headers=auth_headers)

        assert response.status_code == 404
        body = response.json()
        assert body['success'] is False
        assert body['error']['code'].endswith('_NOT_FOUND')
        assert 'message' in body['error']

    @pytest.mark.asyncio
    async def test_health_endpoints(self, client: AsyncClient):
        simple = await client.get('/api/v1/health')
        assert simple.json() == {'status': 'healthy', 'service': 'prepx-backend'}

        live = await client.get('/api/v1/health/live')
        assert live.status_code == 200
