"""
Integration Tests for a student's first study session
"""
import pytest
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient
from faker import Faker

from prepx.services.assistant_service import assistant_service

fake = Faker()


async def _register_and_login(client: AsyncClient) -> dict:
    email = fake.unique.email()
    password = 'securePassword123!'

    registered = await client.post('/api/v1/auth/register', json={
        'email': email,
        'password': password,
        'full_name': fake.name(),
    })
    assert registered.status_code == 201

    login = await client.post('/api/v1/auth/login', json={'email': email, 'password': password})
    assert login.status_code == 200
    return {'Authorization': f"Bearer {login.json()['access_token']}"}


class TestStudyFlow:

    @pytest.mark.asyncio
    async def test_register_bookmark_review(self, client: AsyncClient):
        headers = await _register_and_login(client)

        me = await client.get('/api/v1/auth/me', headers=headers)
        assert me.json()['exam_stage'] == 'prelims'

        bookmark = await client.post('/api/v1/bookmarks', headers=headers, json={
            'content_type': 'note',
            'content_id': 'federalism-1',
            'title': 'Cooperative federalism',
            'full_content': 'Article 263 provides for an Inter-State Council.',
            'tags': ['Polity'],
        })
        assert bookmark.status_code == 201

        review = await client.post(
            f"/api/v1/bookmarks/review/{bookmark.json()['id']}", headers=headers, json={'response': 'medium'}
        )
        assert review.json()['success'] is True

        streak = (await client.get('/api/v1/bookmarks/review/streak', headers=headers)).json()
        assert streak['current_streak'] == 1

        # new accounts start without a subscription
        entitlement = await client.post(
            '/api/v1/entitlements/check', headers=headers, json={'feature_slug': 'mock_test'}
        )
        assert entitlement.status_code == 200
        assert entitlement.json()['allowed'] is False

    @pytest.mark.asyncio
    async def test_referred_signup(self, client: AsyncClient, auth_headers):
        code = (await client.get('/api/v1/referrals/me', headers=auth_headers)).json()['referral_code']
        headers = await _register_and_login(client)

        tracked = await client.post('/api/v1/referrals/track', headers=headers, json={'code': code})
        assert tracked.json()['success'] is True

        stats = (await client.get('/api/v1/referrals/me', headers=auth_headers)).json()['stats']
        assert stats['total'] == 1

    @pytest.mark.asyncio
    async def test_assistant_and_practice_badges(self, client: AsyncClient):
        headers = await _register_and_login(client)

        no_rag = AsyncMock(return_value={'chunks': [], 'sources': []})
        with patch.object(assistant_service, 'search_rag', no_rag):
            chat = await client.post(
                '/api/v1/assistant/message', headers=headers, json={'message': 'Explain the doctrine of pith and substance'}
            )
        assert chat.status_code == 200
        assert chat.json()['usage']['remaining'] == 49

        attempt = await client.post('/api/v1/difficulty/attempts', headers=headers, json={
            'question_id': 'pyq-2019-12',
            'question_source': 'pyq',
            'difficulty': 'medium',
            'is_correct': True,
            'time_taken_seconds': 45,
        })
        assert attempt.status_code == 201
        assert 'first_steps' in [b['slug'] for b in attempt.json()['new_badges']]

        recommendation = (await client.get('/api/v1/difficulty/recommendation', headers=headers)).json()
        assert recommendation['recommended_difficulty'] in ('easy', 'medium', 'hard')
