"""
Unit Tests for the teaching assistant endpoints
"""
import pytest
from datetime import date
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient

from prepx.models.assistant import AssistantUsage
from prepx.services.assistant_service import assistant_service


@pytest.fixture
def no_rag():
    """Knowledge-base search returns nothing"""
    with patch.object(
        assistant_service, 'search_rag', AsyncMock(return_value={'chunks': [], 'sources': []})
    ) as mocked:
        yield mocked


class TestChat:

    @pytest.mark.asyncio
    async def test_message_uses_fallback_without_ai(self, client: AsyncClient, auth_headers, no_rag):
        response = await client.post(
            '/api/v1/assistant/message', headers=auth_headers, json={'message': 'Explain Article 356'}
        )

        assert response.status_code == 200
        data = response.json()
        assert data['response']
        assert data['session_id']
        assert data['confidence'] == 0.5
        assert data['sources'] == []
        assert len(data['follow_ups']) > 0
        assert data['usage'] == {'today': 1, 'limit': 50, 'remaining': 49}
        no_rag.assert_awaited_once_with('Explain Article 356')

    @pytest.mark.asyncio
    async def test_history_follows_session(self, client: AsyncClient, auth_headers, no_rag):
        first = (await client.post(
            '/api/v1/assistant/message', headers=auth_headers, json={'message': 'What is federalism?'}
        )).json()
        await client.post(
            '/api/v1/assistant/message',
            headers=auth_headers,
            json={'message': 'And cooperative federalism?', 'session_id': first['session_id']},
        )

        history = await client.get(
            '/api/v1/assistant/history', headers=auth_headers, params={'session_id': first['session_id']}
        )
        assert [t['message_text'] for t in history.json()] == ['What is federalism?', 'And cooperative federalism?']

        usage = (await client.get('/api/v1/assistant/usage', headers=auth_headers)).json()
        assert usage['today'] == 2
        assert usage['total_messages'] == 2

    @pytest.mark.asyncio
    async def test_empty_message(self, client: AsyncClient, auth_headers, no_rag):
        response = await client.post('/api/v1/assistant/message', headers=auth_headers, json={'message': '   '})

        assert response.status_code == 400
        assert response.json()['error']['code'] == 'VALIDATION_ERROR'

    @pytest.mark.asyncio
    async def test_daily_limit(self, client: AsyncClient, auth_headers, test_user, db_session, no_rag):
        db_session.add(AssistantUsage(user_id=test_user.id, usage_date=date.today(), message_count=50))
        await db_session.commit()

        response = await client.post('/api/v1/assistant/message', headers=auth_headers, json={'message': 'Hi'})

        assert response.status_code == 429
        assert 'Upgrade to Pro' in response.json()['error']['message']
        no_rag.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_status(self, client: AsyncClient, auth_headers):
        data = (await client.get('/api/v1/assistant/status', headers=auth_headers)).json()

        assert data['status'] == 'ready'
        assert data['ai_available'] is False
        assert data['usage']['remaining'] == 50

    @pytest.mark.asyncio
    async def test_new_session(self, client: AsyncClient, auth_headers):
        data = (await client.post('/api/v1/assistant/sessions', headers=auth_headers)).json()
        assert len(data['session_id']) == 36


class TestPreferences:
    """Teaching-style preferences and presets"""

    @pytest.mark.asyncio
    async def test_defaults(self, client: AsyncClient, auth_headers):
        prefs = (await client.get('/api/v1/assistant/preferences', headers=auth_headers)).json()['preferences']

        assert prefs['teaching_style'] == 'detailed'
        assert prefs['tone'] == 'friendly'
        assert prefs['depth_level'] == 3

    @pytest.mark.asyncio
    async def test_save_and_reset(self, client: AsyncClient, auth_headers):
        saved = await client.put(
            '/api/v1/assistant/preferences',
            headers=auth_headers,
            json={'teaching_style': 'socratic', 'language': 'hinglish'},
        )
        assert saved.json()['preferences']['teaching_style'] == 'socratic'
        assert saved.json()['preferences']['tone'] == 'friendly'

        reset = await client.post('/api/v1/assistant/preferences/reset', headers=auth_headers)
        assert reset.json()['preferences']['language'] == 'english'

    @pytest.mark.asyncio
    @pytest.mark.parametrize('body', [
        {'teaching_style': 'rambling'},
        {'tone': 'sarcastic'},
        {'depth_level': 9},
        {'language': 'tamil'},
    ])
    async def test_invalid_values(self, client: AsyncClient, auth_headers, body):
        response = await client.put('/api/v1/assistant/preferences', headers=auth_headers, json=body)
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_apply_preset(self, client: AsyncClient, auth_headers):
        presets = (await client.get('/api/v1/assistant/preferences/presets', headers=auth_headers)).json()
        assert 'quick_revision' in [p['slug'] for p in presets]

        applied = await client.post('/api/v1/assistant/preferences/preset/quick_revision', headers=auth_headers)
        prefs = applied.json()['preferences']
        assert prefs['active_preset'] == 'quick_revision'
        assert prefs['teaching_style'] == 'concise'
        assert prefs['use_examples'] is False

    @pytest.mark.asyncio
    async def test_unknown_preset(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/assistant/preferences/preset/nope', headers=auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_preview_is_mock_without_ai(self, client: AsyncClient, auth_headers):
        response = await client.post(
            '/api/v1/assistant/preferences/preview',
            headers=auth_headers,
            json={'teaching_style': 'concise', 'tone': 'strict'},
        )

        data = response.json()
        assert data['source'] == 'mock'
        assert data['preview'].endswith("There's no shortcut to success.")


class TestCheckins:

    @pytest.mark.asyncio
    async def test_one_checkin_per_day(self, client: AsyncClient, auth_headers):
        first = await client.post(
            '/api/v1/assistant/checkins', headers=auth_headers, json={'mood': 2, 'study_hours': 3}
        )
        assert first.json()['streak'] == 1

        await client.post(
            '/api/v1/assistant/checkins', headers=auth_headers, json={'mood': 5, 'study_hours': 6.5, 'note': 'Good day'}
        )

        data = (await client.get('/api/v1/assistant/checkins', headers=auth_headers)).json()
        assert len(data['checkins']) == 1
        assert data['checkins'][0]['mood'] == 5
        assert data['average_mood'] == 5.0
        assert data['streak'] == 1

    @pytest.mark.asyncio
    async def test_mood_out_of_range(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/assistant/checkins', headers=auth_headers, json={'mood': 6})
        assert response.status_code == 422
