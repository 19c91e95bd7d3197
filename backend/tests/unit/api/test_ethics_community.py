"""
Unit Tests for the ethics simulator and community discussion endpoints
"""
import httpx
import pytest
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient

from prepx.core.exceptions import ExternalServiceError
from prepx.models.ethics import EthicsScenario, EthicsStage
from prepx.utils.http_client import http_client


@pytest.fixture
async def scenario(db_session):
    scenario = EthicsScenario(
        title='Flood relief diversion',
        context='As District Collector you learn relief funds are being diverted by a local MLA.',
        category='Public Administration',
        difficulty='easy',
        stakeholders=['Flood victims', 'MLA', 'State government'],
        stages=[
            EthicsStage(stage_number=1, prompt='What is your immediate action?', options=['Report', 'Investigate']),
            EthicsStage(stage_number=2, stage_type='consequence', prompt='The MLA threatens a transfer. Respond.'),
        ],
    )
    db_session.add(scenario)
    await db_session.commit()
    return scenario


async def _complete_simulation(client: AsyncClient, headers: dict, scenario) -> str:
    started = (await client.post(
        '/api/v1/ethics/sessions', headers=headers, json={'scenario_id': scenario.id}
    )).json()
    session_id = started['sessionId']
    for stage in scenario.stages:
        await client.post(
            f'/api/v1/ethics/sessions/{session_id}/responses',
            headers=headers,
            json={'stage_id': stage.id, 'response_text': 'Secure the funds and inform the Chief Secretary.'},
        )
    await client.post(f'/api/v1/ethics/sessions/{session_id}/complete', headers=headers)
    return session_id


class TestEthicsCatalogue:

    @pytest.mark.asyncio
    async def test_metadata(self, client: AsyncClient):
        data = (await client.get('/api/v1/ethics/metadata')).json()

        assert data['difficultyLevels']['hard']['multiplier'] == 2.0
        assert set(data['scoringDimensions']) == {
            'decision_quality', 'reasoning_depth', 'stakeholder_consideration', 'practical_implementation'
        }

    @pytest.mark.asyncio
    async def test_list_and_detail(self, client: AsyncClient, auth_headers, scenario):
        listed = (await client.get(
            '/api/v1/ethics/scenarios', headers=auth_headers, params={'difficulty': 'easy'}
        )).json()['scenarios']
        assert [s['title'] for s in listed] == ['Flood relief diversion']
        assert listed[0]['difficulty_level'] == 'Student'

        detail = (await client.get(f'/api/v1/ethics/scenarios/{scenario.id}', headers=auth_headers)).json()
        assert [s['stage_number'] for s in detail['stages']] == [1, 2]

    @pytest.mark.asyncio
    async def test_invalid_difficulty_filter(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/ethics/scenarios', headers=auth_headers, params={'difficulty': 'extreme'})
        assert response.status_code == 400


class TestEthicsSimulation:
    """Session lifecycle without an AI key: neutral evaluations"""

    @pytest.mark.asyncio
    async def test_stage_flow(self, client: AsyncClient, auth_headers, scenario):
        started = await client.post('/api/v1/ethics/sessions', headers=auth_headers, json={'scenario_id': scenario.id})
        assert started.status_code == 201
        session_id = started.json()['sessionId']
        assert started.json()['currentStage']['stage_number'] == 1

        first = await client.post(
            f'/api/v1/ethics/sessions/{session_id}/responses',
            headers=auth_headers,
            json={'stage_id': scenario.stages[0].id, 'response_text': 'Report to the Chief Secretary.'},
        )
        assert first.json()['isComplete'] is False
        assert first.json()['nextStage']['stage_number'] == 2
        assert first.json()['evaluation']['score'] == 50

        duplicate = await client.post(
            f'/api/v1/ethics/sessions/{session_id}/responses',
            headers=auth_headers,
            json={'stage_id': scenario.stages[0].id, 'response_text': 'Changed my mind.'},
        )
        assert duplicate.status_code == 409

        last = await client.post(
            f'/api/v1/ethics/sessions/{session_id}/responses',
            headers=auth_headers,
            json={'stage_id': scenario.stages[1].id, 'response_text': 'Stand firm and document everything.'},
        )
        assert last.json()['isComplete'] is True

        session = (await client.get(f'/api/v1/ethics/sessions/{session_id}', headers=auth_headers)).json()
        assert len(session['responses']) == 2

    @pytest.mark.asyncio
    async def test_complete_and_report_card(self, client: AsyncClient, auth_headers, scenario):
        session_id = await _complete_simulation(client, auth_headers, scenario)

        card = (await client.get(f'/api/v1/ethics/sessions/{session_id}/report-card', headers=auth_headers)).json()
        assert card['total_score'] == 50
        assert card['percentile'] == 100.0
        assert card['content']['narrative'] == 'Analysis in progress.'

        profile = (await client.get('/api/v1/ethics/profile', headers=auth_headers)).json()['profile']
        assert profile['simulations_completed'] == 1
        assert profile['primary_tendency'] == 'utilitarian'
        assert profile['secondary_tendency'] == 'deontological'

        again = await client.post(f'/api/v1/ethics/sessions/{session_id}/complete', headers=auth_headers)
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_peer_comparison(self, client: AsyncClient, auth_headers, other_auth_headers, scenario):
        await _complete_simulation(client, other_auth_headers, scenario)
        session_id = await _complete_simulation(client, auth_headers, scenario)

        data = (await client.get(
            f'/api/v1/ethics/sessions/{session_id}/peer-comparison', headers=auth_headers
        )).json()
        assert data['peerCount'] == 1
        assert data['peerAverage'] == 50.0
        # ties are not counted as beaten
        assert data['percentile'] == 0.0

    @pytest.mark.asyncio
    async def test_retry_uses_default_context(self, client: AsyncClient, auth_headers, scenario):
        session_id = await _complete_simulation(client, auth_headers, scenario)

        response = await client.post(f'/api/v1/ethics/sessions/{session_id}/retry', headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data['newSessionId'] != session_id
        assert data['retryContext'] == 'Retry with added time pressure and media scrutiny.'

    @pytest.mark.asyncio
    async def test_video_queued_when_renderer_down(self, client: AsyncClient, auth_headers, scenario):
        session_id = await _complete_simulation(client, auth_headers, scenario)

        failing = AsyncMock(side_effect=ExternalServiceError('revideo', 'connection refused'))
        with patch.object(http_client, 'post_json', failing):
            response = await client.post(f'/api/v1/ethics/sessions/{session_id}/video', headers=auth_headers)

        assert response.json() == {'success': True, 'status': 'queued'}

    @pytest.mark.asyncio
    async def test_video_queued_on_garbled_renderer_reply(self, client: AsyncClient, auth_headers, scenario):
        session_id = await _complete_simulation(client, auth_headers, scenario)

        reply = httpx.Response(200, text='Service Unavailable', request=httpx.Request('POST', 'http://revideo.local'))
        with patch.object(http_client, '_request', AsyncMock(return_value=reply)):
            response = await client.post(f'/api/v1/ethics/sessions/{session_id}/video', headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {'success': True, 'status': 'queued'}

    @pytest.mark.asyncio
    async def test_session_owned_by_user(self, client: AsyncClient, auth_headers, other_auth_headers, scenario):
        started = (await client.post(
            '/api/v1/ethics/sessions', headers=auth_headers, json={'scenario_id': scenario.id}
        )).json()

        response = await client.get(f"/api/v1/ethics/sessions/{started['sessionId']}", headers=other_auth_headers)
        assert response.status_code == 404
        assert response.json()['error']['code'] == 'SESSION_NOT_FOUND'


class TestCommunity:
    """Discussion threads"""

    @pytest.mark.asyncio
    async def test_create_and_reply(self, client: AsyncClient, auth_headers, other_auth_headers):
        created = await client.post(
            '/api/v1/community/discussions',
            headers=auth_headers,
            json={'title': 'Best source for GS3 economy?', 'content': 'Ramesh Singh or Sriram notes?',
                  'category': 'Economy', 'tags': 'gs3, economy'},
        )
        assert created.status_code == 201
        discussion = created.json()
        assert discussion['category'] == 'economy'
        assert discussion['tags'] == ['gs3', 'economy']

        first = (await client.post(
            f"/api/v1/community/discussions/{discussion['id']}/replies",
            headers=other_auth_headers, json={'content': 'Ramesh Singh plus Economic Survey.'},
        )).json()
        second = (await client.post(
            f"/api/v1/community/discussions/{discussion['id']}/replies",
            headers=other_auth_headers, json={'content': 'Sriram notes are enough.'},
        )).json()

        await client.post(f"/api/v1/community/replies/{second['id']}/upvote", headers=auth_headers)
        accepted = await client.post(f"/api/v1/community/replies/{first['id']}/accept", headers=auth_headers)
        assert accepted.json()['success'] is True

        thread = (await client.get(f"/api/v1/community/discussions/{discussion['id']}", headers=auth_headers)).json()
        assert thread['reply_count'] == 2
        assert thread['view_count'] == 1
        assert [r['id'] for r in thread['replies']] == [first['id'], second['id']]
        assert thread['replies'][0]['is_answer'] is True

    @pytest.mark.asyncio
    async def test_only_author_accepts(self, client: AsyncClient, auth_headers, other_auth_headers):
        discussion = (await client.post(
            '/api/v1/community/discussions', headers=auth_headers,
            json={'title': 'Anthropology optional?', 'content': 'Worth it?'},
        )).json()
        reply = (await client.post(
            f"/api/v1/community/discussions/{discussion['id']}/replies",
            headers=other_auth_headers, json={'content': 'Yes'},
        )).json()

        response = await client.post(f"/api/v1/community/replies/{reply['id']}/accept", headers=other_auth_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_category(self, client: AsyncClient, auth_headers):
        response = await client.post(
            '/api/v1/community/discussions', headers=auth_headers,
            json={'title': 'Hello', 'content': 'World', 'category': 'sports'},
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_pin_requires_admin(self, client: AsyncClient, auth_headers, admin_auth_headers):
        discussion = (await client.post(
            '/api/v1/community/discussions', headers=auth_headers,
            json={'title': 'Prelims 2025 strategy', 'content': 'Share yours'},
        )).json()

        denied = await client.post(f"/api/v1/community/discussions/{discussion['id']}/pin", headers=auth_headers)
        assert denied.status_code == 403

        pinned = await client.post(f"/api/v1/community/discussions/{discussion['id']}/pin", headers=admin_auth_headers)
        assert pinned.json()['is_pinned'] is True

    @pytest.mark.asyncio
    async def test_delete_by_other_user_forbidden(self, client: AsyncClient, auth_headers, other_auth_headers):
        discussion = (await client.post(
            '/api/v1/community/discussions', headers=auth_headers,
            json={'title': 'Delete me', 'content': 'Soon'},
        )).json()

        denied = await client.delete(f"/api/v1/community/discussions/{discussion['id']}", headers=other_auth_headers)
        assert denied.status_code == 403

        deleted = await client.delete(f"/api/v1/community/discussions/{discussion['id']}", headers=auth_headers)
        assert deleted.json() == {'success': True}
