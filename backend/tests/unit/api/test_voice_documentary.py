"""
Unit Tests for voice, weekly documentary and health endpoints
"""
import pytest
from datetime import date
from unittest.mock import AsyncMock, patch
from httpx import AsyncClient

from prepx.core.exceptions import ExternalServiceError
from prepx.models.documentary import WeeklyDocumentary, RenderStatus
from prepx.models.voice import VoiceOption, VoiceClone
from prepx.services.documentary_service import documentary_service
from prepx.services.voice_service import voice_service
from prepx.utils.http_client import http_client


@pytest.fixture
async def voices(db_session):
    free = VoiceOption(
        voice_id='alloy', name='Asha', gender='female', accent='indian_english',
        style='mentor', display_order=0, use_count=4, avg_rating=4.0,
    )
    premium = VoiceOption(
        voice_id='onyx', name='Vikram', gender='male', accent='british',
        style='professor', is_premium=True, required_tier='pro', display_order=1,
    )
    db_session.add_all([free, premium])
    await db_session.commit()
    return {'free': free, 'premium': premium}


class TestVoiceCatalogue:

    @pytest.mark.asyncio
    async def test_list_marks_access(self, client: AsyncClient, auth_headers, voices):
        response = await client.get('/api/v1/voice/voices', headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data['user_tier'] == 'free'
        access = {v['name']: v['has_access'] for v in data['voices']}
        assert access == {'Asha': True, 'Vikram': False}

    @pytest.mark.asyncio
    async def test_filter_by_gender(self, client: AsyncClient, auth_headers, voices):
        response = await client.get('/api/v1/voice/voices', headers=auth_headers, params={'gender': 'male'})
        assert [v['name'] for v in response.json()['voices']] == ['Vikram']

    @pytest.mark.asyncio
    async def test_preview_requires_voice_id(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/voice/preview', headers=auth_headers)

        assert response.status_code == 400
        assert response.json()['error']['message'] == 'Voice ID required'

    @pytest.mark.asyncio
    async def test_premium_preview_locked_for_free(self, client: AsyncClient, auth_headers, voices):
        response = await client.get(
            '/api/v1/voice/preview', headers=auth_headers, params={'voice_id': voices['premium'].id}
        )

        data = response.json()
        assert data['preview_available'] is False
        assert data['upgrade_required'] is True
        assert data['required_tier'] == 'pro'

    @pytest.mark.asyncio
    async def test_speed_options(self, client: AsyncClient, auth_headers):
        data = (await client.get('/api/v1/voice/speed-options', headers=auth_headers)).json()

        assert data['min'] == 0.75
        assert data['max'] == 1.5
        assert data['default'] == 1.0

    @pytest.mark.asyncio
    async def test_styles_seeded_and_previewed(self, client: AsyncClient, auth_headers):
        styles = (await client.get('/api/v1/voice/styles', headers=auth_headers)).json()['styles']
        assert 'mentor' in [s['style_type'] for s in styles]

        preview = await client.post(
            '/api/v1/voice/preview-style', headers=auth_headers, json={'style': 'mentor', 'text': 'Article 21'}
        )
        assert preview.status_code == 200
        assert preview.json()['styled_prompt'].endswith('Article 21')

        missing = await client.post('/api/v1/voice/preview-style', headers=auth_headers, json={'style': 'opera'})
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_rating(self, client: AsyncClient, auth_headers, voices):
        response = await client.post(
            '/api/v1/voice/rate', headers=auth_headers, json={'voice_id': voices['free'].id, 'rating': 5}
        )
        assert response.json()['new_rating'] == pytest.approx(4.2)

        invalid = await client.post(
            '/api/v1/voice/rate', headers=auth_headers, json={'voice_id': voices['free'].id, 'rating': 6}
        )
        assert invalid.status_code == 400


class TestVoicePreferences:

    @pytest.mark.asyncio
    async def test_defaults(self, client: AsyncClient, auth_headers):
        data = (await client.get('/api/v1/voice/preferences', headers=auth_headers)).json()

        assert data['voice'] is None
        assert data['speed'] == 1.0
        assert data['style'] == 'mentor'

    @pytest.mark.asyncio
    async def test_save(self, client: AsyncClient, auth_headers, voices):
        response = await client.put('/api/v1/voice/preferences', headers=auth_headers, json={
            'voice_option_id': voices['free'].id,
            'speed': 1.25,
            'accessibility': {'auto_captions': False},
        })

        assert response.status_code == 200
        prefs = response.json()['preferences']
        assert prefs['voice']['name'] == 'Asha'
        assert prefs['speed'] == 1.25
        assert prefs['accessibility']['auto_captions'] is False
        assert prefs['accessibility']['noise_reduction'] is True

    @pytest.mark.asyncio
    async def test_premium_voice_needs_upgrade(self, client: AsyncClient, auth_headers, voices):
        response = await client.put(
            '/api/v1/voice/preferences', headers=auth_headers, json={'voice_option_id': voices['premium'].id}
        )

        assert response.status_code == 403
        assert response.json()['upgrade_required'] is True

    @pytest.mark.asyncio
    async def test_premium_voice_allowed_for_pro(self, client: AsyncClient, auth_headers, voices, pro_subscription):
        response = await client.put(
            '/api/v1/voice/preferences', headers=auth_headers, json={'voice_option_id': voices['premium'].id}
        )
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_speed_out_of_range(self, client: AsyncClient, auth_headers):
        response = await client.put('/api/v1/voice/preferences', headers=auth_headers, json={'speed': 2.0})
        assert response.status_code == 422


class TestSpeechGeneration:

    @pytest.mark.asyncio
    async def test_text_required(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/voice/generate', headers=auth_headers, json={})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_text_too_long(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/voice/generate', headers=auth_headers, json={'text': 'a' * 5001})

        assert response.status_code == 400
        assert 'Text too long' in response.json()['error']['message']

    @pytest.mark.asyncio
    async def test_generate_audio(self, client: AsyncClient, auth_headers, voices):
        with patch.object(http_client, 'post_for_bytes', AsyncMock(return_value=b'RIFF')):
            response = await client.post('/api/v1/voice/generate', headers=auth_headers, json={
                'text': 'The Preamble declares India a sovereign republic.',
                'voice_id': voices['free'].id,
            })

        assert response.status_code == 200
        data = response.json()
        assert data['audio_base64'] == 'UklGRg=='
        assert data['duration_seconds'] >= 1

    @pytest.mark.asyncio
    async def test_provider_failure(self, client: AsyncClient, auth_headers):
        failure = AsyncMock(side_effect=ExternalServiceError('tts', 'TTS provider unavailable'))
        with patch.object(http_client, 'post_for_bytes', failure):
            response = await client.post('/api/v1/voice/generate', headers=auth_headers, json={'text': 'Hello'})

        assert response.status_code == 502


class TestVoiceClones:

    @staticmethod
    def _clone(**overrides) -> dict:
        data = {
            'name': 'Lecture voice',
            'source_audio_url': 'https://cdn.example.com/sample.mp3',
            'source_duration_seconds': 90,
            'consent_given': True,
        }
        data.update(overrides)
        return data

    @pytest.mark.asyncio
    async def test_free_tier_blocked(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/voice/clones', headers=auth_headers, json=self._clone())

        assert response.status_code == 403
        assert response.json()['required_tier'] == 'pro'

    @pytest.mark.asyncio
    async def test_consent_required(self, client: AsyncClient, auth_headers, pro_subscription):
        response = await client.post(
            '/api/v1/voice/clones', headers=auth_headers, json=self._clone(consent_given=False)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_minimum_duration(self, client: AsyncClient, auth_headers, pro_subscription):
        response = await client.post(
            '/api/v1/voice/clones', headers=auth_headers, json=self._clone(source_duration_seconds=30)
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_create_list_delete(self, client: AsyncClient, auth_headers, pro_subscription):
        with patch.object(voice_service, 'finish_clone', AsyncMock()) as finish:
            response = await client.post('/api/v1/voice/clones', headers=auth_headers, json=self._clone())

        assert response.status_code == 201
        clone = response.json()['clone']
        assert clone['status'] == 'processing'
        finish.assert_awaited_once_with(clone['id'])

        listed = (await client.get('/api/v1/voice/clones', headers=auth_headers)).json()
        assert [c['id'] for c in listed['clones']] == [clone['id']]

        deleted = await client.delete(f"/api/v1/voice/clones/{clone['id']}", headers=auth_headers)
        assert deleted.json()['success'] is True

    @pytest.mark.asyncio
    async def test_clone_limit(self, client: AsyncClient, auth_headers, pro_subscription, db_session, test_user):
        db_session.add_all([
            VoiceClone(user_id=test_user.id, name=f'Clone {i}', source_duration_seconds=120, consent_given=True)
            for i in range(3)
        ])
        await db_session.commit()

        with patch.object(voice_service, 'finish_clone', AsyncMock()):
            response = await client.post('/api/v1/voice/clones', headers=auth_headers, json=self._clone())

        assert response.status_code == 400
        assert 'Maximum' in response.json()['error']['message']


@pytest.fixture
async def documentary(db_session):
    doc = WeeklyDocumentary(
        title='UPSC Weekly Roundup: Week 10, 2024',
        week_start_date=date(2024, 3, 4),
        week_end_date=date(2024, 3, 10),
        week_number=10,
        year=2024,
        render_status=RenderStatus.RENDERING.value,
        total_duration_seconds=1800,
        top_topics=[
            {'title': 'Electoral bonds verdict', 'category': 'Polity'},
            {'title': 'Chandrayaan follow-up', 'category': 'Science'},
        ],
    )
    db_session.add(doc)
    await db_session.commit()
    return doc


class TestWeeklyDocumentary:

    @pytest.mark.asyncio
    async def test_trigger_admin_only(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/weekly-documentary/trigger', headers=auth_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_trigger_starts_pipeline(self, client: AsyncClient, admin_auth_headers):
        with patch.object(documentary_service, 'run_pipeline', AsyncMock()) as pipeline:
            response = await client.post(
                '/api/v1/weekly-documentary/trigger',
                headers=admin_auth_headers,
                json={'week_start': '2024-03-06'},
            )

        assert response.status_code == 202
        data = response.json()
        assert data['week_number'] == 10
        assert data['year'] == 2024
        pipeline.assert_awaited_once_with(data['doc_id'], data['schedule_id'])

        schedule = (await client.get('/api/v1/weekly-documentary/schedule', headers=admin_auth_headers)).json()
        assert schedule['schedule'][0]['status'] == 'running'

    @pytest.mark.asyncio
    async def test_publish_creates_clips(self, client: AsyncClient, admin_auth_headers, auth_headers, documentary):
        response = await client.post(
            f'/api/v1/weekly-documentary/{documentary.id}/publish',
            headers=admin_auth_headers,
            json={'video_url': 'https://cdn.example.com/week10.mp4'},
        )

        assert response.status_code == 200
        clips = response.json()['clips']
        assert [c['platform'] for c in clips] == ['youtube_shorts', 'instagram_reels']
        assert clips[0]['title'] == 'Week 10: Electoral bonds verdict'

        detail = (await client.get(f'/api/v1/weekly-documentary/{documentary.id}', headers=auth_headers)).json()
        assert detail['render_status'] == 'published'
        assert detail['duration_seconds'] == 1800
        assert detail['view_count'] == 1

        archive = (await client.get('/api/v1/weekly-documentary', headers=auth_headers, params={'year': 2024})).json()
        assert [d['id'] for d in archive['documentaries']] == [documentary.id]

        again = await client.post(
            f'/api/v1/weekly-documentary/{documentary.id}/publish',
            headers=admin_auth_headers,
            json={'video_url': 'https://cdn.example.com/week10.mp4'},
        )
        assert again.status_code == 400
        assert 'already published' in again.json()['error']['message']

    @pytest.mark.asyncio
    async def test_regenerate_clips(self, client: AsyncClient, admin_auth_headers, auth_headers, documentary):
        forbidden = await client.post(
            f'/api/v1/weekly-documentary/{documentary.id}/clips/generate', headers=auth_headers
        )
        assert forbidden.status_code == 403

        await client.post(
            f'/api/v1/weekly-documentary/{documentary.id}/publish',
            headers=admin_auth_headers,
            json={'video_url': 'https://cdn.example.com/week10.mp4'},
        )
        published = (await client.get(
            f'/api/v1/weekly-documentary/{documentary.id}/clips', headers=auth_headers
        )).json()['clips']

        response = await client.post(
            f'/api/v1/weekly-documentary/{documentary.id}/clips/generate', headers=admin_auth_headers
        )

        assert response.status_code == 200
        assert response.json()['message'] == 'Social clips generated'
        clips = (await client.get(
            f'/api/v1/weekly-documentary/{documentary.id}/clips', headers=auth_headers
        )).json()['clips']
        assert [c['topic'] for c in clips] == ['Electoral bonds verdict', 'Chandrayaan follow-up']
        assert {c['id'] for c in clips}.isdisjoint({c['id'] for c in published})

    @pytest.mark.asyncio
    async def test_regenerate_clips_needs_topics(self, client: AsyncClient, admin_auth_headers, documentary, db_session):
        documentary.top_topics = []
        await db_session.commit()

        response = await client.post(
            f'/api/v1/weekly-documentary/{documentary.id}/clips/generate', headers=admin_auth_headers
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_documentary(self, client: AsyncClient, auth_headers):
        response = await client.get('/api/v1/weekly-documentary/missing-id/clips', headers=auth_headers)
        assert response.status_code == 404


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client: AsyncClient):
        response = await client.get('/api/v1/health')

        assert response.status_code == 200
        assert response.json()['status'] == 'healthy'
