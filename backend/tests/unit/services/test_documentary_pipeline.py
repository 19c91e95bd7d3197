"""
Unit Tests for the weekly documentary pipeline (database backed)

The pipeline runs for real; only the Claude and Manim boundaries are patched.
"""
import pytest
import httpx
from contextlib import asynccontextmanager
from datetime import date, datetime
from unittest.mock import AsyncMock, PropertyMock, patch

import importlib

documentary_module = importlib.import_module('prepx.services.documentary_service')
from prepx.core.exceptions import ExternalServiceError
from prepx.models.documentary import (
    DailyCurrentAffairs,
    RenderStatus,
    ScheduleStatus,
    WeeklyDocSchedule,
    WeeklyDocumentary,
)
from prepx.services.documentary_service import documentary_service, sample_script, total_duration
from prepx.utils.claude_client import ClaudeClient, claude_client
from prepx.utils.http_client import http_client

TOPICS = [
    {'title': 'Electoral bonds verdict', 'category': 'Polity', 'importance': 0.97,
     'summary': 'Supreme Court strikes down the electoral bond scheme.'},
    {'title': 'RBI holds repo rate', 'category': 'Economy', 'importance': 0.93,
     'summary': 'Monetary Policy Committee keeps the repo rate at 6.5%.'},
    {'title': 'Quad foreign ministers meet', 'category': 'International Relations', 'importance': 0.9,
     'summary': 'Maritime security and supply chains top the agenda.'},
]


@pytest.fixture
async def run(db_session):
    documentary = WeeklyDocumentary(
        title='UPSC Weekly Roundup: Week 10, 2024',
        week_start_date=date(2024, 3, 4),
        week_end_date=date(2024, 3, 10),
        week_number=10,
        year=2024,
        render_status=RenderStatus.PENDING.value,
    )
    db_session.add(documentary)
    await db_session.flush()

    schedule = WeeklyDocSchedule(
        documentary_id=documentary.id,
        triggered_at=datetime(2024, 3, 11, 6, 0),
        status=ScheduleStatus.RUNNING.value,
    )
    db_session.add_all([
        schedule,
        DailyCurrentAffairs(ca_date=date(2024, 3, 5), topic='Electoral bonds', category='Polity'),
        DailyCurrentAffairs(ca_date=date(2024, 3, 8), topic='Repo rate', category='Economy'),
        DailyCurrentAffairs(ca_date=date(2024, 2, 28), topic='Last week', category='Polity'),
    ])
    await db_session.commit()
    return documentary, schedule


@pytest.fixture
def pipeline_session(db_session):
    """Run the background pipeline inside the test session"""
    @asynccontextmanager
    async def session():
        yield db_session

    with patch.object(documentary_module, 'background_session', session):
        yield db_session


def claude_configured():
    return patch.object(ClaudeClient, 'is_configured', new_callable=PropertyMock, return_value=True)


class TestPipeline:

    @pytest.mark.asyncio
    async def test_all_stages(self, pipeline_session, run):
        documentary, schedule = run
        script = sample_script(documentary.week_start_date, documentary.week_end_date)
        ai = AsyncMock(side_effect=[TOPICS, script])
        manim = AsyncMock(return_value={'scene_ids': ['sc-1', 'sc-2', 'sc-3']})

        with claude_configured(), patch.object(claude_client, 'generate_json', ai), \
                patch.object(http_client, 'post_json', manim):
            await documentary_service.run_pipeline(documentary.id, schedule.id)

        await pipeline_session.refresh(documentary)
        await pipeline_session.refresh(schedule)

        # two of the three daily items fall inside the week
        assert len(documentary.daily_ca_ids) == 2
        assert documentary.source_news_count == 10
        assert [t['title'] for t in documentary.top_topics] == [t['title'] for t in TOPICS]
        assert documentary.total_duration_seconds == total_duration(documentary.segments)
        assert [s['scene_type'] for s in documentary.manim_scenes] == ['data_chart', 'timeline', 'comparison']
        assert [s['data']['scene_id'] for s in documentary.manim_scenes] == ['sc-1', 'sc-2', 'sc-3']
        assert documentary.render_status == RenderStatus.RENDERING.value
        assert documentary.render_priority == 50

        assert schedule.status == ScheduleStatus.COMPLETED.value
        assert schedule.completed_at is not None
        assert ai.await_count == 2
        url, payload = manim.await_args.args[1], manim.await_args.args[2]
        assert url.endswith('/generate-batch')
        assert payload['documentary_id'] == documentary.id
        assert payload['priority'] == 50

    @pytest.mark.asyncio
    async def test_manim_down_uses_placeholders(self, pipeline_session, run):
        documentary, schedule = run
        manim = AsyncMock(side_effect=ExternalServiceError('manim', 'Connection refused'))

        with patch.object(http_client, 'post_json', manim):
            await documentary_service.run_pipeline(documentary.id, schedule.id)

        await pipeline_session.refresh(documentary)
        await pipeline_session.refresh(schedule)

        assert schedule.status == ScheduleStatus.COMPLETED.value
        assert documentary.render_status == RenderStatus.RENDERING.value
        assert documentary.manim_scenes
        assert all('scene_id' not in s['data'] for s in documentary.manim_scenes)

    @pytest.mark.asyncio
    async def test_manim_non_json_reply_degrades(self, pipeline_session, run):
        documentary, schedule = run
        reply = httpx.Response(
            200, text='<html>gateway ok</html>', request=httpx.Request('POST', 'http://manim.local/generate-batch')
        )

        with patch.object(httpx.AsyncClient, 'request', AsyncMock(return_value=reply)):
            await documentary_service.run_pipeline(documentary.id, schedule.id)

        await pipeline_session.refresh(documentary)
        await pipeline_session.refresh(schedule)

        assert schedule.status == ScheduleStatus.COMPLETED.value
        assert schedule.error_message is None
        assert documentary.render_status == RenderStatus.RENDERING.value

    @pytest.mark.asyncio
    async def test_unparseable_topics_fall_back_to_samples(self, pipeline_session, run):
        documentary, schedule = run
        ai = AsyncMock(return_value={'content': 'Here are the topics you asked for.', 'total_tokens': 10})

        with claude_configured(), patch.object(claude_client, 'generate', ai), \
                patch.object(http_client, 'post_json', AsyncMock(return_value={})):
            await documentary_service.run_pipeline(documentary.id, schedule.id)

        await pipeline_session.refresh(documentary)
        await pipeline_session.refresh(schedule)

        assert schedule.status == ScheduleStatus.COMPLETED.value
        assert documentary.top_topics[0]['title'] == 'Union Budget Highlights'
        assert 'week_overview' in documentary.script_content

    @pytest.mark.asyncio
    async def test_unexpected_error_marks_run_failed(self, pipeline_session, run):
        documentary, schedule = run
        ai = AsyncMock(side_effect=RuntimeError('topic store unavailable'))

        with claude_configured(), patch.object(claude_client, 'generate_json', ai):
            await documentary_service.run_pipeline(documentary.id, schedule.id)

        await pipeline_session.refresh(documentary)
        await pipeline_session.refresh(schedule)

        assert schedule.status == ScheduleStatus.FAILED.value
        assert schedule.error_message == 'topic store unavailable'
        assert schedule.completed_at is not None
        assert documentary.render_status == RenderStatus.FAILED.value

    @pytest.mark.asyncio
    async def test_missing_rows_are_ignored(self, pipeline_session):
        with patch.object(http_client, 'post_json', AsyncMock()) as manim:
            await documentary_service.run_pipeline('missing-doc', 'missing-schedule')

        manim.assert_not_awaited()


class TestGenerateClips:

    @pytest.mark.asyncio
    async def test_regenerate_replaces_clips(self, db_session, run):
        documentary, _ = run
        documentary.top_topics = TOPICS
        await db_session.commit()

        first = await documentary_service.generate_clips(db_session, documentary.id)
        second = await documentary_service.generate_clips(db_session, documentary.id)

        assert [c['platform'] for c in second['clips']] == ['youtube_shorts', 'instagram_reels', 'twitter']
        assert {c['id'] for c in first['clips']}.isdisjoint({c['id'] for c in second['clips']})

        stored = await documentary_service.get_clips(db_session, documentary.id)
        assert [c['id'] for c in stored] == [c['id'] for c in second['clips']]
