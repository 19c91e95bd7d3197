"""
Unit Tests for Bookmark API Endpoints
"""
import pytest
from httpx import AsyncClient


def _bookmark(**overrides) -> dict:
    data = {
        'content_type': 'note',
        'content_id': 'note-1',
        'title': 'Basic structure doctrine',
        'full_content': 'Kesavananda Bharati v State of Kerala (1973) laid down the basic structure doctrine.',
        'tags': ['Polity', ' constitution '],
    }
    data.update(overrides)
    return data


class TestBookmarkCrud:
    """Create, read, update and delete bookmarks"""

    @pytest.mark.asyncio
    async def test_create_and_get(self, client: AsyncClient, auth_headers):
        response = await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())

        assert response.status_code == 201
        created = response.json()
        assert created['tags'] == ['polity', 'constitution']
        assert created['snippet'].startswith('Kesavananda Bharati')
        assert created['ease_factor'] == 2.5

        detail = await client.get(f"/api/v1/bookmarks/{created['id']}", headers=auth_headers)
        assert detail.status_code == 200
        assert detail.json()['access_count'] == 1
        assert detail.json()['full_content'] is not None

    @pytest.mark.asyncio
    async def test_duplicate_content_conflicts(self, client: AsyncClient, auth_headers):
        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())
        response = await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())

        assert response.status_code == 409
        assert response.json()['already_bookmarked'] is True

    @pytest.mark.asyncio
    async def test_custom_needs_url(self, client: AsyncClient, auth_headers):
        response = await client.post(
            '/api/v1/bookmarks', headers=auth_headers, json=_bookmark(content_type='custom', content_id=None)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_update_and_delete(self, client: AsyncClient, auth_headers):
        created = (await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())).json()

        updated = await client.patch(
            f"/api/v1/bookmarks/{created['id']}", headers=auth_headers, json={'tags': ['Revision'], 'notes': 'Mains GS2'}
        )
        assert updated.status_code == 200
        assert updated.json()['tags'] == ['revision']
        assert updated.json()['notes'] == 'Mains GS2'

        deleted = await client.delete(f"/api/v1/bookmarks/{created['id']}", headers=auth_headers)
        assert deleted.status_code == 204

        missing = await client.get(f"/api/v1/bookmarks/{created['id']}", headers=auth_headers)
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_other_user_cannot_read(self, client: AsyncClient, auth_headers, other_auth_headers):
        created = (await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())).json()

        response = await client.get(f"/api/v1/bookmarks/{created['id']}", headers=other_auth_headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_filters(self, client: AsyncClient, auth_headers):
        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())
        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark(
            content_type='pyq', content_id='pyq-1', title='PYQ 2019', tags=['economy']
        ))

        by_type = await client.get('/api/v1/bookmarks/by-type/pyq', headers=auth_headers)
        by_tag = await client.get('/api/v1/bookmarks/by-tag/polity', headers=auth_headers)
        count = await client.get('/api/v1/bookmarks/count', headers=auth_headers)

        assert [b['title'] for b in by_type.json()] == ['PYQ 2019']
        assert [b['title'] for b in by_tag.json()] == ['Basic structure doctrine']
        assert count.json() == {'count': 2}


class TestToggleAndCheck:

    @pytest.mark.asyncio
    async def test_toggle_round_trip(self, client: AsyncClient, auth_headers):
        body = {'content_type': 'video', 'content_id': 'vid-9', 'title': 'Monsoon explainer'}

        added = await client.post('/api/v1/bookmarks/toggle', headers=auth_headers, json=body)
        assert added.json()['action'] == 'added'

        check = await client.get(
            '/api/v1/bookmarks/check', headers=auth_headers, params={'content_type': 'video', 'content_id': 'vid-9'}
        )
        assert check.json()['is_bookmarked'] is True

        removed = await client.post('/api/v1/bookmarks/toggle', headers=auth_headers, json=body)
        assert removed.json()['action'] == 'removed'
        assert removed.json()['bookmark_id'] is None


class TestReview:
    """Spaced repetition review flow"""

    @pytest.mark.asyncio
    async def test_review_reschedules(self, client: AsyncClient, auth_headers):
        created = (await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())).json()

        response = await client.post(
            f"/api/v1/bookmarks/review/{created['id']}", headers=auth_headers, json={'response': 'easy'}
        )

        assert response.status_code == 200
        data = response.json()
        assert data['success'] is True
        assert data['new_interval_days'] == 1
        assert data['ease_factor'] == pytest.approx(2.6)
        assert data['streak']['current_streak'] == 1

        streak = await client.get('/api/v1/bookmarks/review/streak', headers=auth_headers)
        assert streak.json()['total_reviews'] == 1

    @pytest.mark.asyncio
    async def test_invalid_response_rejected(self, client: AsyncClient, auth_headers):
        created = (await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())).json()

        response = await client.post(
            f"/api/v1/bookmarks/review/{created['id']}", headers=auth_headers, json={'response': 'perfect'}
        )
        assert response.status_code == 422


class TestCollectionsAndTags:

    @pytest.mark.asyncio
    async def test_collection_lifecycle(self, client: AsyncClient, auth_headers):
        created = await client.post(
            '/api/v1/bookmarks/collections', headers=auth_headers, json={'name': 'GS2', 'color': '#ff0000'}
        )
        assert created.status_code == 201
        collection = created.json()
        assert collection['bookmark_count'] == 0

        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark(collection_id=collection['id']))

        listed = await client.get('/api/v1/bookmarks/collections', headers=auth_headers)
        assert listed.json()[0]['bookmark_count'] == 1

        deleted = await client.delete(f"/api/v1/bookmarks/collections/{collection['id']}", headers=auth_headers)
        assert deleted.status_code == 204

    @pytest.mark.asyncio
    async def test_rename_tag(self, client: AsyncClient, auth_headers):
        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())

        response = await client.post(
            '/api/v1/bookmarks/tags/rename', headers=auth_headers, json={'old_tag': 'polity', 'new_tag': 'gs2'}
        )
        assert response.json()['affected'] == 1

        tags = (await client.get('/api/v1/bookmarks/tags', headers=auth_headers)).json()['tags']
        names = [t['tag'] for t in tags]
        assert 'gs2' in names
        assert 'polity' not in names


class TestLibrary:

    @pytest.mark.asyncio
    async def test_export_csv(self, client: AsyncClient, auth_headers):
        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())

        response = await client.get('/api/v1/bookmarks/library/export', headers=auth_headers, params={'format': 'csv'})

        assert response.status_code == 200
        assert response.headers['content-type'].startswith('text/csv')
        lines = response.text.split('\n')
        assert lines[0] == 'id,title,content_type,snippet,tags,bookmarked_at'
        assert 'polity;constitution' in lines[1]

    @pytest.mark.asyncio
    async def test_export_json(self, client: AsyncClient, auth_headers):
        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())

        data = (await client.get('/api/v1/bookmarks/library/export', headers=auth_headers)).json()
        assert data['count'] == 1

    @pytest.mark.asyncio
    async def test_stats(self, client: AsyncClient, auth_headers):
        await client.post('/api/v1/bookmarks', headers=auth_headers, json=_bookmark())

        stats = (await client.get('/api/v1/bookmarks/library/stats', headers=auth_headers)).json()

        assert stats['total'] == 1
        assert stats['by_type'] == {'note': 1}
        assert stats['this_week'] == 1
