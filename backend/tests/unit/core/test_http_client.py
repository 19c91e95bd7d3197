"""
Unit Tests for the outbound HTTP wrapper
"""
import pytest
import httpx
from unittest.mock import AsyncMock, patch

from prepx.core.exceptions import ExternalServiceError
from prepx.utils.http_client import ExternalHTTPClient

URL = 'http://manim.local/generate-batch'


def _reply(status_code: int, **kwargs) -> httpx.Response:
    return httpx.Response(status_code, request=httpx.Request('POST', URL), **kwargs)


def _serve(response=None, error=None):
    mock = AsyncMock(return_value=response, side_effect=error)
    return patch.object(httpx.AsyncClient, 'request', mock)


class TestJsonReplies:

    @pytest.mark.asyncio
    async def test_json_body(self):
        with _serve(_reply(200, json={'scene_ids': ['s1']})):
            result = await ExternalHTTPClient().post_json('manim', URL, {'scenes': []})

        assert result == {'scene_ids': ['s1']}

    @pytest.mark.asyncio
    async def test_empty_body(self):
        with _serve(_reply(204)):
            assert await ExternalHTTPClient().post_json('manim', URL, {}) == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize('method, args', [
        ('post_json', ({'scenes': []},)),
        ('post_form', ({'code': 'abc'},)),
        ('get_json', ()),
    ])
    async def test_html_body_is_service_error(self, method, args):
        with _serve(_reply(200, text='<html>gateway ok</html>')):
            with pytest.raises(ExternalServiceError) as exc:
                await getattr(ExternalHTTPClient(), method)('manim', URL, *args)

        assert exc.value.status_code == 502
        assert exc.value.details['service'] == 'manim'
        assert 'Invalid JSON' in exc.value.message


class TestFailures:

    @pytest.mark.asyncio
    async def test_error_status(self):
        with _serve(_reply(503, text='busy')):
            with pytest.raises(ExternalServiceError) as exc:
                await ExternalHTTPClient().post_json('manim', URL, {})

        assert 'HTTP 503' in exc.value.message

    @pytest.mark.asyncio
    async def test_connection_refused(self):
        with _serve(error=httpx.ConnectError('Connection refused')):
            with pytest.raises(ExternalServiceError) as exc:
                await ExternalHTTPClient().post_json('manim', URL, {})

        assert 'Connection refused' in exc.value.message

    @pytest.mark.asyncio
    async def test_bytes_are_returned_raw(self):
        with _serve(_reply(200, content=b'RIFF0000WAVE')):
            audio = await ExternalHTTPClient().post_for_bytes('tts', URL, {'text': 'Namaste'})

        assert audio == b'RIFF0000WAVE'
