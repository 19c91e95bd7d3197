"""
Thin httpx wrapper for the outbound services the platform talks to:
TTS provider, Manim / Revideo render VPS, RAG search, social OAuth endpoints.
"""
import httpx
from typing import Optional, Dict, Any

from prepx.core.config import settings
from prepx.core.exceptions import ExternalServiceError
from prepx.core.logging_config import logger


class ExternalHTTPClient:
    """One short-lived AsyncClient per call, failures normalised to ExternalServiceError"""

    def __init__(self, default_timeout: Optional[float] = None):
        self.default_timeout = default_timeout or settings.EXTERNAL_HTTP_TIMEOUT

    async def _request(
        self,
        service: str,
        method: str,
        url: str,
        timeout: Optional[float] = None,
        **kwargs
    ) -> httpx.Response:
        try:
            async with httpx.AsyncClient(timeout=timeout or self.default_timeout) as client:
                response = await client.request(method, url, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            logger.error(f"[{service}] HTTP {e.response.status_code} from {url}: {e.response.text[:300]}")
            raise ExternalServiceError(service, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            logger.error(f"[{service}] Request error for {url}: {e}")
            raise ExternalServiceError(service, str(e) or type(e).__name__) from e

    @staticmethod
    def _decode_json(service: str, url: str, response: httpx.Response) -> Any:
        """Body as JSON; a 2xx reply that is not JSON is a failure of that service"""
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"[{service}] Non-JSON reply from {url}: {response.text[:300]}")
            raise ExternalServiceError(service, "Invalid JSON response") from e

    async def post_json(
        self,
        service: str,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        response = await self._request(service, "POST", url, timeout=timeout, json=payload, headers=headers)
        return self._decode_json(service, url, response)

    async def post_form(
        self,
        service: str,
        url: str,
        data: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        response = await self._request(service, "POST", url, data=data, headers=headers)
        return self._decode_json(service, url, response)

    async def get_json(
        self,
        service: str,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        response = await self._request(service, "GET", url, timeout=timeout, params=params, headers=headers)
        return self._decode_json(service, url, response)

    async def post_for_bytes(
        self,
        service: str,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> bytes:
        """POST JSON, return the raw body (audio from the TTS provider)"""
        response = await self._request(service, "POST", url, json=payload, headers=headers)
        return response.content


# Singleton instance
http_client = ExternalHTTPClient()
