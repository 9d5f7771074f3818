"""Client used by the relay to reach the upstream model gateway."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from .config import Settings
from .http_pool import PooledHttpClient

logger = logging.getLogger(__name__)


class UpstreamNotConfiguredError(RuntimeError):
    """Raised when no upstream API key is available."""


class UpstreamClient(PooledHttpClient):
    """Open streaming chat completions against the upstream gateway."""

    def __init__(self, settings: Settings):
        super().__init__(settings.request_timeout)
        self._settings = settings

    @property
    def _base_url(self) -> str:
        return str(self._settings.upstream_base_url).rstrip("/")

    def _headers(self) -> dict[str, str]:
        api_key = self._settings.upstream_api_key
        if api_key is None:
            raise UpstreamNotConfiguredError("UPSTREAM_API_KEY is not configured")
        return {
            "Authorization": f"Bearer {api_key.get_secret_value()}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }

    async def open_stream(self, payload: dict[str, Any]) -> httpx.Response:
        """Send ``payload`` and return the response with its body unread.

        The caller owns the response and must ``aclose()`` it.
        """

        headers = self._headers()
        client = await self._get_http_client()
        request = client.build_request(
            "POST",
            f"{self._base_url}/chat/completions",
            headers=headers,
            json=payload,
        )
        logger.debug("Opening upstream stream for model %s", payload.get("model"))
        return await client.send(request, stream=True)


__all__ = ["UpstreamClient", "UpstreamNotConfiguredError"]
