"""HTTP client for the tutoring gateway's chat and image endpoints."""

from __future__ import annotations

import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, AsyncIterator, Sequence

import httpx
from fastapi import status

from .config import Settings
from .http_pool import PooledHttpClient

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """Wrap a non-success reply from the gateway."""

    def __init__(
        self,
        status_code: int,
        detail: Any,
        *,
        server_message: str | None = None,
    ):
        super().__init__(str(detail))
        self.status_code = status_code
        self.detail = detail
        # Text from the JSON `error` field, suitable for showing to users
        self.server_message = server_message


class GatewayTransportError(GatewayError):
    """Raised when the connection fails before or during streaming."""

    def __init__(self, detail: Any):
        super().__init__(status.HTTP_502_BAD_GATEWAY, detail)


class GatewayClient(PooledHttpClient):
    """Client responsible for streaming completions and fetching images."""

    def __init__(self, settings: Settings):
        super().__init__(settings.request_timeout)
        self._settings = settings

    @property
    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self._settings.gateway_api_key is not None:
            token = self._settings.gateway_api_key.get_secret_value()
            headers["Authorization"] = f"Bearer {token}"
        return headers

    @asynccontextmanager
    async def stream_completion(
        self, messages: Sequence[dict[str, str]]
    ) -> AsyncGenerator[AsyncIterator[bytes], None]:
        """Open the completion stream and yield its raw body chunks.

        Raises :class:`GatewayError` for a non-success status and
        :class:`GatewayTransportError` when the connection fails.
        """

        url = self._settings.chat_url
        payload = {"messages": list(messages)}

        client = await self._get_http_client()
        try:
            async with client.stream(
                "POST",
                url,
                headers=self._headers,
                json=payload,
            ) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    raise GatewayError(
                        response.status_code,
                        self._extract_error_detail(body),
                        server_message=self._extract_server_message(body),
                    )

                logger.debug("Reading completion stream from %s", url)
                yield self._iter_chunks(response)
        except httpx.HTTPError as exc:
            raise GatewayTransportError(str(exc)) from exc

    async def generate_topic_image(self, topic: str, context: str) -> str | None:
        """Request an illustration; any failure yields ``None``."""

        headers = dict(self._headers)
        headers["Accept"] = "application/json"

        client = await self._get_http_client()
        try:
            response = await client.post(
                self._settings.image_url,
                headers=headers,
                json={"topic": topic, "context": context},
            )
        except httpx.HTTPError as exc:
            logger.error("Image generation request failed: %s", exc)
            return None

        if response.status_code >= 400:
            logger.error("Image generation failed: %s", response.status_code)
            return None

        try:
            body = response.json()
        except ValueError:
            logger.error("Image generation returned a non-JSON body")
            return None

        image_url = body.get("imageUrl") if isinstance(body, dict) else None
        if isinstance(image_url, str) and image_url:
            return image_url
        return None

    @staticmethod
    async def _iter_chunks(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.HTTPError as exc:
            raise GatewayTransportError(str(exc)) from exc

    @staticmethod
    def _extract_server_message(raw: bytes) -> str | None:
        try:
            payload = json.loads(raw.decode("utf-8", errors="ignore"))
        except json.JSONDecodeError:
            return None
        if isinstance(payload, dict):
            error = payload.get("error")
            if isinstance(error, str) and error.strip():
                return error
        return None

    @staticmethod
    def _extract_error_detail(raw: bytes) -> Any:
        if not raw:
            return "Gateway returned an empty error response."
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("utf-8", errors="ignore")
        try:
            payload = json.loads(text)
        except json.JSONDecodeError:
            return text
        if isinstance(payload, dict):
            return payload.get("error") or payload
        return payload


__all__ = ["GatewayClient", "GatewayError", "GatewayTransportError"]
