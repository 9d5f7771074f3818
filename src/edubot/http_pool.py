"""Shared pool of long-lived httpx clients."""

from __future__ import annotations

import asyncio
import logging

import httpx

logger = logging.getLogger(__name__)


class PooledHttpClient:
    """Base class handing out one ``httpx.AsyncClient`` per timeout value."""

    _client_lock: asyncio.Lock = asyncio.Lock()
    _client_pool: dict[float, httpx.AsyncClient] = {}

    def __init__(self, timeout: float):
        self._timeout = float(timeout)

    async def _get_http_client(self) -> httpx.AsyncClient:
        key = self._timeout
        client = PooledHttpClient._client_pool.get(key)
        if client is not None:
            return client

        async with PooledHttpClient._client_lock:
            client = PooledHttpClient._client_pool.get(key)
            if client is None:
                timeout = httpx.Timeout(self._timeout, connect=10.0)
                limits = httpx.Limits(
                    max_connections=50,
                    max_keepalive_connections=20,
                )
                client = httpx.AsyncClient(
                    timeout=timeout,
                    limits=limits,
                    http2=True,
                )
                PooledHttpClient._client_pool[key] = client
        return client

    async def aclose(self) -> None:
        await PooledHttpClient.aclose_shared()

    @staticmethod
    async def aclose_shared() -> None:
        async with PooledHttpClient._client_lock:
            clients = list(PooledHttpClient._client_pool.values())
            PooledHttpClient._client_pool.clear()
        for client in clients:
            try:
                await client.aclose()
            except Exception as exc:  # pragma: no cover - best effort cleanup
                logger.debug("Failed to close pooled HTTP client: %s", exc)


__all__ = ["PooledHttpClient"]
