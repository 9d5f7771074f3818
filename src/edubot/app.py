"""Application factory for the chat relay service."""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .config import get_settings
from .http_pool import PooledHttpClient
from .logging_settings import configure_logging, parse_logging_settings
from .routers.chat import router as chat_router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    settings = get_settings()

    # Configure logging first thing
    configure_logging(parse_logging_settings(settings.logging_settings_path))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if settings.upstream_api_key is None:
            logger.warning("UPSTREAM_API_KEY is not set; chat requests will fail")
        try:
            yield
        finally:
            # Add timeout to prevent hanging during shutdown (especially in tests)
            try:
                await asyncio.wait_for(PooledHttpClient.aclose_shared(), timeout=10.0)
            except asyncio.TimeoutError:
                logger.warning("HTTP client shutdown timed out after 10s")

    app = FastAPI(
        title="EduBot Chat Relay",
        version="0.1.0",
        description="Streams tutoring replies from the upstream model gateway.",
        lifespan=lifespan,
    )

    app.include_router(chat_router)

    @app.get("/health", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok", "model": settings.upstream_model}

    return app


__all__ = ["create_app"]
