"""Chat relay routes: forward tutoring conversations to the upstream gateway."""

from __future__ import annotations

import json
import logging
from typing import Any, AsyncGenerator

import httpx
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from ..chat.streaming import DONE_SENTINEL, StreamBuffer
from ..config import Settings, get_settings
from ..schemas.chat import ChatRequest, ErrorResponse
from ..upstream import UpstreamClient, UpstreamNotConfiguredError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

RATE_LIMITED_ERROR = "Rate limits exceeded, please try again later."
PAYMENT_REQUIRED_ERROR = "AI service requires payment. Please contact support."
UPSTREAM_FAILURE_ERROR = "AI service unavailable"


def get_upstream_client(
    settings: Settings = Depends(get_settings),
) -> UpstreamClient:
    return UpstreamClient(settings)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=ErrorResponse(error=message).model_dump()
    )


@router.post(
    "/chat",
    response_model=None,
    status_code=200,
    responses={
        status.HTTP_402_PAYMENT_REQUIRED: {"model": ErrorResponse},
        status.HTTP_429_TOO_MANY_REQUESTS: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def relay_chat(
    payload: ChatRequest,
    settings: Settings = Depends(get_settings),
    upstream: UpstreamClient = Depends(get_upstream_client),
) -> EventSourceResponse | JSONResponse:
    """Stream a tutoring reply from the upstream gateway as Server-Sent Events."""

    logger.info("Received chat request with %d messages", len(payload.messages))
    upstream_payload = payload.to_upstream_payload(
        settings.upstream_model, settings.tutor_system_prompt
    )

    try:
        response = await upstream.open_stream(upstream_payload)
    except UpstreamNotConfiguredError as exc:
        logger.error("Chat relay misconfigured: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))
    except httpx.HTTPError as exc:
        logger.error("Chat relay could not reach upstream: %s", exc)
        return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc) or "Unknown error")

    if response.status_code >= 400:
        return await _upstream_failure(response)

    logger.info("Streaming response from AI")
    return EventSourceResponse(_relay_events(response))


async def _upstream_failure(response: Any) -> JSONResponse:
    try:
        body = await response.aread()
    finally:
        await response.aclose()

    if response.status_code == status.HTTP_429_TOO_MANY_REQUESTS:
        logger.error("Rate limit exceeded")
        return _error(status.HTTP_429_TOO_MANY_REQUESTS, RATE_LIMITED_ERROR)
    if response.status_code == status.HTTP_402_PAYMENT_REQUIRED:
        logger.error("Payment required")
        return _error(status.HTTP_402_PAYMENT_REQUIRED, PAYMENT_REQUIRED_ERROR)

    text = body.decode("utf-8", errors="ignore") if body else ""
    logger.error("AI gateway error: %s %s", response.status_code, text)
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, UPSTREAM_FAILURE_ERROR)


async def _relay_events(response: Any) -> AsyncGenerator[dict[str, str], None]:
    """Re-emit upstream data payloads, ending with ``[DONE]`` on a clean finish.

    A read failure is re-raised so the connection drops without the
    sentinel and the client sees a transport error.
    """

    buffer = StreamBuffer()
    try:
        async for chunk in response.aiter_bytes():
            for event in buffer.feed(chunk):
                if event.payload is not None:
                    yield _sse_data(event.payload)
            if buffer.done:
                break
        else:
            for event in buffer.finish():
                if event.payload is not None:
                    yield _sse_data(event.payload)
    except httpx.HTTPError as exc:
        logger.error("Upstream stream interrupted: %s", exc)
        raise
    finally:
        await response.aclose()

    if not buffer.done:
        yield {"data": DONE_SENTINEL}


def _sse_data(payload: str) -> dict[str, str]:
    if "\n" in payload:
        # Payloads rejoined across lines must go out as a single data line
        payload = json.dumps(json.loads(payload), ensure_ascii=False)
    return {"data": payload}


__all__ = ["get_upstream_client", "router"]
