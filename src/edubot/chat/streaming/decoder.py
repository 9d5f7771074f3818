"""Classify framed SSE lines from a chat completion stream."""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Iterator, Mapping, Sequence

from .types import EventKind, StreamEvent

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

_IGNORED = StreamEvent(EventKind.IGNORED)
_INCOMPLETE = StreamEvent(EventKind.INCOMPLETE)
_DONE = StreamEvent(EventKind.DONE, payload=DONE_SENTINEL)
_UNPARSEABLE = object()


class EventDecoder:
    """Turn framed lines into content deltas.

    A data line whose JSON payload does not parse is held in
    ``pending_partial_line`` instead of being dropped. The next line is
    appended to it and the combined payload is retried. If the new line
    decodes on its own the held fragment was unrecoverable and is discarded.
    Once ``[DONE]`` is seen every later line is ignored.
    """

    __slots__ = ("_pending", "_finished")

    def __init__(self) -> None:
        self._pending: str | None = None
        self._finished = False

    @property
    def pending_partial_line(self) -> str | None:
        return self._pending

    @property
    def finished(self) -> bool:
        return self._finished

    def decode(self, line: str) -> StreamEvent:
        if self._finished:
            return _IGNORED

        if self._pending is not None:
            event = self._retry_pending(self._pending, line)
            if event is not None:
                return event

        return self._decode_line(line)

    def decode_all(self, lines: Iterable[str]) -> Iterator[StreamEvent]:
        """Decode lines in order, stopping after the termination marker."""

        for line in lines:
            if self._finished:
                return
            yield self.decode(line)

    def finish(self) -> None:
        """Drop any payload still waiting for more data."""

        if self._pending is not None:
            logger.debug(
                "Dropping undecodable SSE payload at end of stream (%d chars)",
                len(self._pending),
            )
        self._pending = None

    def _retry_pending(self, pending: str, line: str) -> StreamEvent | None:
        combined = f"{pending}\n{line}"
        parsed = _parse_json(combined[len(DATA_PREFIX) :])
        if parsed is not _UNPARSEABLE:
            self._pending = None
            return _event_from_payload(parsed, combined[len(DATA_PREFIX) :].strip())

        if _is_self_contained(line):
            logger.debug(
                "Discarding undecodable SSE payload superseded by a new event"
            )
            self._pending = None
            return None

        self._pending = combined
        return _INCOMPLETE

    def _decode_line(self, line: str) -> StreamEvent:
        if not line.strip() or line.startswith(":"):
            return _IGNORED
        if not line.startswith(DATA_PREFIX):
            return _IGNORED

        raw = line[len(DATA_PREFIX) :].strip()
        if raw == DONE_SENTINEL:
            self._finished = True
            self._pending = None
            return _DONE

        parsed = _parse_json(raw)
        if parsed is _UNPARSEABLE:
            self._pending = line
            return _INCOMPLETE
        return _event_from_payload(parsed, raw)


def _parse_json(raw: str) -> Any:
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return _UNPARSEABLE


def _is_self_contained(line: str) -> bool:
    """Return True when ``line`` is a complete event on its own."""

    if not line.strip() or line.startswith(":"):
        return True
    if not line.startswith(DATA_PREFIX):
        return False
    raw = line[len(DATA_PREFIX) :].strip()
    return raw == DONE_SENTINEL or _parse_json(raw) is not _UNPARSEABLE


def _event_from_payload(parsed: Any, raw: str) -> StreamEvent:
    content = extract_delta_content(parsed)
    if content:
        return StreamEvent(EventKind.DELTA, content=content, payload=raw)
    return StreamEvent(EventKind.METADATA, payload=raw)


def extract_delta_content(payload: Any) -> str | None:
    """Return ``choices[0].delta.content`` when it is a string."""

    if not isinstance(payload, Mapping):
        return None
    choices = payload.get("choices")
    if not isinstance(choices, Sequence) or isinstance(choices, str) or not choices:
        return None
    choice = choices[0]
    if not isinstance(choice, Mapping):
        return None
    delta = choice.get("delta")
    if not isinstance(delta, Mapping):
        return None
    content = delta.get("content")
    return content if isinstance(content, str) else None


__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "EventDecoder",
    "extract_delta_content",
]
