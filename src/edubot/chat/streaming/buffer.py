"""Per-request buffer driving the line framer and event decoder together."""

from __future__ import annotations

from .decoder import EventDecoder
from .framing import LineFramer
from .types import EventKind, StreamEvent


class StreamBuffer:
    """Hold the undecoded tail and the reply text for one streaming request."""

    __slots__ = ("_framer", "_decoder", "_content")

    def __init__(self) -> None:
        self._framer = LineFramer()
        self._decoder = EventDecoder()
        self._content = ""

    @property
    def content(self) -> str:
        return self._content

    @property
    def done(self) -> bool:
        return self._decoder.finished

    @property
    def tail(self) -> str:
        return self._framer.tail

    def feed(self, chunk: bytes | str) -> list[StreamEvent]:
        """Frame ``chunk`` and return the decodable events it completed."""

        if self.done:
            return []
        return self._collect(self._framer.feed(chunk))

    def finish(self) -> list[StreamEvent]:
        """Decode whatever is left once the body is exhausted."""

        events: list[StreamEvent] = []
        if not self.done:
            events = self._collect(self._framer.finish())
        self._decoder.finish()
        return events

    def _collect(self, lines: list[str]) -> list[StreamEvent]:
        events: list[StreamEvent] = []
        for event in self._decoder.decode_all(lines):
            if event.kind in (EventKind.IGNORED, EventKind.INCOMPLETE):
                continue
            if event.has_delta and event.content:
                self._content += event.content
            events.append(event)
        return events


__all__ = ["StreamBuffer"]
