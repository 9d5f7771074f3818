"""Type definitions for the chat streaming subsystem."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import AsyncContextManager, AsyncIterator, Protocol, Sequence


ChunkSource = AsyncIterator[bytes | str]


class EventKind(str, Enum):
    DELTA = "delta"
    METADATA = "metadata"
    DONE = "done"
    IGNORED = "ignored"
    INCOMPLETE = "incomplete"


@dataclass(frozen=True)
class StreamEvent:
    """A single classified SSE line."""

    kind: EventKind
    content: str | None = None
    payload: str | None = None

    @property
    def has_delta(self) -> bool:
        return self.kind is EventKind.DELTA and bool(self.content)


class CompletionTransport(Protocol):
    """Network collaborator used by the completion orchestrator."""

    def stream_completion(
        self, messages: Sequence[dict[str, str]]
    ) -> AsyncContextManager[ChunkSource]:
        ...

    async def generate_topic_image(self, topic: str, context: str) -> str | None:
        ...


__all__ = [
    "ChunkSource",
    "CompletionTransport",
    "EventKind",
    "StreamEvent",
]
