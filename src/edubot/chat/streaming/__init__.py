"""Chat streaming package."""

from .buffer import StreamBuffer
from .decoder import DATA_PREFIX, DONE_SENTINEL, EventDecoder, extract_delta_content
from .framing import LineFramer, frame_lines
from .types import ChunkSource, CompletionTransport, EventKind, StreamEvent

__all__ = [
    "DATA_PREFIX",
    "DONE_SENTINEL",
    "ChunkSource",
    "CompletionTransport",
    "EventDecoder",
    "EventKind",
    "LineFramer",
    "StreamBuffer",
    "StreamEvent",
    "extract_delta_content",
    "frame_lines",
]
