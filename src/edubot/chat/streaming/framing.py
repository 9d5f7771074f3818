"""Reassemble newline-terminated SSE lines from arbitrary network fragments."""

from __future__ import annotations

import codecs


class LineFramer:
    """Incrementally split a text or byte stream into complete lines.

    Fragments may break anywhere, including inside a multi-byte UTF-8
    sequence or between ``\\r`` and ``\\n``. A line is only emitted once its
    terminating ``\\n`` has been seen; the trailing ``\\r`` of a CRLF pair is
    stripped.
    """

    __slots__ = ("_tail", "_decoder")

    def __init__(self) -> None:
        self._tail = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    @property
    def tail(self) -> str:
        """Buffered text that does not yet form a complete line."""

        return self._tail

    def feed(self, fragment: bytes | str) -> list[str]:
        if isinstance(fragment, (bytes, bytearray, memoryview)):
            text = self._decoder.decode(bytes(fragment))
        else:
            text = fragment
        if not text:
            return []

        self._tail += text
        lines: list[str] = []
        while True:
            index = self._tail.find("\n")
            if index == -1:
                break
            lines.append(_strip_cr(self._tail[:index]))
            self._tail = self._tail[index + 1 :]
        return lines

    def finish(self) -> list[str]:
        """Flush the residual tail at end of stream.

        Some servers omit the final newline, so whatever is left is still
        split into lines and returned.
        """

        residual = self._tail + self._decoder.decode(b"", final=True)
        self._tail = ""
        self._decoder.reset()
        if not residual:
            return []
        return [_strip_cr(line) for line in residual.split("\n")]


def _strip_cr(line: str) -> str:
    return line[:-1] if line.endswith("\r") else line


def frame_lines(fragments: list[bytes | str] | tuple[bytes | str, ...]) -> list[str]:
    """Frame a complete, already-collected sequence of fragments."""

    framer = LineFramer()
    lines: list[str] = []
    for fragment in fragments:
        lines.extend(framer.feed(fragment))
    lines.extend(framer.finish())
    return lines


__all__ = ["LineFramer", "frame_lines"]
