"""Tests for reassembling SSE lines from network fragments."""

import pytest

from edubot.chat.streaming import LineFramer, frame_lines


STREAM = (
    ": keepalive\r\n"
    'data: {"choices":[{"delta":{"content":"Hel"}}]}\r\n'
    "\r\n"
    'data: {"choices":[{"delta":{"content":"lo été"}}]}\n'
    "\n"
    "data: [DONE]\n"
)

EXPECTED = [
    ": keepalive",
    'data: {"choices":[{"delta":{"content":"Hel"}}]}',
    "",
    'data: {"choices":[{"delta":{"content":"lo été"}}]}',
    "",
    "data: [DONE]",
]


def _split_every(data, size):
    return [data[i : i + size] for i in range(0, len(data), size)]


def test_unsplit_stream_yields_every_line() -> None:
    assert frame_lines([STREAM]) == EXPECTED


@pytest.mark.parametrize("size", [1, 2, 3, 5, 7, 16, 64])
def test_text_fragmentation_does_not_change_lines(size: int) -> None:
    assert frame_lines(_split_every(STREAM, size)) == EXPECTED


@pytest.mark.parametrize("size", [1, 2, 3, 13])
def test_byte_fragmentation_across_multibyte_characters(size: int) -> None:
    encoded = STREAM.encode("utf-8")
    assert frame_lines(_split_every(encoded, size)) == EXPECTED


def test_partial_line_is_held_until_newline() -> None:
    framer = LineFramer()

    assert framer.feed("data: {\"a\"") == []
    assert framer.tail == 'data: {"a"'
    assert framer.feed(": 1}\r") == []
    assert framer.feed("\nnext") == ['data: {"a": 1}']
    assert framer.tail == "next"


def test_finish_flushes_unterminated_residual() -> None:
    framer = LineFramer()

    assert framer.feed("data: one\ndata: two") == ["data: one"]
    assert framer.finish() == ["data: two"]
    assert framer.tail == ""


def test_finish_on_empty_buffer_returns_nothing() -> None:
    framer = LineFramer()
    framer.feed("data: one\n")

    assert framer.finish() == []


def test_carriage_return_split_from_line_feed_is_stripped() -> None:
    framer = LineFramer()

    assert framer.feed("abc\r") == []
    assert framer.feed("\n") == ["abc"]
