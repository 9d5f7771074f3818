"""Tests for classifying SSE lines and recovering split payloads."""

import json

from edubot.chat.streaming import (
    EventDecoder,
    EventKind,
    StreamBuffer,
    extract_delta_content,
)


def _data_line(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


class TestEventDecoder:
    def test_content_delta(self) -> None:
        event = EventDecoder().decode(_data_line("Hi"))

        assert event.kind is EventKind.DELTA
        assert event.content == "Hi"

    def test_keepalive_and_blank_lines_are_ignored(self) -> None:
        decoder = EventDecoder()

        assert decoder.decode(": keepalive").kind is EventKind.IGNORED
        assert decoder.decode("").kind is EventKind.IGNORED
        assert decoder.decode("   ").kind is EventKind.IGNORED
        assert decoder.pending_partial_line is None

    def test_non_data_fields_are_ignored(self) -> None:
        decoder = EventDecoder()

        assert decoder.decode("event: message").kind is EventKind.IGNORED
        assert decoder.decode("id: 42").kind is EventKind.IGNORED
        assert decoder.decode("data:no-space").kind is EventKind.IGNORED

    def test_payload_without_content_is_metadata(self) -> None:
        decoder = EventDecoder()
        line = 'data: {"choices":[{"delta":{"role":"assistant"}}]}'

        event = decoder.decode(line)

        assert event.kind is EventKind.METADATA
        assert event.content is None
        assert not event.has_delta

    def test_done_stops_decoding(self) -> None:
        decoder = EventDecoder()

        assert decoder.decode("data: [DONE]").kind is EventKind.DONE
        assert decoder.finished
        assert decoder.decode(_data_line("late")).kind is EventKind.IGNORED

    def test_decode_all_stops_after_done(self) -> None:
        decoder = EventDecoder()
        lines = [_data_line("a"), "data: [DONE]", _data_line("b")]

        kinds = [event.kind for event in decoder.decode_all(lines)]

        assert kinds == [EventKind.DELTA, EventKind.DONE]

    def test_unparseable_payload_is_held_then_completed(self) -> None:
        decoder = EventDecoder()

        first = decoder.decode('data: {"choices":[{"delta":')
        assert first.kind is EventKind.INCOMPLETE
        assert decoder.pending_partial_line == 'data: {"choices":[{"delta":'

        second = decoder.decode('{"content":"joined"}}]}')
        assert second.kind is EventKind.DELTA
        assert second.content == "joined"
        assert decoder.pending_partial_line is None

    def test_pending_payload_superseded_by_new_event_is_dropped(self) -> None:
        decoder = EventDecoder()
        decoder.decode('data: {"broken"')

        event = decoder.decode(_data_line("fresh"))

        assert event.kind is EventKind.DELTA
        assert event.content == "fresh"
        assert decoder.pending_partial_line is None

    def test_finish_discards_pending_payload(self) -> None:
        decoder = EventDecoder()
        decoder.decode('data: {"broken"')

        decoder.finish()

        assert decoder.pending_partial_line is None


class TestStreamBuffer:
    def test_line_split_mid_json_recovers_single_delta(self) -> None:
        buffer = StreamBuffer()

        first = buffer.feed('data: {"choices":[{"delta":{"content":"Hel')
        second = buffer.feed('lo"}}]}\n')

        assert first == []
        assert [event.content for event in second] == ["Hello"]
        assert buffer.content == "Hello"

    def test_keepalive_and_blank_line_produce_no_events(self) -> None:
        buffer = StreamBuffer()

        assert buffer.feed(": keepalive\n") == []
        assert buffer.feed("\n") == []
        assert buffer.content == ""

    def test_data_after_done_in_same_chunk_is_ignored(self) -> None:
        buffer = StreamBuffer()
        chunk = _data_line("kept") + "\ndata: [DONE]\n" + _data_line("dropped") + "\n"

        events = buffer.feed(chunk)

        assert [event.kind for event in events] == [EventKind.DELTA, EventKind.DONE]
        assert buffer.content == "kept"
        assert buffer.done
        assert buffer.feed(_data_line("later") + "\n") == []
        assert buffer.finish() == []

    def test_finish_decodes_residual_without_trailing_newline(self) -> None:
        buffer = StreamBuffer()

        assert buffer.feed(_data_line("tail")) == []
        events = buffer.finish()

        assert [event.content for event in events] == ["tail"]
        assert buffer.content == "tail"

    def test_unresolved_fragment_at_end_is_silently_dropped(self) -> None:
        buffer = StreamBuffer()
        buffer.feed(_data_line("ok") + "\n")
        buffer.feed('data: {"choices":[{"delta":{"content":"cut')

        assert buffer.finish() == []
        assert buffer.content == "ok"


def test_extract_delta_content_handles_odd_shapes() -> None:
    assert extract_delta_content({"choices": []}) is None
    assert extract_delta_content({"choices": "nope"}) is None
    assert extract_delta_content({"choices": [{"delta": None}]}) is None
    assert extract_delta_content({"choices": [{"delta": {"content": 3}}]}) is None
    assert extract_delta_content([1, 2]) is None
    assert extract_delta_content({"choices": [{"delta": {"content": "x"}}]}) == "x"
