"""Tests for conversation state and the per-turn accumulator."""

import pytest

from edubot.chat.session import (
    ConversationBusyError,
    ConversationSnapshot,
    ConversationState,
    MessageSealedError,
)


def _record(state: ConversationState) -> list[ConversationSnapshot]:
    published: list[ConversationSnapshot] = []
    state.subscribe(published.append)
    return published


def test_first_delta_inserts_assistant_message() -> None:
    state = ConversationState()
    turn = state.begin_turn("Explain atoms", topic="atoms")

    turn.apply_delta("Atoms ")
    turn.apply_delta("are tiny.")

    user, assistant = state.messages
    assert user.role == "user"
    assert user.content == "Explain atoms"
    assert assistant.role == "assistant"
    assert assistant.content == "Atoms are tiny."
    assert assistant.topic == "atoms"
    assert assistant.image_loading is True
    assert assistant.show_animation is True
    assert turn.content == "Atoms are tiny."


def test_every_mutation_republishes_the_list() -> None:
    state = ConversationState()
    published = _record(state)

    turn = state.begin_turn("hi")
    turn.apply_delta("a")
    turn.apply_delta("b")
    turn.apply_metadata(image_loading=False)

    assert [len(snapshot.messages) for snapshot in published] == [1, 2, 2, 2]
    assert published[-1].messages[-1].content == "ab"
    assert published[-1].messages[-1].image_loading is False


def test_empty_delta_is_a_no_op() -> None:
    state = ConversationState()
    turn = state.begin_turn("hi")

    turn.apply_delta("")

    assert len(state.messages) == 1
    assert turn.assistant_message is None


def test_metadata_does_not_touch_content() -> None:
    state = ConversationState()
    turn = state.begin_turn("hi")
    turn.apply_delta("text")

    assert turn.apply_metadata(image_url="https://img.example/x.png") is True

    reply = turn.assistant_message
    assert reply is not None
    assert reply.content == "text"
    assert reply.image_url == "https://img.example/x.png"


def test_metadata_without_assistant_message_reports_false() -> None:
    state = ConversationState()
    turn = state.begin_turn("hi")

    assert turn.apply_metadata(image_loading=False) is False


def test_metadata_rejects_content_fields() -> None:
    state = ConversationState()
    turn = state.begin_turn("hi")
    turn.apply_delta("x")

    with pytest.raises(ValueError):
        turn.apply_metadata(content="overwrite")


def test_closed_content_rejects_more_deltas() -> None:
    state = ConversationState()
    turn = state.begin_turn("hi")
    turn.apply_delta("x")
    turn.close_content()

    with pytest.raises(MessageSealedError):
        turn.apply_delta("y")
    assert turn.apply_metadata(image_loading=False) is True


def test_new_turn_seals_previous_one() -> None:
    state = ConversationState()
    first = state.begin_turn("one")
    first.apply_delta("reply one")

    second = state.begin_turn("two")
    second.apply_delta("reply two")

    assert first.sealed
    with pytest.raises(MessageSealedError):
        first.apply_delta(" more")
    with pytest.raises(MessageSealedError):
        first.apply_metadata(image_loading=False)
    assert [m.content for m in state.messages] == [
        "one",
        "reply one",
        "two",
        "reply two",
    ]


def test_handle_targets_its_own_message_not_the_last_one() -> None:
    state = ConversationState()
    first = state.begin_turn("one")
    first.apply_delta("reply one")
    first.close_content()
    state.begin_turn("two")

    assert first.sealed is True
    assert first.assistant_message is not None
    assert first.assistant_message.content == "reply one"


def test_discard_removes_turn_messages() -> None:
    state = ConversationState()
    earlier = state.begin_turn("earlier")
    earlier.apply_delta("answer")
    earlier.seal()

    turn = state.begin_turn("later")
    turn.apply_delta("partial")
    turn.discard()

    assert [m.content for m in state.messages] == ["earlier", "answer"]
    assert turn.sealed


def test_history_uses_wire_shape() -> None:
    state = ConversationState()
    turn = state.begin_turn("q")
    turn.apply_delta("a")

    assert state.history() == [
        {"role": "user", "content": "q"},
        {"role": "assistant", "content": "a"},
    ]


def test_clear_is_refused_while_loading() -> None:
    state = ConversationState()
    state.begin_turn("q")
    state.set_loading(True)

    with pytest.raises(ConversationBusyError):
        state.clear()

    state.set_loading(False)
    state.clear()
    assert state.messages == ()


def test_failing_listener_does_not_break_publication() -> None:
    state = ConversationState()

    def _broken(snapshot: ConversationSnapshot) -> None:
        raise RuntimeError("boom")

    state.subscribe(_broken)
    published = _record(state)

    state.begin_turn("q")

    assert len(published) == 1


def test_unsubscribe_stops_notifications() -> None:
    state = ConversationState()
    published: list[ConversationSnapshot] = []
    unsubscribe = state.subscribe(published.append)

    unsubscribe()
    state.begin_turn("q")

    assert published == []
