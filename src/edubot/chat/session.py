"""Conversation state and the per-turn message accumulator."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Literal

logger = logging.getLogger(__name__)


Role = Literal["user", "assistant"]

_METADATA_FIELDS = frozenset({"topic", "image_url", "image_loading", "show_animation"})


class ConversationBusyError(RuntimeError):
    """Raised when the conversation is changed while a turn is in flight."""


class MessageSealedError(RuntimeError):
    """Raised when a finished turn is mutated."""


@dataclass(frozen=True)
class Message:
    """One conversation turn as seen by observers.

    Instances are immutable; updates publish a replacement that keeps the
    same ``id``.
    """

    role: Role
    content: str
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    topic: str | None = None
    image_url: str | None = None
    image_loading: bool = False
    show_animation: bool = False

    def to_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class ConversationSnapshot:
    messages: tuple[Message, ...]
    is_loading: bool


Listener = Callable[[ConversationSnapshot], None]


class ConversationState:
    """Ordered messages plus the loading flag.

    Only the completion orchestrator and the turn handles it creates mutate
    the state; everything else subscribes and reads snapshots.
    """

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._is_loading = False
        self._listeners: list[Listener] = []
        self._active_turn: TurnHandle | None = None

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    def snapshot(self) -> ConversationSnapshot:
        return ConversationSnapshot(messages=self.messages, is_loading=self._is_loading)

    def history(self) -> list[dict[str, str]]:
        """Return the wire representation of every message."""

        return [message.to_payload() for message in self._messages]

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener`` and return a callable that removes it."""

        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def begin_turn(self, user_input: str, *, topic: str | None = None) -> TurnHandle:
        """Append a user message and open a fresh accumulation epoch."""

        if self._active_turn is not None and not self._active_turn.sealed:
            self._active_turn.seal()
        user_message = Message(role="user", content=user_input)
        self._messages.append(user_message)
        handle = TurnHandle(self, user_message, topic=topic)
        self._active_turn = handle
        self._publish()
        return handle

    def set_loading(self, value: bool) -> None:
        if self._is_loading == value:
            return
        self._is_loading = value
        self._publish()

    def clear(self) -> None:
        if self._is_loading:
            raise ConversationBusyError("Cannot clear the conversation mid-turn")
        if self._active_turn is not None:
            self._active_turn.seal()
        self._active_turn = None
        self._messages.clear()
        self._publish()

    def get(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def _append(self, message: Message) -> None:
        self._messages.append(message)
        self._publish()

    def _replace(self, message: Message) -> None:
        for index, existing in enumerate(self._messages):
            if existing.id == message.id:
                self._messages[index] = message
                self._publish()
                return
        raise KeyError(message.id)

    def _remove(self, message_ids: set[str]) -> None:
        remaining = [m for m in self._messages if m.id not in message_ids]
        if len(remaining) != len(self._messages):
            self._messages = remaining
            self._publish()

    def _publish(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Conversation listener failed")


class TurnHandle:
    """Accumulate one assistant reply and mutate exactly that message."""

    def __init__(
        self,
        state: ConversationState,
        user_message: Message,
        *,
        topic: str | None = None,
    ) -> None:
        self._state = state
        self._user_message = user_message
        self._topic = topic
        self._assistant_id: str | None = None
        self._content = ""
        self._content_closed = False
        self._sealed = False

    @property
    def user_message(self) -> Message:
        return self._user_message

    @property
    def assistant_message(self) -> Message | None:
        if self._assistant_id is None:
            return None
        return self._state.get(self._assistant_id)

    @property
    def content(self) -> str:
        return self._content

    @property
    def content_closed(self) -> bool:
        return self._content_closed

    @property
    def sealed(self) -> bool:
        return self._sealed

    def apply_delta(self, text: str) -> None:
        """Append ``text`` to the assistant reply, creating it on first use."""

        self._ensure_open()
        if self._content_closed:
            raise MessageSealedError("Assistant content is closed for this turn")
        if not text:
            return

        self._content += text
        if self._assistant_id is None:
            message = Message(
                role="assistant",
                content=self._content,
                topic=self._topic,
                image_loading=True,
                show_animation=True,
            )
            self._assistant_id = message.id
            self._state._append(message)
            return

        current = self._require_assistant()
        self._state._replace(replace(current, content=self._content))

    def apply_metadata(self, **fields: Any) -> bool:
        """Merge non-content fields into the assistant reply.

        Returns False when no assistant message exists for this turn.
        """

        self._ensure_open()
        unknown = set(fields) - _METADATA_FIELDS
        if unknown:
            raise ValueError(f"Unsupported message fields: {sorted(unknown)}")
        if self._assistant_id is None:
            logger.debug("No assistant message to update for this turn")
            return False

        current = self._require_assistant()
        self._state._replace(replace(current, **fields))
        return True

    def close_content(self) -> None:
        """Freeze the reply text; metadata may still change until sealed."""

        self._content_closed = True

    def seal(self) -> None:
        self._content_closed = True
        self._sealed = True

    def discard(self) -> None:
        """Remove every message this turn added to the conversation."""

        ids = {self._user_message.id}
        if self._assistant_id is not None:
            ids.add(self._assistant_id)
        self._sealed = True
        self._content_closed = True
        self._state._remove(ids)

    def _ensure_open(self) -> None:
        if self._sealed:
            raise MessageSealedError("Turn is sealed")

    def _require_assistant(self) -> Message:
        message = self.assistant_message
        if message is None:
            raise MessageSealedError("Assistant message is no longer in the conversation")
        return message


__all__ = [
    "ConversationBusyError",
    "ConversationSnapshot",
    "ConversationState",
    "Listener",
    "Message",
    "MessageSealedError",
    "Role",
    "TurnHandle",
]
