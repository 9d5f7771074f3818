"""Drive one chat turn from request to enriched, sealed reply."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Callable, Iterable

from ..gateway import GatewayError, GatewayTransportError
from ..notifications import (
    LoggingNotifier,
    Notice,
    Notifier,
    notice_for_status,
    transport_failure_notice,
)
from .session import ConversationBusyError, ConversationState, TurnHandle
from .streaming import CompletionTransport, EventKind, StreamBuffer, StreamEvent
from .topics import count_words, extract_topic

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_WORD_THRESHOLD = 150


class TurnState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    STREAMING = "streaming"
    ENRICHMENT_PENDING = "enrichment_pending"
    ENRICHED = "enriched"
    ERROR = "error"


_ALLOWED_TRANSITIONS: dict[TurnState, frozenset[TurnState]] = {
    TurnState.IDLE: frozenset({TurnState.AWAITING_RESPONSE}),
    TurnState.AWAITING_RESPONSE: frozenset({TurnState.STREAMING, TurnState.ERROR}),
    TurnState.STREAMING: frozenset(
        {TurnState.ENRICHMENT_PENDING, TurnState.IDLE, TurnState.ERROR}
    ),
    TurnState.ENRICHMENT_PENDING: frozenset({TurnState.ENRICHED, TurnState.IDLE}),
    TurnState.ENRICHED: frozenset({TurnState.IDLE}),
    TurnState.ERROR: frozenset({TurnState.IDLE}),
}


class CompletionOrchestrator:
    """Send the conversation, stream the reply and optionally illustrate it.

    Only one turn runs at a time: calling :meth:`send_message` while the
    conversation is loading raises :class:`ConversationBusyError`.
    """

    def __init__(
        self,
        transport: CompletionTransport,
        *,
        state: ConversationState | None = None,
        notifier: Notifier | None = None,
        image_word_threshold: int = DEFAULT_IMAGE_WORD_THRESHOLD,
    ) -> None:
        self._transport = transport
        self._conversation = state or ConversationState()
        self._notifier = notifier or LoggingNotifier()
        self._image_word_threshold = image_word_threshold
        self._state = TurnState.IDLE
        self._state_listeners: list[Callable[[TurnState], None]] = []

    @property
    def conversation(self) -> ConversationState:
        return self._conversation

    @property
    def state(self) -> TurnState:
        return self._state

    def on_state_change(self, listener: Callable[[TurnState], None]) -> None:
        self._state_listeners.append(listener)

    async def send_message(self, user_input: str) -> TurnHandle | None:
        """Run one full turn.

        Returns the turn handle on success and ``None`` when the turn failed
        and was rolled back.
        """

        if self._conversation.is_loading or self._state is not TurnState.IDLE:
            raise ConversationBusyError("A reply is still streaming")

        history = self._conversation.history()
        topic = extract_topic(user_input)
        turn = self._conversation.begin_turn(user_input, topic=topic)
        history.append(turn.user_message.to_payload())

        self._conversation.set_loading(True)
        logger.info("Sending chat turn with %d message(s)", len(history))

        try:
            self._transition(TurnState.AWAITING_RESPONSE)
            await self._stream_reply(history, turn)
        except GatewayTransportError as exc:
            logger.warning("Chat transport failed: %s", exc.detail)
            self._fail(turn, transport_failure_notice())
            return None
        except GatewayError as exc:
            logger.warning(
                "Chat request rejected with status %s: %s", exc.status_code, exc.detail
            )
            self._fail(turn, notice_for_status(exc.status_code, exc.server_message))
            return None
        except asyncio.CancelledError:
            logger.info("Chat turn cancelled; rolling back")
            self._fail(turn, None)
            raise
        except Exception:
            logger.exception("Chat turn failed")
            self._fail(turn, transport_failure_notice())
            return None

        turn.close_content()
        word_count = count_words(turn.content)
        try:
            if word_count >= self._image_word_threshold:
                self._transition(TurnState.ENRICHMENT_PENDING)
                await self._enrich(turn, topic, user_input)
                self._transition(TurnState.ENRICHED)
            else:
                logger.debug(
                    "Reply has %d word(s); skipping illustration", word_count
                )
        except asyncio.CancelledError:
            logger.info("Illustration cancelled; keeping the streamed reply")
            raise
        finally:
            self._settle(turn)

        logger.info("Chat turn complete (%d word(s))", word_count)
        return turn

    async def _stream_reply(
        self, history: list[dict[str, str]], turn: TurnHandle
    ) -> None:
        buffer = StreamBuffer()
        async with self._transport.stream_completion(history) as chunks:
            self._transition(TurnState.STREAMING)
            async for chunk in chunks:
                self._apply_events(turn, buffer.feed(chunk))
                if buffer.done:
                    break
        self._apply_events(turn, buffer.finish())

    @staticmethod
    def _apply_events(turn: TurnHandle, events: Iterable[StreamEvent]) -> None:
        for event in events:
            if event.kind is EventKind.DELTA and event.content:
                turn.apply_delta(event.content)

    async def _enrich(self, turn: TurnHandle, topic: str, context: str) -> None:
        image_url: str | None = None
        try:
            image_url = await self._transport.generate_topic_image(topic, context)
        except Exception:
            logger.exception("Error generating image for topic %r", topic)

        if image_url:
            turn.apply_metadata(image_url=image_url, image_loading=False)
        else:
            turn.apply_metadata(image_loading=False)

    def _settle(self, turn: TurnHandle) -> None:
        """Seal the reply and return to idle, whatever ended the turn."""

        reply = turn.assistant_message
        if reply is not None and reply.image_loading:
            turn.apply_metadata(image_loading=False)
        turn.seal()
        self._conversation.set_loading(False)
        if self._state is not TurnState.IDLE:
            self._transition(TurnState.IDLE)

    def _fail(self, turn: TurnHandle, notice: Notice | None) -> None:
        try:
            self._transition(TurnState.ERROR)
        finally:
            turn.discard()
            self._conversation.set_loading(False)
            if notice is not None:
                self._notifier.notify(notice)
            self._transition(TurnState.IDLE)

    def _transition(self, new_state: TurnState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Invalid turn transition {self._state.value} -> {new_state.value}"
            )
        logger.debug("Turn state %s -> %s", self._state.value, new_state.value)
        self._state = new_state
        for listener in list(self._state_listeners):
            listener(new_state)


__all__ = [
    "DEFAULT_IMAGE_WORD_THRESHOLD",
    "CompletionOrchestrator",
    "TurnState",
]
