"""Chat session management: streaming, accumulation and orchestration."""

from .orchestrator import CompletionOrchestrator, TurnState
from .session import (
    ConversationBusyError,
    ConversationSnapshot,
    ConversationState,
    Message,
    MessageSealedError,
    TurnHandle,
)
from .topics import count_words, extract_topic

__all__ = [
    "CompletionOrchestrator",
    "ConversationBusyError",
    "ConversationSnapshot",
    "ConversationState",
    "Message",
    "MessageSealedError",
    "TurnHandle",
    "TurnState",
    "count_words",
    "extract_topic",
]
