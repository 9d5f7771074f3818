"""User-facing notices raised when a chat turn fails."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please try again in a moment."
SERVICE_UNAVAILABLE_MESSAGE = "AI service unavailable. Please contact support."
GENERIC_FAILURE_MESSAGE = "Failed to get response"
TRANSPORT_FAILURE_MESSAGE = "Failed to send message"


class NoticeKind(str, Enum):
    RATE_LIMIT = "rate_limit"
    SERVICE_UNAVAILABLE = "service_unavailable"
    FAILURE = "failure"


@dataclass(frozen=True)
class Notice:
    kind: NoticeKind
    message: str


class Notifier(Protocol):
    def notify(self, notice: Notice) -> None:
        ...


def notice_for_status(status_code: int, server_message: str | None = None) -> Notice:
    """Map a failed completion status onto the notice shown to the user."""

    if status_code == 429:
        return Notice(NoticeKind.RATE_LIMIT, RATE_LIMIT_MESSAGE)
    if status_code == 402:
        return Notice(NoticeKind.SERVICE_UNAVAILABLE, SERVICE_UNAVAILABLE_MESSAGE)
    return Notice(NoticeKind.FAILURE, server_message or GENERIC_FAILURE_MESSAGE)


def transport_failure_notice() -> Notice:
    return Notice(NoticeKind.FAILURE, TRANSPORT_FAILURE_MESSAGE)


class LoggingNotifier:
    """Fallback notifier that only writes notices to the log."""

    def notify(self, notice: Notice) -> None:
        logger.warning("%s: %s", notice.kind.value, notice.message)


__all__ = [
    "GENERIC_FAILURE_MESSAGE",
    "RATE_LIMIT_MESSAGE",
    "SERVICE_UNAVAILABLE_MESSAGE",
    "TRANSPORT_FAILURE_MESSAGE",
    "LoggingNotifier",
    "Notice",
    "NoticeKind",
    "Notifier",
    "notice_for_status",
    "transport_failure_notice",
]
