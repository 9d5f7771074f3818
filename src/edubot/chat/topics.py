"""Helpers deriving enrichment inputs from a finished turn."""

from __future__ import annotations

import re

_CONVERSATIONAL_PREFIX = re.compile(
    r"^(explain|teach me|help me with|what is|how does|tell me about|describe)\s*",
    re.IGNORECASE,
)
_TRAILING_QUESTION = re.compile(r"\?\Z")


def extract_topic(user_message: str) -> str:
    """Strip conversational lead-ins so the remainder names the subject.

    >>> extract_topic("Explain photosynthesis?")
    'photosynthesis'
    """

    cleaned = _CONVERSATIONAL_PREFIX.sub("", user_message, count=1)
    cleaned = _TRAILING_QUESTION.sub("", cleaned, count=1).strip()
    return cleaned or user_message


def count_words(text: str) -> int:
    """Count whitespace-delimited tokens."""

    return len(text.split())


__all__ = ["count_words", "extract_topic"]
