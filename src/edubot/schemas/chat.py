"""Pydantic models for the relay's chat endpoint."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """Represents a single chat message."""

    role: Literal["user", "assistant"]
    content: str

    model_config = ConfigDict(extra="ignore")


class ChatRequest(BaseModel):
    """Conversation posted by the chat front end."""

    messages: List[ChatMessage] = Field(default_factory=list)

    def to_upstream_payload(self, model: str, system_prompt: str) -> Dict[str, Any]:
        """Build the streaming completion request for the upstream gateway."""

        messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
        messages.extend(message.model_dump() for message in self.messages)
        return {"model": model, "messages": messages, "stream": True}


class ErrorResponse(BaseModel):
    error: Optional[str] = None


__all__ = ["ChatMessage", "ChatRequest", "ErrorResponse"]
