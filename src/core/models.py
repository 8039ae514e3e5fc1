# src/core/models.py - v1
"""Chat data model: messages, request body, result."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class Message(BaseModel):
    """Single conversation turn."""

    role: Literal["user", "assistant"]
    content: str


class ChatRequest(BaseModel):
    """Body of a POST /v1/messages call."""

    model: str
    max_tokens: int = Field(default=4096, gt=0)
    messages: list[Message]
    system: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Plain JSON-ready dict; ``system`` only when non-empty."""
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "messages": [m.model_dump() for m in self.messages],
        }
        if self.system:
            payload["system"] = self.system
        return payload


class ChatResult(BaseModel):
    """Extracted answer plus the decoded response for optional persistence."""

    text: str
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def stop_reason(self) -> str | None:
        return self.raw.get("stop_reason")

    @property
    def usage(self) -> dict[str, Any]:
        return self.raw.get("usage") or {}
