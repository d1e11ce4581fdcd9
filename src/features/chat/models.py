"""Pydantic models for chat feature."""

from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from src.features.knowledge.models import Locale


class MessagePart(BaseModel):
    """One part of a multi-part UI message. Only `text` parts carry content."""

    type: str
    text: str | None = None


class ChatMessage(BaseModel):
    """
    A chat message as sent by the widget.

    Older clients send `content` as a plain string, newer ones send `parts`.
    Both shapes are reduced to one string with `text_content()`.
    """

    role: Literal["user", "assistant", "system"]
    content: str | list[MessagePart] | None = None
    parts: list[MessagePart] | None = None

    def text_content(self) -> str:
        """Text of the message, joining all text parts."""
        if isinstance(self.content, str):
            return self.content
        parts = self.content if isinstance(self.content, list) else self.parts
        if not parts:
            return ""
        return "".join(p.text or "" for p in parts if p.type == "text")


class ChatRequest(BaseModel):
    """Body of `POST /api/chat`."""

    messages: list[ChatMessage] = Field(default_factory=list)

    def last_user_text(self) -> str | None:
        """Text of the final message, or None when it is not a user turn or has no text."""
        if not self.messages or self.messages[-1].role != "user":
            return None
        return self.messages[-1].text_content() or None


class ModelMessage(BaseModel):
    """Normalised conversation turn forwarded to the model."""

    role: Literal["user", "assistant"]
    content: str

    def as_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class ChatStage(str, Enum):
    """Per-request pipeline stages."""
    RECEIVED = "RECEIVED"
    VALIDATING = "VALIDATING"
    REJECTED = "REJECTED"
    VALIDATED = "VALIDATED"
    EMBEDDING = "EMBEDDING"
    RETRIEVING = "RETRIEVING"
    PROMPTING = "PROMPTING"
    STREAMING = "STREAMING"
    COMPLETE = "COMPLETE"
    ERRORED = "ERRORED"


TERMINAL_STAGES = frozenset({ChatStage.REJECTED, ChatStage.COMPLETE, ChatStage.ERRORED})


class ErrorResponse(BaseModel):
    """JSON error body of the chat endpoint."""

    error: str
    details: str | None = None


def resolve_locale(value: str | None, default: Locale = "bg") -> Locale:
    """Locale from the `x-locale` header; unknown values fall back to default."""
    if value:
        value = value.strip().lower()
        if value in ("en", "bg"):
            return value  # type: ignore[return-value]
    return default
