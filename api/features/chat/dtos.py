"""DTOs for the Chat feature."""
from datetime import datetime
from typing import List

from pydantic import Field, field_validator

from api.shared.dtos import BaseDTO
from core.settings import SETTINGS


class SendMessageRequest(BaseDTO):
    """Send a message to the medical assistant."""

    message: str = Field(min_length=1, max_length=4000, description="Symptom description or question")
    language: str = Field(
        default_factory=lambda: SETTINGS.CHAT.CHAT_DEFAULT_LANGUAGE,
        min_length=1,
        max_length=50,
        description="Response language, defaults to CHAT_DEFAULT_LANGUAGE",
    )

    @field_validator("message", "language")
    @classmethod
    def not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("must not be blank")
        return value


class ChatReplyDTO(BaseDTO):
    """Assistant reply."""

    response: str = Field(description="Formatted medical guidance")
    timestamp: datetime = Field(description="Reply timestamp")


class ChatMessageDTO(BaseDTO):
    """Persisted chat message."""

    role: str = Field(description="Message role: user or assistant")
    content: str = Field(description="Message content")
    timestamp: datetime = Field(description="Message timestamp")


class ChatHistoryResponse(BaseDTO):
    """Full conversation history for the caller."""

    user_id: str = Field(description="User identifier")
    messages: List[ChatMessageDTO] = Field(default_factory=list, description="Messages in chronological order")


class ClearHistoryResponse(BaseDTO):
    """Result of clearing the caller's history."""

    cleared: bool = Field(description="Whether a stored history record was removed")
