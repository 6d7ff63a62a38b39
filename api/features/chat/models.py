"""Domain models for the Chat feature."""
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from api.features.chat.entities.chat_history import ChatHistory as ChatHistoryEntity

logger = logging.getLogger("medassist.chat.models")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Who authored a persisted message."""

    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(BaseModel):
    """A single exchanged message. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    role: MessageRole = Field(description="Message author")
    content: str = Field(description="Message text")
    timestamp: datetime = Field(default_factory=utcnow, description="Creation time")

    def to_document(self) -> Dict[str, Any]:
        """Serialize for the JSONB messages column."""
        return {
            "role": self.role.value,
            "content": self.content,
            "timestamp": self.timestamp.isoformat(),
        }


class ConversationHistory(BaseModel):
    """Ordered, append-only message log owned by one user.

    ``_stored_count`` is how many leading messages already exist in the
    store; only the messages after it are written on the next save.
    """

    user_id: str = Field(description="Owning user identity")
    messages: List[ChatMessage] = Field(
        default_factory=list, description="Messages in chronological order"
    )

    _stored_count: int = PrivateAttr(default=0)

    @classmethod
    def loaded(cls, user_id: str, messages: List[ChatMessage]) -> "ConversationHistory":
        """History read back from a store, with every message marked as stored."""
        history = cls(user_id=user_id, messages=messages)
        history._stored_count = len(messages)
        return history

    def append(self, message: ChatMessage) -> None:
        self.messages.append(message)

    def pending_messages(self) -> List[ChatMessage]:
        """Messages appended since the history was loaded or last saved."""
        return self.messages[self._stored_count:]

    def mark_stored(self) -> None:
        self._stored_count = len(self.messages)

    def pending_documents(self) -> List[Dict[str, Any]]:
        return [m.to_document() for m in self.pending_messages()]

    @classmethod
    def from_entity(cls, entity: ChatHistoryEntity) -> "ConversationHistory":
        """Create model from database entity.

        Stored entries whose role is not ``user``/``assistant`` (or that are
        otherwise malformed) are logged and left out of the model. They stay
        in the stored record, since saves only append.
        """
        messages: List[ChatMessage] = []
        for index, raw in enumerate(entity.messages or []):
            try:
                messages.append(ChatMessage.model_validate(raw))
            except ValidationError as e:
                role = raw.get("role") if isinstance(raw, dict) else None
                logger.warning(
                    f"Skipping invalid stored message #{index} for user "
                    f"{entity.user_id} (role={role!r}): {e.error_count()} error(s)"
                )
        return cls.loaded(entity.user_id, messages)
