"""History store for per-user conversation records."""
from typing import Optional, Protocol

from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError

from api.features.chat.entities.chat_history import ChatHistory
from api.features.chat.exceptions import HistoryPersistenceError
from api.features.chat.models import ConversationHistory
from api.shared.base import BaseRepository


class HistoryStore(Protocol):
    """Persistence boundary used by the chat service."""

    async def find_by_user(self, user_id: str) -> Optional[ConversationHistory]:
        ...

    async def save(self, history: ConversationHistory) -> None:
        """Append the messages added since the history was loaded."""
        ...

    async def delete_by_user(self, user_id: str) -> bool:
        ...


class ChatHistoryRepository(BaseRepository[ChatHistory]):
    """PostgreSQL-backed history store, one JSONB document per user.

    Saves only append: the messages added since the load are concatenated
    onto the stored array, so entries that could not be read back are kept
    as they are.
    """

    model = ChatHistory

    async def find_by_user(self, user_id: str) -> Optional[ConversationHistory]:
        try:
            entities = await self.get_by_field("user_id", user_id, limit=1)
            # End the read transaction before the caller waits on the LLM
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise HistoryPersistenceError("loaded", str(e), user_id=user_id) from e
        return ConversationHistory.from_entity(entities[0]) if entities else None

    async def save(self, history: ConversationHistory) -> None:
        """Append the history's pending messages, creating the record if needed."""
        documents = history.pending_documents()
        if not documents:
            return
        stmt = insert(ChatHistory).values(user_id=history.user_id, messages=documents)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ChatHistory.user_id],
            set_={
                "messages": ChatHistory.messages.op("||")(stmt.excluded.messages),
                "updated_at": func.now(),
            },
        )
        try:
            await self.session.execute(stmt)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise HistoryPersistenceError(
                "saved", str(e), user_id=history.user_id
            ) from e
        history.mark_stored()

    async def delete_by_user(self, user_id: str) -> bool:
        try:
            deleted = await self.delete_by_field("user_id", user_id)
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise HistoryPersistenceError("cleared", str(e), user_id=user_id) from e
        return deleted > 0
