"""Controller for the Chat feature."""
import logging
from typing import Callable

from fastapi import HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.dtos import (
    ChatHistoryResponse,
    ChatMessageDTO,
    ChatReplyDTO,
    ClearHistoryResponse,
)
from api.features.chat.exceptions import (
    ChatException,
    CompletionAuthenticationError,
    CompletionFailedError,
    CompletionQuotaExceededError,
    CompletionRateLimitedError,
    HistoryPersistenceError,
)
from api.features.chat.repositories.history_repository import HistoryStore
from api.features.chat.service import ChatService
from api.shared.dtos import ErrorResponse
from api.shared.exceptions import MedAssistException, ValidationError

logger = logging.getLogger("medassist.chat.controller")

HistoryStoreFactory = Callable[[AsyncSession], HistoryStore]

_STATUS_BY_ERROR = (
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (CompletionAuthenticationError, status.HTTP_502_BAD_GATEWAY),
    (CompletionRateLimitedError, status.HTTP_429_TOO_MANY_REQUESTS),
    (CompletionQuotaExceededError, status.HTTP_503_SERVICE_UNAVAILABLE),
    (CompletionFailedError, status.HTTP_502_BAD_GATEWAY),
    (HistoryPersistenceError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def to_http_exception(exc: MedAssistException) -> HTTPException:
    """Map a classified chat error onto an HTTP error with a structured body."""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    for error_cls, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_cls):
            status_code = code
            break
    body = ErrorResponse(**exc.to_detail()).model_dump(mode="json")
    return HTTPException(status_code=status_code, detail=body)


class ChatController:
    """Controller for the medical assistant chat."""

    def __init__(
        self, chat_service: ChatService, history_store_factory: HistoryStoreFactory
    ):
        self.chat_service = chat_service
        self.history_store_factory = history_store_factory

    async def send_message(
        self,
        *,
        user_id: str,
        message: str,
        language: str,
        db_session: AsyncSession,
    ) -> ChatReplyDTO:
        logger.info(f"Received message from user {user_id}")
        try:
            reply = await self.chat_service.handle(
                user_id,
                message,
                language,
                history_store=self.history_store_factory(db_session),
            )
        except (ChatException, ValidationError) as e:
            logger.warning(f"Chat turn failed for user {user_id}: {e.error_code}")
            raise to_http_exception(e)
        return ChatReplyDTO(response=reply.response, timestamp=reply.timestamp)

    async def get_history(
        self, *, user_id: str, db_session: AsyncSession
    ) -> ChatHistoryResponse:
        try:
            history = await self.chat_service.get_history(
                user_id, history_store=self.history_store_factory(db_session)
            )
        except ChatException as e:
            logger.error(f"Error fetching chat history for user {user_id}: {e.message}")
            raise to_http_exception(e)
        return ChatHistoryResponse(
            user_id=history.user_id,
            messages=[
                ChatMessageDTO(
                    role=m.role.value, content=m.content, timestamp=m.timestamp
                )
                for m in history.messages
            ],
        )

    async def clear_history(
        self, *, user_id: str, db_session: AsyncSession
    ) -> ClearHistoryResponse:
        try:
            cleared = await self.chat_service.clear_history(
                user_id, history_store=self.history_store_factory(db_session)
            )
        except ChatException as e:
            logger.error(f"Error clearing chat history for user {user_id}: {e.message}")
            raise to_http_exception(e)
        return ClearHistoryResponse(cleared=cleared)
