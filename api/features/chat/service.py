"""Chat orchestration: history, prompt window, completion, persistence.

A turn moves through HistoryLoaded -> WindowBuilt -> CompletionPending and
ends either Persisted or Classified. There is no retry loop: one failed
completion ends the request, and a failed turn is not written to history.
"""
import asyncio
import time
import weakref
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

import structlog
from pydantic import BaseModel, Field

from api.features.chat.context import DEFAULT_WINDOW_SIZE, build_prompt_window
from api.features.chat.exceptions import (
    CompletionAuthenticationError,
    CompletionError,
    CompletionFailedError,
    CompletionQuotaExceededError,
    CompletionRateLimitedError,
    HistoryPersistenceError,
)
from api.features.chat.models import ChatMessage, ConversationHistory, MessageRole
from api.features.chat.repositories.history_repository import HistoryStore
from api.shared.exceptions import ValidationError
from llm.client import (
    CompletionClient,
    CompletionFailure,
    CompletionFailureReason,
    CompletionRequest,
)

logger = structlog.get_logger("medassist.chat.service")

_FAILURE_CLASSES = {
    CompletionFailureReason.AUTHENTICATION: CompletionAuthenticationError,
    CompletionFailureReason.RATE_LIMIT: CompletionRateLimitedError,
    CompletionFailureReason.QUOTA: CompletionQuotaExceededError,
    CompletionFailureReason.OTHER: CompletionFailedError,
}


def classify_completion_failure(failure: CompletionFailure) -> CompletionError:
    """Turn a tagged client failure into the user-facing error."""
    error_cls = _FAILURE_CLASSES.get(failure.reason, CompletionFailedError)
    return error_cls(details={"remote_message": failure.message})


class ChatReply(BaseModel):
    response: str = Field(description="Assistant reply text")
    timestamp: datetime = Field(description="When the reply was recorded")


class ChatService:
    """Conversation context manager for the medical assistant."""

    def __init__(
        self,
        completion_client: CompletionClient,
        *,
        model: str,
        temperature: float = 0.7,
        max_output_tokens: int = 1024,
        top_p: float = 1.0,
        window_size: int = DEFAULT_WINDOW_SIZE,
    ):
        self.completion_client = completion_client
        self.model = model
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self.top_p = top_p
        self.window_size = window_size
        self._user_locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = (
            weakref.WeakValueDictionary()
        )

    @asynccontextmanager
    async def _user_turn(self, user_id: str) -> AsyncIterator[None]:
        """Serialize read-modify-persist for one user within this process."""
        lock = self._user_locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._user_locks[user_id] = lock
        async with lock:
            yield

    async def handle(
        self,
        user_id: str,
        message: str,
        language: str,
        *,
        history_store: HistoryStore,
    ) -> ChatReply:
        """Answer one user message and record the exchange."""
        if not message or not message.strip():
            raise ValidationError("Message must not be empty")
        if not language or not language.strip():
            raise ValidationError("Language must not be empty")

        async with self._user_turn(user_id):
            history = await history_store.find_by_user(user_id)
            if history is None:
                history = ConversationHistory(user_id=user_id, messages=[])
            logger.info(
                "chat_history_loaded", user_id=user_id, messages=len(history.messages)
            )

            prior_messages = list(history.messages)
            history.append(ChatMessage(role=MessageRole.USER, content=message))

            window = build_prompt_window(
                prior_messages, message, language, window_size=self.window_size
            )
            logger.info(
                "chat_window_built",
                user_id=user_id,
                window_messages=len(window),
                language=language,
            )

            request = CompletionRequest(
                model=self.model,
                messages=window,
                temperature=self.temperature,
                max_output_tokens=self.max_output_tokens,
                top_p=self.top_p,
            )
            start = time.time()
            try:
                completion = await self.completion_client.complete(request)
            except CompletionFailure as e:
                error = classify_completion_failure(e)
                logger.warning(
                    "chat_completion_failed",
                    user_id=user_id,
                    reason=e.reason.value,
                    error_code=error.error_code,
                    elapsed_ms=(time.time() - start) * 1000,
                )
                raise error from e

            reply = ChatMessage(role=MessageRole.ASSISTANT, content=completion.text)
            history.append(reply)

            try:
                await history_store.save(history)
            except HistoryPersistenceError as e:
                logger.error(
                    "chat_turn_not_persisted", user_id=user_id, error=e.message
                )
                raise HistoryPersistenceError(
                    "saved", e.cause, user_id=user_id, response=completion.text
                ) from e

            logger.info(
                "chat_turn_persisted",
                user_id=user_id,
                messages=len(history.messages),
                elapsed_ms=(time.time() - start) * 1000,
            )
            return ChatReply(response=completion.text, timestamp=reply.timestamp)

    async def get_history(
        self, user_id: str, *, history_store: HistoryStore
    ) -> ConversationHistory:
        history = await history_store.find_by_user(user_id)
        if history is None:
            return ConversationHistory(user_id=user_id, messages=[])
        return history

    async def clear_history(self, user_id: str, *, history_store: HistoryStore) -> bool:
        """Delete the user's history record; clearing an absent one is a no-op."""
        async with self._user_turn(user_id):
            deleted = await history_store.delete_by_user(user_id)
        logger.info("chat_history_cleared", user_id=user_id, deleted=deleted)
        return deleted
