"""Pytest configuration for the chat API tests.

Sets up a minimal environment and in-memory collaborators so the tests run
without PostgreSQL or network access to the completion endpoint.
"""

import asyncio
import os
from typing import Dict, List, Optional

import pytest

os.environ.setdefault("GROQ_API_KEY", "test-key")
os.environ.setdefault("JSON_LOGS", "false")

from api.features.chat.exceptions import HistoryPersistenceError  # noqa: E402
from api.features.chat.models import ChatMessage, ConversationHistory  # noqa: E402
from api.features.chat.service import ChatService  # noqa: E402
from llm.client import CompletionRequest, CompletionResult  # noqa: E402


class FakeCompletionClient:
    """Records requests and answers with a canned reply or a preset failure."""

    def __init__(self, text: str = "Possible conditions: common cold."):
        self.text = text
        self.failure: Optional[Exception] = None
        self.delay = 0.0
        self.requests: List[CompletionRequest] = []

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.failure is not None:
            raise self.failure
        return CompletionResult(text=self.text, model="fake-model")


class InMemoryHistoryStore:
    """Dict-backed history store with switchable failures."""

    def __init__(self):
        self.records: Dict[str, List[ChatMessage]] = {}
        self.fail_on_load = False
        self.fail_on_save = False
        self.save_count = 0

    def seed(self, user_id: str, messages: List[ChatMessage]) -> None:
        self.records[user_id] = list(messages)

    async def find_by_user(self, user_id: str) -> Optional[ConversationHistory]:
        if self.fail_on_load:
            raise HistoryPersistenceError("loaded", "database unavailable", user_id=user_id)
        if user_id not in self.records:
            return None
        return ConversationHistory.loaded(user_id, list(self.records[user_id]))

    async def save(self, history: ConversationHistory) -> None:
        if self.fail_on_save:
            raise HistoryPersistenceError(
                "saved", "database unavailable", user_id=history.user_id
            )
        self.save_count += 1
        self.records.setdefault(history.user_id, []).extend(history.pending_messages())
        history.mark_stored()

    async def delete_by_user(self, user_id: str) -> bool:
        return self.records.pop(user_id, None) is not None


@pytest.fixture
def completion_client() -> FakeCompletionClient:
    return FakeCompletionClient()


@pytest.fixture
def history_store() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def chat_service(completion_client) -> ChatService:
    return ChatService(
        completion_client,
        model="llama-3.3-70b-versatile",
        temperature=0.7,
        max_output_tokens=1024,
        top_p=1.0,
        window_size=10,
    )
