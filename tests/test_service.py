"""Tests for the chat orchestrator: windowing, persistence and error classification."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from api.features.chat.exceptions import (
    CompletionAuthenticationError,
    CompletionFailedError,
    CompletionQuotaExceededError,
    CompletionRateLimitedError,
    HistoryPersistenceError,
)
from api.features.chat.models import ChatMessage, MessageRole
from api.shared.exceptions import ValidationError
from llm.client import CompletionFailure, CompletionFailureReason


def _seeded_messages(count: int):
    base = datetime(2025, 1, 1, tzinfo=timezone.utc)
    return [
        ChatMessage(
            role=MessageRole.USER if i % 2 else MessageRole.ASSISTANT,
            content=f"m{i}",
            timestamp=base + timedelta(minutes=i),
        )
        for i in range(1, count + 1)
    ]


class TestHandle:

    def test_first_message_sends_system_and_user(self, chat_service, completion_client, history_store):
        reply = asyncio.run(
            chat_service.handle(
                "u1", "I have a fever and headache", "Hindi", history_store=history_store
            )
        )

        assert reply.response == completion_client.text
        request = completion_client.requests[0]
        assert len(request.messages) == 2
        assert request.messages[0].role == "system"
        assert request.messages[0].content.endswith("Please respond in Hindi language.")
        assert request.messages[1].content == "I have a fever and headache"
        assert request.model == "llama-3.3-70b-versatile"
        assert request.temperature == 0.7
        assert request.max_output_tokens == 1024
        assert request.top_p == 1.0

    def test_successful_turn_is_persisted(self, chat_service, completion_client, history_store):
        reply = asyncio.run(
            chat_service.handle("u1", "sore throat", "English", history_store=history_store)
        )
        history = asyncio.run(chat_service.get_history("u1", history_store=history_store))

        assert history_store.save_count == 1
        last_two = [(m.role, m.content) for m in history.messages[-2:]]
        assert last_two == [
            (MessageRole.USER, "sore throat"),
            (MessageRole.ASSISTANT, completion_client.text),
        ]
        assert history.messages[-1].timestamp == reply.timestamp

    def test_window_uses_last_ten_prior_messages(self, chat_service, completion_client, history_store):
        history_store.seed("u1", _seeded_messages(12))
        asyncio.run(chat_service.handle("u1", "new symptom", "English", history_store=history_store))

        contents = [m.content for m in completion_client.requests[0].messages]
        assert len(contents) == 12
        assert contents[1:-1] == [f"m{i}" for i in range(3, 13)]
        assert contents[-1] == "new symptom"
        assert contents.count("new symptom") == 1
        assert len(history_store.records["u1"]) == 14

    def test_appends_to_existing_history(self, chat_service, history_store):
        history_store.seed("u1", _seeded_messages(2))
        asyncio.run(chat_service.handle("u1", "follow up", "English", history_store=history_store))
        assert [m.content for m in history_store.records["u1"][:3]] == ["m1", "m2", "follow up"]

    def test_blank_message_rejected(self, chat_service, completion_client, history_store):
        with pytest.raises(ValidationError):
            asyncio.run(chat_service.handle("u1", "   ", "English", history_store=history_store))
        assert completion_client.requests == []

    def test_concurrent_turns_for_one_user_are_serialized(
        self, chat_service, completion_client, history_store
    ):
        completion_client.delay = 0.01

        async def two_turns():
            await asyncio.gather(
                chat_service.handle("u1", "first", "English", history_store=history_store),
                chat_service.handle("u1", "second", "English", history_store=history_store),
            )

        asyncio.run(two_turns())
        assert len(history_store.records["u1"]) == 4


class TestFailureClassification:

    @pytest.mark.parametrize(
        "reason, error_cls, error_code",
        [
            (CompletionFailureReason.RATE_LIMIT, CompletionRateLimitedError, "COMPLETION_RATE_LIMITED"),
            (CompletionFailureReason.AUTHENTICATION, CompletionAuthenticationError, "COMPLETION_AUTHENTICATION_FAILED"),
            (CompletionFailureReason.QUOTA, CompletionQuotaExceededError, "COMPLETION_QUOTA_EXCEEDED"),
            (CompletionFailureReason.OTHER, CompletionFailedError, "COMPLETION_FAILED"),
        ],
    )
    def test_failure_reason_maps_to_error(
        self, chat_service, completion_client, history_store, reason, error_cls, error_code
    ):
        completion_client.failure = CompletionFailure(reason, "remote said no")
        with pytest.raises(error_cls) as exc_info:
            asyncio.run(chat_service.handle("u1", "cough", "English", history_store=history_store))
        assert exc_info.value.error_code == error_code
        assert exc_info.value.details["remote_message"] == "remote said no"

    def test_rate_limit_does_not_fabricate_reply(self, chat_service, completion_client, history_store):
        history_store.seed("u1", _seeded_messages(2))
        completion_client.failure = CompletionFailure(CompletionFailureReason.RATE_LIMIT, "429")

        with pytest.raises(CompletionRateLimitedError) as exc_info:
            asyncio.run(chat_service.handle("u1", "cough", "English", history_store=history_store))

        assert exc_info.value.message == "Rate limit exceeded. Please wait a moment."
        assert history_store.save_count == 0
        assert [m.content for m in history_store.records["u1"]] == ["m1", "m2"]
        assert all(m.content != "cough" for m in history_store.records["u1"])

    def test_failed_first_turn_leaves_no_record(self, chat_service, completion_client, history_store):
        completion_client.failure = CompletionFailure(CompletionFailureReason.OTHER, "boom")
        with pytest.raises(CompletionFailedError):
            asyncio.run(chat_service.handle("u1", "cough", "English", history_store=history_store))
        assert "u1" not in history_store.records

    def test_save_failure_reports_generated_response(self, chat_service, completion_client, history_store):
        history_store.fail_on_save = True
        with pytest.raises(HistoryPersistenceError) as exc_info:
            asyncio.run(chat_service.handle("u1", "cough", "English", history_store=history_store))

        error = exc_info.value
        assert error.error_code == "HISTORY_PERSISTENCE_FAILED"
        assert error.response == completion_client.text
        assert error.details["response"] == completion_client.text
        assert error.message == "Chat history could not be saved: database unavailable"

    def test_load_failure_stops_before_completion(self, chat_service, completion_client, history_store):
        history_store.fail_on_load = True
        with pytest.raises(HistoryPersistenceError):
            asyncio.run(chat_service.handle("u1", "cough", "English", history_store=history_store))
        assert completion_client.requests == []


class TestHistoryOperations:

    def test_get_history_for_unknown_user_is_empty(self, chat_service, history_store):
        history = asyncio.run(chat_service.get_history("nobody", history_store=history_store))
        assert history.user_id == "nobody"
        assert history.messages == []

    def test_clear_absent_history_succeeds(self, chat_service, history_store):
        cleared = asyncio.run(chat_service.clear_history("u1", history_store=history_store))
        assert cleared is False
        history = asyncio.run(chat_service.get_history("u1", history_store=history_store))
        assert history.messages == []

    def test_clear_existing_history(self, chat_service, history_store):
        history_store.seed("u1", _seeded_messages(4))
        assert asyncio.run(chat_service.clear_history("u1", history_store=history_store)) is True
        assert asyncio.run(chat_service.clear_history("u1", history_store=history_store)) is False
        history = asyncio.run(chat_service.get_history("u1", history_store=history_store))
        assert history.messages == []

    def test_clear_only_affects_one_user(self, chat_service, history_store):
        history_store.seed("u1", _seeded_messages(2))
        history_store.seed("u2", _seeded_messages(3))
        asyncio.run(chat_service.clear_history("u1", history_store=history_store))
        assert len(history_store.records["u2"]) == 3
