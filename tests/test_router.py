"""HTTP tests for the chat routes with in-memory collaborators."""

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from api.features.chat.controller import ChatController
from api.main import app
from api.shared.db import get_db_session
from core.settings import SETTINGS
from llm.client import CompletionFailure, CompletionFailureReason

HEADERS = {"X-User-Id": "user-42"}


async def _no_db_session():
    yield None


@pytest.fixture
def client(chat_service, history_store):
    controller = ChatController(
        chat_service=chat_service,
        history_store_factory=lambda _session: history_store,
    )
    app.container.controllers.chat_controller.override(providers.Object(controller))
    app.dependency_overrides[get_db_session] = _no_db_session
    try:
        # No context manager: the lifespan (database startup) is not run
        yield TestClient(app)
    finally:
        app.dependency_overrides.pop(get_db_session, None)
        app.container.controllers.chat_controller.reset_override()


class TestSendMessage:

    def test_returns_reply_and_timestamp(self, client, completion_client):
        resp = client.post(
            "/api/chat/message",
            json={"message": "I have a fever and headache", "language": "Hindi"},
            headers=HEADERS,
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["data"]["response"] == completion_client.text
        assert body["data"]["timestamp"]

    def test_language_defaults_to_english(self, client, completion_client):
        resp = client.post("/api/chat/message", json={"message": "cough"}, headers=HEADERS)
        assert resp.status_code == 200
        system = completion_client.requests[0].messages[0].content
        assert system.endswith("Please respond in English language.")

    def test_language_default_follows_settings(self, client, completion_client, monkeypatch):
        monkeypatch.setattr(SETTINGS.CHAT, "CHAT_DEFAULT_LANGUAGE", "Kannada")
        resp = client.post("/api/chat/message", json={"message": "cough"}, headers=HEADERS)
        assert resp.status_code == 200
        system = completion_client.requests[0].messages[0].content
        assert system.endswith("Please respond in Kannada language.")

    def test_requires_identity(self, client):
        resp = client.post("/api/chat/message", json={"message": "cough"})
        assert resp.status_code == 401

    def test_blank_message_rejected(self, client, completion_client):
        resp = client.post("/api/chat/message", json={"message": "   "}, headers=HEADERS)
        assert resp.status_code == 422
        assert completion_client.requests == []

    def test_rate_limit_is_classified(self, client, completion_client, history_store):
        completion_client.failure = CompletionFailure(
            CompletionFailureReason.RATE_LIMIT, "rate_limit_exceeded"
        )
        resp = client.post("/api/chat/message", json={"message": "cough"}, headers=HEADERS)

        assert resp.status_code == 429
        detail = resp.json()["detail"]
        assert detail["error_code"] == "COMPLETION_RATE_LIMITED"
        assert detail["message"] == "Rate limit exceeded. Please wait a moment."
        assert history_store.records == {}

    def test_quota_is_classified(self, client, completion_client):
        completion_client.failure = CompletionFailure(CompletionFailureReason.QUOTA, "quota")
        resp = client.post("/api/chat/message", json={"message": "cough"}, headers=HEADERS)
        assert resp.status_code == 503
        assert resp.json()["detail"]["error_code"] == "COMPLETION_QUOTA_EXCEEDED"

    @pytest.mark.parametrize(
        "reason, error_code",
        [
            (CompletionFailureReason.AUTHENTICATION, "COMPLETION_AUTHENTICATION_FAILED"),
            (CompletionFailureReason.OTHER, "COMPLETION_FAILED"),
        ],
    )
    def test_upstream_failures_are_bad_gateway(self, client, completion_client, reason, error_code):
        completion_client.failure = CompletionFailure(reason, "upstream error")
        resp = client.post("/api/chat/message", json={"message": "cough"}, headers=HEADERS)
        assert resp.status_code == 502
        assert resp.json()["detail"]["error_code"] == error_code

    def test_persistence_failure_surfaces_response(self, client, completion_client, history_store):
        history_store.fail_on_save = True
        resp = client.post("/api/chat/message", json={"message": "cough"}, headers=HEADERS)

        assert resp.status_code == 500
        detail = resp.json()["detail"]
        assert detail["error_code"] == "HISTORY_PERSISTENCE_FAILED"
        assert detail["details"]["response"] == completion_client.text


class TestHistoryRoutes:

    def test_history_round_trip(self, client, completion_client):
        client.post("/api/chat/message", json={"message": "rash on arm"}, headers=HEADERS)
        resp = client.get("/api/chat/history", headers=HEADERS)

        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["user_id"] == "user-42"
        assert [(m["role"], m["content"]) for m in data["messages"]] == [
            ("user", "rash on arm"),
            ("assistant", completion_client.text),
        ]

    def test_empty_history(self, client):
        resp = client.get("/api/chat/history", headers=HEADERS)
        assert resp.status_code == 200
        assert resp.json()["data"]["messages"] == []

    def test_clear_is_idempotent(self, client):
        client.post("/api/chat/message", json={"message": "cough"}, headers=HEADERS)

        first = client.delete("/api/chat/history", headers=HEADERS)
        second = client.delete("/api/chat/history", headers=HEADERS)

        assert first.status_code == 200
        assert first.json()["data"]["cleared"] is True
        assert second.status_code == 200
        assert second.json()["data"]["cleared"] is False
        assert first.json()["message"] == "Chat history cleared"
        resp = client.get("/api/chat/history", headers=HEADERS)
        assert resp.json()["data"]["messages"] == []

    def test_health(self, client):
        resp = client.get("/api/chat/health")
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "healthy"
