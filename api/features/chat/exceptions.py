"""Exceptions for the Chat feature.

Completion failures are classified into the user-facing errors below; the
``message`` of each is safe to show to the end user.
"""
from typing import Any, Dict, Optional

from api.shared.exceptions import MedAssistException


class ChatException(MedAssistException):
    """Base exception for chat operations."""
    pass


class CompletionError(ChatException):
    """Base for classified completion-service failures."""

    def __init__(
        self,
        message: str,
        error_code: str,
        reason: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        error_details: Dict[str, Any] = {"reason": reason}
        if details:
            error_details.update(details)
        super().__init__(message, error_code, error_details)


class CompletionAuthenticationError(CompletionError):
    """Remote credential was rejected."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "API key is invalid. Please check the completion service configuration.",
            "COMPLETION_AUTHENTICATION_FAILED",
            "authentication",
            details,
        )


class CompletionRateLimitedError(CompletionError):
    """Remote endpoint throttled the request."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Rate limit exceeded. Please wait a moment.",
            "COMPLETION_RATE_LIMITED",
            "rate_limit",
            details,
        )


class CompletionQuotaExceededError(CompletionError):
    """Account quota for the completion service is exhausted."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "API quota exceeded.",
            "COMPLETION_QUOTA_EXCEEDED",
            "quota",
            details,
        )


class CompletionFailedError(CompletionError):
    """Any other completion failure."""

    def __init__(self, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            "Sorry, I encountered an error. Please try again.",
            "COMPLETION_FAILED",
            "other",
            details,
        )


class HistoryPersistenceError(ChatException):
    """Raised when the history store cannot load, save or delete a record.

    When raised after a successful completion, ``response`` holds the text the
    user was answered with even though it was not saved.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        *,
        user_id: Optional[str] = None,
        response: Optional[str] = None,
    ):
        self.operation = operation
        self.cause = message
        self.response = response
        details: Dict[str, Any] = {"operation": operation}
        if user_id is not None:
            details["user_id"] = user_id
        if response is not None:
            details["response"] = response
        super().__init__(
            f"Chat history could not be {operation}: {message}",
            "HISTORY_PERSISTENCE_FAILED",
            details,
        )
