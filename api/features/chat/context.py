"""Prompt window assembly for chat turns.

The window is rebuilt on every request: one system directive, the most recent
prior messages in chronological order, then the new user input. Older
messages are dropped without summarization so the request size stays bounded
regardless of conversation length.
"""
from __future__ import annotations

from typing import List, Sequence

from api.features.chat.models import ChatMessage, MessageRole
from llm.client import PromptMessage
from llm.prompts.medical.system_directive import build_system_directive

DEFAULT_WINDOW_SIZE = 10


def _wire_role(role: MessageRole) -> str:
    return "assistant" if role == MessageRole.ASSISTANT else "user"


def recent_messages(
    messages: Sequence[ChatMessage], window_size: int = DEFAULT_WINDOW_SIZE
) -> List[ChatMessage]:
    """Return the last ``window_size`` messages, oldest first."""
    if window_size <= 0:
        return []
    return list(messages[-window_size:])


def build_prompt_window(
    prior_messages: Sequence[ChatMessage],
    user_input: str,
    language: str,
    *,
    window_size: int = DEFAULT_WINDOW_SIZE,
) -> List[PromptMessage]:
    """Build the exact message list for the completion request.

    ``prior_messages`` must not contain ``user_input`` itself; it is always
    appended as the final message.
    """
    window = [
        PromptMessage(role="system", content=build_system_directive(language=language))
    ]
    window.extend(
        PromptMessage(role=_wire_role(m.role), content=m.content)
        for m in recent_messages(prior_messages, window_size)
    )
    window.append(PromptMessage(role="user", content=user_input))
    return window
