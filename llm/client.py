"""Chat-completion client for the hosted LLM endpoint.

Groq exposes an OpenAI-compatible API, so the adapter drives it through the
``openai`` SDK. The client performs no retries: every SDK error is surfaced
as a ``CompletionFailure`` tagged with a machine-readable reason.
"""
from __future__ import annotations

import time
from enum import Enum
from typing import List, Literal, Optional, Protocol

import openai
import structlog
from openai import AsyncOpenAI
from pydantic import BaseModel, Field

logger = structlog.get_logger("medassist.llm")


class CompletionFailureReason(str, Enum):
    """Why a completion call failed."""

    RATE_LIMIT = "rate_limit"
    QUOTA = "quota"
    AUTHENTICATION = "authentication"
    OTHER = "other"


class CompletionFailure(Exception):
    """Raised by a completion client when the remote call does not yield text."""

    def __init__(self, reason: CompletionFailureReason, message: str):
        self.reason = reason
        self.message = message
        super().__init__(f"{reason.value}: {message}")


class PromptMessage(BaseModel):
    """One message of the sequence submitted to the completion endpoint."""

    role: Literal["system", "user", "assistant"]
    content: str


class CompletionRequest(BaseModel):
    model: str = Field(description="Model identifier")
    messages: List[PromptMessage] = Field(description="Ordered prompt messages")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=1024, ge=1)
    top_p: float = Field(default=1.0, gt=0.0, le=1.0)


class CompletionResult(BaseModel):
    text: str = Field(description="Best completion text")
    model: Optional[str] = Field(default=None, description="Model that served it")


class CompletionClient(Protocol):
    """Anything able to turn a prompt window into a single completion."""

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        ...


def classify_error(exc: Exception) -> CompletionFailureReason:
    """Map an SDK exception onto a failure reason."""
    text = str(exc).lower()
    code = str(getattr(exc, "code", "") or "").lower()

    if isinstance(exc, openai.AuthenticationError) or "api key" in text:
        return CompletionFailureReason.AUTHENTICATION
    if "quota" in code or "quota" in text:
        return CompletionFailureReason.QUOTA
    if isinstance(exc, openai.RateLimitError) or "rate_limit" in text or "rate_limit" in code:
        return CompletionFailureReason.RATE_LIMIT
    return CompletionFailureReason.OTHER


class GroqCompletionClient:
    """Non-streaming completion client backed by ``AsyncOpenAI``."""

    def __init__(self, api_key: str, base_url: str):
        self.base_url = base_url
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, max_retries=0)

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        start = time.time()
        try:
            resp = await self.client.chat.completions.create(
                model=request.model,
                messages=[m.model_dump() for m in request.messages],
                temperature=request.temperature,
                max_tokens=request.max_output_tokens,
                top_p=request.top_p,
                stream=False,
            )
        except openai.OpenAIError as e:
            reason = classify_error(e)
            logger.warning(
                "completion_request_failed",
                model=request.model,
                reason=reason.value,
                error=str(e),
                elapsed_ms=(time.time() - start) * 1000,
            )
            raise CompletionFailure(reason, str(e)) from e

        content = resp.choices[0].message.content if resp.choices else None
        if not content:
            logger.warning("completion_empty", model=request.model)
            raise CompletionFailure(
                CompletionFailureReason.OTHER, "Completion returned no content"
            )

        logger.info(
            "completion_received",
            model=resp.model or request.model,
            messages=len(request.messages),
            elapsed_ms=(time.time() - start) * 1000,
        )
        return CompletionResult(text=content, model=resp.model)

    async def close(self) -> None:
        await self.client.close()
