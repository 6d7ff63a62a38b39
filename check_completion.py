#!/usr/bin/env python3
"""Check that the configured completion endpoint answers.

Usage: python check_completion.py [--model MODEL] [--prompt TEXT]
"""
import argparse
import asyncio
import sys

from dotenv import load_dotenv

load_dotenv(".env")

from core.settings import SETTINGS  # noqa: E402
from llm.client import (  # noqa: E402
    CompletionFailure,
    CompletionFailureReason,
    CompletionRequest,
    GroqCompletionClient,
    PromptMessage,
)

HINTS = {
    CompletionFailureReason.AUTHENTICATION: [
        "Get an API key from https://console.groq.com/",
        "Add it to .env as: GROQ_API_KEY=gsk_your_key_here",
        "Make sure there are no spaces or quotes around the key",
    ],
    CompletionFailureReason.RATE_LIMIT: ["Wait a moment and run the check again"],
    CompletionFailureReason.QUOTA: ["The account quota is exhausted; check billing"],
    CompletionFailureReason.OTHER: [
        f"Verify GROQ_BASE_URL ({SETTINGS.COMPLETION.GROQ_BASE_URL}) is reachable",
    ],
}


async def run_check(model: str, prompt: str) -> int:
    api_key = SETTINGS.COMPLETION.GROQ_API_KEY.get_secret_value()
    print(f"GROQ_API_KEY: {'found' if api_key else 'NOT FOUND'}")

    client = GroqCompletionClient(api_key=api_key, base_url=SETTINGS.COMPLETION.GROQ_BASE_URL)
    request = CompletionRequest(
        model=model,
        messages=[
            PromptMessage(role="system", content="You are a helpful assistant."),
            PromptMessage(role="user", content=prompt),
        ],
        temperature=SETTINGS.COMPLETION.COMPLETION_TEMPERATURE,
        max_output_tokens=100,
    )
    try:
        result = await client.complete(request)
    except CompletionFailure as e:
        print(f"ERROR ({e.reason.value}): {e.message}")
        for i, hint in enumerate(HINTS[e.reason], 1):
            print(f"{i}. {hint}")
        return 1
    finally:
        await client.close()

    print("SUCCESS: completion endpoint is working")
    print(f"Response: {result.text}")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Completion endpoint connectivity check")
    parser.add_argument("--model", default=SETTINGS.COMPLETION.COMPLETION_MODEL)
    parser.add_argument("--prompt", default="Say hello in one sentence.")
    args = parser.parse_args()
    sys.exit(asyncio.run(run_check(args.model, args.prompt)))


if __name__ == "__main__":
    main()
