"""
Pytest configuration and shared fixtures.

Time is simulated: FakeClock doubles as the monotonic clock and the async
sleep injected into the rate limiter and request queue, so backoff and
rate-limit waits finish instantly while still being observable.

HTTP is simulated with httpx.MockTransport for both the chat completion
endpoint and the Tavily search endpoint.
"""
import asyncio
import json
import os

import httpx
import pytest

# Keep test output quiet regardless of the developer's shell
os.environ["LOG_LEVEL"] = "error"

from chatpilot.client import ChatClient
from chatpilot.utils.config import ContextConfig, OpenAIConfig, RateLimitConfig


class FakeClock:
    """Monotonic clock and sleep function sharing one simulated timeline."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def completion_payload(content: str = "Hello there!", prompt_tokens: int = 10, completion_tokens: int = 5) -> dict:
    """A minimal /chat/completions response body."""
    return {
        "id": "chatcmpl-test",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "gpt-4o",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {
            "prompt_tokens": prompt_tokens,
            "completion_tokens": completion_tokens,
            "total_tokens": prompt_tokens + completion_tokens,
        },
    }


class RecordingHandler:
    """
    MockTransport handler that records request bodies and replays responses.

    `responses` is consumed in order; the last one repeats once exhausted.
    """

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses) or [httpx.Response(200, json=completion_payload())]
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content) if request.content else {})
        template = self.responses[min(len(self.requests) - 1, len(self.responses) - 1)]
        # httpx mutates responses it hands out, so every request gets a fresh copy
        return httpx.Response(template.status_code, headers=template.headers, content=template.content)

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_client(fake_clock):
    """Build a ChatClient wired to a MockTransport handler and the fake clock."""

    def factory(
        handler,
        max_retries: int = 3,
        requests_per_minute: int = 60,
        tokens_per_minute: int = 90000,
        context: ContextConfig | None = None
    ) -> ChatClient:
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        return ChatClient(
            OpenAIConfig(api_key="sk-test", max_tokens=100, max_retries=max_retries),
            rate_limit=RateLimitConfig(
                requests_per_minute=requests_per_minute,
                tokens_per_minute=tokens_per_minute,
            ),
            context=context,
            http_client=http_client,
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    return factory
