"""
Chat Completion Client
======================

Queued, rate-limited access to an OpenAI-compatible chat completion API.

Every call goes through the same path:

    send_completion(messages)
         │
         ▼
    estimate tokens ──► RequestQueue (priority, retries)
                              │
                              ▼
                        RateLimiter.acquire()
                              │
                              ▼
                        POST /chat/completions  (AsyncOpenAI, SDK retries off)
                              │
                              ▼
                        ChatCompletion  or  CompletionError

The client also keeps per-conversation history so callers can send just the
new user turn with `send_with_history()`.

All mutable state (queue, rate-limit counters, history) belongs to the client
instance; two clients never share anything.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Iterable

import httpx
import openai
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from chatpilot.client.history import ConversationHistory, estimate_tokens, optimize_context
from chatpilot.client.queue import DEFAULT_PRIORITY, RequestQueue
from chatpilot.client.rate_limit import RateLimiter, RateLimitState
from chatpilot.errors import CompletionError, ConfigurationError
from chatpilot.utils.config import Config, ContextConfig, OpenAIConfig, RateLimitConfig
from chatpilot.utils.logger import Logger

logger = Logger("ChatClient")

USER_AGENT = "ChatPilot/1.0.0"


class ChatClient:
    """
    Chat completion client with a priority queue, rate limiting, retries and
    conversation history.

    Example:
        client = ChatClient.from_config(get_config())

        response = await client.send_with_history(
            "What's the capital of France?",
            conversation_id="conv-1",
            system_prompt="You are a concise assistant."
        )
        print(response.choices[0].message.content)

    Args:
        openai_config: Endpoint, model and retry settings
        rate_limit: RPM / TPM ceilings
        context: History cap and context-optimization settings
        http_client: Optional httpx.AsyncClient for the SDK (proxies, tests)
        clock: Monotonic clock in seconds, used by the rate limiter
        sleep: Async sleep used for rate-limit waits and retry backoff
    """

    def __init__(
        self,
        openai_config: OpenAIConfig,
        rate_limit: RateLimitConfig | None = None,
        context: ContextConfig | None = None,
        http_client: httpx.AsyncClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if not openai_config.api_key:
            raise ConfigurationError("OpenAI API key is required to create a ChatClient")

        rate_limit = rate_limit or RateLimitConfig()
        self.context = context or ContextConfig()

        self.model = openai_config.model
        self.max_tokens = openai_config.max_tokens
        self.temperature = openai_config.temperature
        self.max_retries = openai_config.max_retries

        # The queue owns retries; the SDK must not retry on its own
        self._openai = AsyncOpenAI(
            api_key=openai_config.api_key,
            base_url=openai_config.base_url,
            timeout=openai_config.timeout_seconds,
            max_retries=0,
            default_headers={"User-Agent": USER_AGENT},
            http_client=http_client,
        )

        self.rate_limiter = RateLimiter(
            requests_per_minute=rate_limit.requests_per_minute,
            tokens_per_minute=rate_limit.tokens_per_minute,
            clock=clock,
            sleep=sleep,
        )
        self.queue = RequestQueue(self.rate_limiter, sleep=sleep)
        self.history = ConversationHistory(max_messages=self.context.max_history_messages)

        logger.info(f"ChatClient initialized with model: {self.model}")

    @classmethod
    def from_config(cls, config: Config, **kwargs: Any) -> "ChatClient":
        return cls(
            openai_config=config.openai,
            rate_limit=config.rate_limit,
            context=config.context,
            **kwargs,
        )

    # ==========================================================================
    # Sending
    # ==========================================================================

    async def send_completion(
        self,
        messages: list[dict],
        *,
        priority: int = DEFAULT_PRIORITY,
        max_retries: int | None = None,
        **options: Any
    ) -> ChatCompletion:
        """
        Queue a chat completion and wait for the response.

        Args:
            messages: [{"role": ..., "content": ...}, ...]
            priority: Queue priority, higher runs sooner
            max_retries: Override the configured retry count for this call
            **options: Extra request fields (max_tokens, temperature,
                response_format, ...) overriding the defaults

        Returns:
            The parsed ChatCompletion

        Raises:
            CompletionError: After all retries have failed
        """
        request: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            **options,
        }
        estimated_tokens = estimate_tokens(messages) + (request.get("max_tokens") or 0)

        async def work() -> ChatCompletion:
            return await self._post(request)

        return await self.queue.submit(
            work,
            priority=priority,
            max_retries=self.max_retries if max_retries is None else max_retries,
            estimated_tokens=estimated_tokens,
        )

    async def send_message(self, text: str, **options: Any) -> ChatCompletion:
        """Send a single user message with no history."""
        return await self.send_completion([{"role": "user", "content": text}], **options)

    async def send_with_history(
        self,
        text: str,
        conversation_id: str,
        system_prompt: str | None = None,
        **options: Any
    ) -> ChatCompletion:
        """
        Send a user message with the conversation's stored history.

        Message order: optional system prompt, stored history (trimmed when
        context optimization is on), the new user message. On success both the
        user message and the assistant reply are appended to the history.
        """
        messages: list[dict] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        history = self.history.get(conversation_id)
        if self.context.optimize:
            trimmed = optimize_context(
                history,
                max_messages=self.context.max_context_messages,
                max_tokens=self.context.max_context_tokens,
            )
            if len(trimmed) < len(history):
                logger.debug(
                    f"Context optimized: {len(history)} → {len(trimmed)} messages",
                    {"conversation_id": conversation_id},
                )
            history = trimmed
        messages.extend(history)
        messages.append({"role": "user", "content": text})

        response = await self.send_completion(messages, **options)

        self.history.append(conversation_id, "user", text)
        if response.choices and response.choices[0].message:
            reply = response.choices[0].message
            self.history.append(conversation_id, reply.role or "assistant", reply.content or "")

        return response

    async def _post(self, request: dict[str, Any]) -> ChatCompletion:
        logger.debug(
            "Making request to /chat/completions",
            {"model": request.get("model"), "messages": len(request.get("messages", []))},
        )
        try:
            raw = await self._openai.chat.completions.with_raw_response.create(**request)
        except openai.APIError as e:
            error = CompletionError.from_exception(e)
            logger.warning(
                "Completion request failed",
                {"category": error.category.value, "status": error.status_code, "code": error.code},
            )
            raise error from e

        self.rate_limiter.sync_from_headers(raw.headers)
        completion = raw.parse()

        logger.debug(
            f"Response received with status {raw.status_code}",
            {"usage": completion.usage.model_dump() if completion.usage else None},
        )
        return completion

    # ==========================================================================
    # History
    # ==========================================================================

    def get_history(self, conversation_id: str) -> list[dict]:
        return self.history.get(conversation_id)

    def set_history(self, conversation_id: str, messages: Iterable[Any]) -> None:
        """Replace stored history (e.g. when a saved conversation is reopened)."""
        if not conversation_id:
            logger.warning("set_history called without a conversation id")
            return
        self.history.set(conversation_id, messages)

    def clear_history(self, conversation_id: str) -> None:
        self.history.clear(conversation_id)

    def clear_all_history(self) -> None:
        self.history.clear_all()

    # ==========================================================================
    # Status and settings
    # ==========================================================================

    def queue_status(self) -> dict:
        return {"pending": self.queue.pending, "processing": self.queue.processing}

    def rate_limit_status(self) -> RateLimitState:
        return self.rate_limiter.snapshot()

    def update_settings(
        self,
        *,
        api_key: str | None = None,
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        max_retries: int | None = None,
        requests_per_minute: int | None = None,
        tokens_per_minute: int | None = None
    ) -> None:
        """Change settings at runtime. Requests already queued keep their payload."""
        if api_key is not None:
            if not api_key:
                raise ConfigurationError("OpenAI API key cannot be empty")
            self._openai = self._openai.with_options(api_key=api_key)
        if model is not None:
            self.model = model
        if max_tokens is not None:
            self.max_tokens = max_tokens
        if temperature is not None:
            self.temperature = temperature
        if max_retries is not None:
            self.max_retries = max_retries
        self.rate_limiter.update_limits(requests_per_minute, tokens_per_minute)

    async def test_connection(self) -> bool:
        """Send a one-token request. Returns False instead of raising."""
        try:
            await self.send_message("Hello", max_tokens=1, max_retries=0)
            return True
        except Exception as e:
            logger.error("Connection test failed", e)
            return False

    async def close(self) -> None:
        await self._openai.close()
