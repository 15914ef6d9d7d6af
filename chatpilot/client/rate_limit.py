"""
Rate Limiting
=============

Client-side request and token budgeting for the chat completion endpoint.

The limiter keeps a one-minute window with two counters:

    requests  ──►  must stay below the RPM ceiling (minus a safety margin)
    tokens    ──►  counter + estimate must stay below the TPM ceiling

When a task does not fit, the limiter sleeps until the current window would
expire, then re-checks. Running out of budget is never an error, only a wait.

Token estimates are coarse (characters / 4 plus requested output tokens); the
counters are a throttle, not a billing record.
"""

import asyncio
import time
from dataclasses import dataclass, replace
from typing import Awaitable, Callable, Mapping

from chatpilot.utils.logger import Logger

logger = Logger("RateLimit")


@dataclass
class RateLimitState:
    """
    Counters for the current one-minute window.

    Attributes:
        requests_per_minute: RPM ceiling
        tokens_per_minute: TPM ceiling
        request_count: Requests dispatched in this window
        token_count: Estimated tokens dispatched in this window
        window_start: Clock reading when the window opened
    """
    requests_per_minute: int
    tokens_per_minute: int
    request_count: int = 0
    token_count: int = 0
    window_start: float = 0.0


class RateLimiter:
    """
    Sliding one-minute budget shared by every request of one client.

    Example:
        limiter = RateLimiter(requests_per_minute=60, tokens_per_minute=90000)

        await limiter.acquire(estimated_tokens=1200)  # may sleep
        ...dispatch the request...
    """

    WINDOW_SECONDS = 60.0

    # Requests held back from the RPM ceiling to leave room for requests the
    # server counts that we do not (other clients on the same key).
    SAFETY_MARGIN = 5

    def __init__(
        self,
        requests_per_minute: int = 60,
        tokens_per_minute: int = 90000,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self._clock = clock
        self._sleep = sleep
        self.state = RateLimitState(
            requests_per_minute=requests_per_minute,
            tokens_per_minute=tokens_per_minute,
            window_start=clock(),
        )

    @property
    def margin(self) -> int:
        """
        Safety margin actually applied.

        The full margin applies from RPM=10 up. Below that it would eat half
        the budget or more, so none is held back (RPM=5 allows all five).
        """
        if self.state.requests_per_minute < 2 * self.SAFETY_MARGIN:
            return 0
        return self.SAFETY_MARGIN

    def _reset_if_expired(self, now: float) -> None:
        if now - self.state.window_start >= self.WINDOW_SECONDS:
            self.state.request_count = 0
            self.state.token_count = 0
            self.state.window_start = now

    def has_headroom(self, estimated_tokens: int) -> bool:
        """Whether one more request of this size fits the current window."""
        state = self.state
        if state.request_count == 0:
            # An empty window always admits one request, even an oversized one
            return True
        if state.request_count >= state.requests_per_minute - self.margin:
            return False
        return state.token_count + estimated_tokens < state.tokens_per_minute

    def seconds_until_reset(self) -> float:
        elapsed = self._clock() - self.state.window_start
        return max(self.WINDOW_SECONDS - elapsed, 0.0)

    async def acquire(self, estimated_tokens: int) -> None:
        """
        Wait until the request fits, then charge it to the window.

        The check and the counter update happen with no await in between, so
        two queued requests can never both claim the last slot.
        """
        while True:
            self._reset_if_expired(self._clock())

            if self.has_headroom(estimated_tokens):
                self.state.request_count += 1
                self.state.token_count += estimated_tokens
                return

            wait_seconds = self.seconds_until_reset()
            logger.info(
                f"Rate limit approached, waiting {wait_seconds * 1000:.0f}ms",
                {
                    "request_count": self.state.request_count,
                    "token_count": self.state.token_count,
                    "estimated_tokens": estimated_tokens,
                },
            )
            await self._sleep(wait_seconds)

    def sync_from_headers(self, headers: Mapping[str, str]) -> None:
        """
        Tighten the local counters to what the server reports.

        Only `x-ratelimit-remaining-*` headers are used; counters are never
        lowered, since the server may see traffic this client did not send.
        """
        remaining_requests = _parse_int(headers.get("x-ratelimit-remaining-requests"))
        if remaining_requests is not None:
            server_count = self.state.requests_per_minute - remaining_requests
            self.state.request_count = max(self.state.request_count, server_count)

        remaining_tokens = _parse_int(headers.get("x-ratelimit-remaining-tokens"))
        if remaining_tokens is not None:
            server_tokens = self.state.tokens_per_minute - remaining_tokens
            self.state.token_count = max(self.state.token_count, server_tokens)

    def update_limits(
        self,
        requests_per_minute: int | None = None,
        tokens_per_minute: int | None = None
    ) -> None:
        if requests_per_minute is not None:
            self.state.requests_per_minute = requests_per_minute
        if tokens_per_minute is not None:
            self.state.tokens_per_minute = tokens_per_minute

    def snapshot(self) -> RateLimitState:
        """A copy of the current state, safe to hand to callers."""
        return replace(self.state)


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
