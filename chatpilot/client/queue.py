"""
Request Queue
=============

Priority work queue for calls to the chat completion endpoint.

Queue discipline:
    - Higher priority runs sooner; equal priorities run in submission order
    - A single drain loop processes the queue head to tail
    - Before each dispatch the rate limiter may make the loop wait

Retry policy:
    A failed task is retried up to `max_retries` times. After the n-th
    failure it waits min(1000 * 2**n, 30000) ms and goes back to the FRONT of
    the queue. The backoff runs in the background, so other queued tasks keep
    flowing while a task waits to be retried. Once retries are exhausted the
    caller receives the last error; the queue carries on with the next task.

    submit(work) ──► [5][1][1][1] ──► rate limit ──► work() ──► result
                        ▲                                  │
                        └──── backoff, push front ◄── error
"""

import asyncio
import time
import uuid
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from chatpilot.client.rate_limit import RateLimiter
from chatpilot.utils.logger import Logger

logger = Logger("RequestQueue")

DEFAULT_PRIORITY = 1
BASE_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 30000


def generate_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def backoff_delay_ms(retry_count: int) -> int:
    """Delay before retry number `retry_count` (1-based)."""
    return min(BASE_BACKOFF_MS * 2 ** retry_count, MAX_BACKOFF_MS)


@dataclass
class QueuedTask:
    """
    One pending call.

    Attributes:
        id: Request identifier used in logs
        work: Zero-argument coroutine factory performing the call
        priority: Higher runs sooner
        retry_count: Failures retried so far
        max_retries: Retries allowed before giving up
        estimated_tokens: Cost charged to the rate limiter per attempt
        on_success: Called once with the result
        on_failure: Called once with the last error after retries run out
    """
    id: str
    work: Callable[[], Awaitable[Any]]
    priority: int = DEFAULT_PRIORITY
    retry_count: int = 0
    max_retries: int = 3
    estimated_tokens: int = 0
    on_success: Callable[[Any], None] | None = None
    on_failure: Callable[[Exception], None] | None = None


class RequestQueue:
    """
    Priority queue with a single drain loop and background retries.

    Example:
        queue = RequestQueue(RateLimiter())

        result = await queue.submit(lambda: call_api(payload), priority=5)
    """

    def __init__(
        self,
        rate_limiter: RateLimiter,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.rate_limiter = rate_limiter
        self._sleep = sleep
        self._tasks: list[QueuedTask] = []
        self._processing = False
        # Strong references to retry timers and the drain loop
        self._background: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    @property
    def processing(self) -> bool:
        return self._processing

    def pending_ids(self) -> list[str]:
        """Queued task ids in the order they will run."""
        return [task.id for task in self._tasks]

    def submit(
        self,
        work: Callable[[], Awaitable[Any]],
        priority: int = DEFAULT_PRIORITY,
        max_retries: int = 3,
        estimated_tokens: int = 0
    ) -> "asyncio.Future[Any]":
        """
        Queue a call and return a future for its outcome.

        Must be called from inside a running event loop.
        """
        future = asyncio.get_running_loop().create_future()

        def resolve(result: Any) -> None:
            if not future.done():
                future.set_result(result)

        def reject(error: Exception) -> None:
            if not future.done():
                future.set_exception(error)

        task = QueuedTask(
            id=generate_request_id(),
            work=work,
            priority=priority,
            max_retries=max_retries,
            estimated_tokens=estimated_tokens,
            on_success=resolve,
            on_failure=reject,
        )
        self.insert(task)
        logger.debug(f"Queued {task.id}", {"priority": priority, "pending": self.pending})

        self._ensure_draining()
        return future

    def insert(self, task: QueuedTask) -> None:
        """
        Place the task before the first entry of strictly lower priority.
        """
        for index, queued in enumerate(self._tasks):
            if queued.priority < task.priority:
                self._tasks.insert(index, task)
                return
        self._tasks.append(task)

    def _spawn(self, coro: Awaitable[Any]) -> None:
        background = asyncio.ensure_future(coro)
        self._background.add(background)
        background.add_done_callback(self._background.discard)

    def _ensure_draining(self) -> None:
        if self._processing or not self._tasks:
            return
        self._processing = True
        self._spawn(self._drain())

    async def _drain(self) -> None:
        try:
            while self._tasks:
                task = self._tasks.pop(0)
                await self._run(task)
        finally:
            self._processing = False

    async def _run(self, task: QueuedTask) -> None:
        try:
            await self.rate_limiter.acquire(task.estimated_tokens)
            result = await task.work()
        except Exception as e:
            self._handle_failure(task, e)
        else:
            if task.on_success:
                task.on_success(result)

    def _handle_failure(self, task: QueuedTask, error: Exception) -> None:
        if task.retry_count < task.max_retries:
            task.retry_count += 1
            delay_ms = backoff_delay_ms(task.retry_count)
            logger.warning(
                f"Retrying request {task.id} in {delay_ms}ms (attempt {task.retry_count})",
                {"error": str(error)},
            )
            self._spawn(self._requeue_after(task, delay_ms / 1000))
            return

        logger.error(f"Request {task.id} failed after {task.max_retries} retries", error)
        if task.on_failure:
            task.on_failure(error)

    async def _requeue_after(self, task: QueuedTask, delay_seconds: float) -> None:
        await self._sleep(delay_seconds)
        self._tasks.insert(0, task)
        self._ensure_draining()
