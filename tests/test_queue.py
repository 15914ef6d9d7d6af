"""
Tests for the priority request queue and its retry policy.
"""
import asyncio

import pytest

from chatpilot.client.queue import (
    DEFAULT_PRIORITY,
    QueuedTask,
    RequestQueue,
    backoff_delay_ms,
    generate_request_id,
)
from chatpilot.client.rate_limit import RateLimiter
from conftest import FakeClock


def make_queue(clock: FakeClock) -> RequestQueue:
    limiter = RateLimiter(clock=clock, sleep=clock.sleep)
    return RequestQueue(limiter, sleep=clock.sleep)


async def noop():
    return None


class TestInsert:
    """Priority placement without running anything."""

    def test_fifo_among_equal_priorities(self):
        queue = make_queue(FakeClock())
        for name in ["a", "b", "c"]:
            queue.insert(QueuedTask(id=name, work=noop))

        assert queue.pending_ids() == ["a", "b", "c"]

    def test_higher_priority_jumps_ahead_of_lower(self):
        queue = make_queue(FakeClock())
        queue.insert(QueuedTask(id="low-1", work=noop, priority=1))
        queue.insert(QueuedTask(id="low-2", work=noop, priority=1))
        queue.insert(QueuedTask(id="high", work=noop, priority=5))
        queue.insert(QueuedTask(id="mid", work=noop, priority=3))
        queue.insert(QueuedTask(id="high-2", work=noop, priority=5))

        assert queue.pending_ids() == ["high", "high-2", "mid", "low-1", "low-2"]


class TestPriorityOrdering:

    @pytest.mark.asyncio
    async def test_priority_five_runs_first_then_submission_order(self):
        queue = make_queue(FakeClock())
        executed = []

        def job(label):
            async def work():
                executed.append(label)
                return label
            return work

        priorities = [1, 1, 5, 1, 1]
        futures = [
            queue.submit(job(f"task{index}"), priority=priority)
            for index, priority in enumerate(priorities)
        ]
        results = await asyncio.gather(*futures)

        assert executed == ["task2", "task0", "task1", "task3", "task4"]
        assert results == ["task0", "task1", "task2", "task3", "task4"]

    @pytest.mark.asyncio
    async def test_queue_is_idle_after_draining(self):
        queue = make_queue(FakeClock())

        await queue.submit(noop)

        assert queue.pending == 0
        assert queue.processing is False


class TestRetries:

    @pytest.mark.asyncio
    async def test_always_failing_task_attempted_max_retries_plus_one(self):
        clock = FakeClock()
        queue = make_queue(clock)
        attempts = 0

        async def failing():
            nonlocal attempts
            attempts += 1
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await queue.submit(failing, max_retries=3)

        assert attempts == 4
        assert clock.sleeps == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_zero_retries_rejects_after_single_attempt(self):
        queue = make_queue(FakeClock())
        attempts = 0

        async def failing():
            nonlocal attempts
            attempts += 1
            raise ValueError("nope")

        with pytest.raises(ValueError):
            await queue.submit(failing, max_retries=0)

        assert attempts == 1

    @pytest.mark.asyncio
    async def test_succeeds_after_transient_failure(self):
        queue = make_queue(FakeClock())
        outcomes = iter([RuntimeError("flaky"), "ok"])

        async def flaky():
            outcome = next(outcomes)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        assert await queue.submit(flaky, max_retries=2) == "ok"

    @pytest.mark.asyncio
    async def test_other_tasks_flow_while_a_retry_backs_off(self):
        limiter = RateLimiter()
        release = asyncio.Event()
        backoffs = []

        async def gated_sleep(seconds):
            backoffs.append(seconds)
            await release.wait()

        queue = RequestQueue(limiter, sleep=gated_sleep)
        order = []
        first_attempt = True

        async def flaky():
            nonlocal first_attempt
            if first_attempt:
                first_attempt = False
                order.append("flaky-failed")
                raise RuntimeError("transient")
            order.append("flaky-ok")
            return "flaky"

        async def steady():
            order.append("steady")
            return "steady"

        flaky_future = queue.submit(flaky, max_retries=1)
        steady_future = queue.submit(steady)

        assert await steady_future == "steady"
        assert order == ["flaky-failed", "steady"]
        assert backoffs == [2.0]

        release.set()
        assert await flaky_future == "flaky"
        assert order[-1] == "flaky-ok"

    @pytest.mark.asyncio
    async def test_retried_task_goes_to_front_of_queue(self):
        clock = FakeClock()
        queue = make_queue(clock)
        queue.insert(QueuedTask(id="waiting", work=noop))
        retried = QueuedTask(id="retried", work=noop, retry_count=1)

        await queue._requeue_after(retried, 0)

        assert queue.pending_ids()[0] == "retried"
        # let the drain loop started by the requeue finish
        await asyncio.sleep(0)


class TestHelpers:

    def test_backoff_doubles_and_caps(self):
        assert backoff_delay_ms(1) == 2000
        assert backoff_delay_ms(2) == 4000
        assert backoff_delay_ms(4) == 16000
        assert backoff_delay_ms(5) == 30000
        assert backoff_delay_ms(10) == 30000

    def test_request_ids_are_unique(self):
        ids = {generate_request_id() for _ in range(100)}

        assert len(ids) == 100
        assert all(request_id.startswith("req_") for request_id in ids)

    def test_default_priority(self):
        assert QueuedTask(id="x", work=noop).priority == DEFAULT_PRIORITY
