"""Tests for the rate-limited request scheduler."""

import asyncio
import gc
import sys

import pytest

sys.path.append("src")
from breakout_scanner.exceptions import (
    DataValidationError,
    DuplicateRequestError,
    NetworkError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
)
from breakout_scanner.services.requests.scheduler import RequestScheduler


def returning(value):
    async def operation():
        return value

    return operation


class TestSubmit:
    """Test basic dispatch behaviour."""

    @pytest.mark.asyncio
    async def test_submit_returns_operation_result(self, fast_scheduler):
        """Test that submit resolves with the operation's result."""
        result = await fast_scheduler.submit("AAPL", returning(42))

        assert result == 42
        assert fast_scheduler.status().failed_count == 0

    @pytest.mark.asyncio
    async def test_dispatches_are_spaced_by_min_interval(self):
        """Test that concurrent submits are dispatched at least min_interval apart."""
        scheduler = RequestScheduler(min_interval=0.05, retry_delay=0, timeout=1.0)
        loop = asyncio.get_running_loop()
        dispatch_times = []

        def recorder(key):
            async def operation():
                dispatch_times.append(loop.time())
                return key

            return operation

        results = await asyncio.gather(
            *(scheduler.submit(key, recorder(key)) for key in ["A", "B", "C"])
        )

        assert results == ["A", "B", "C"]
        gaps = [b - a for a, b in zip(dispatch_times, dispatch_times[1:])]
        assert all(gap >= 0.045 for gap in gaps)

    @pytest.mark.asyncio
    async def test_operations_run_one_at_a_time(self, fast_scheduler):
        """Test that the scheduler never overlaps two operations."""
        running = 0
        peak = 0

        def tracked(key):
            async def operation():
                nonlocal running, peak
                running += 1
                peak = max(peak, running)
                await asyncio.sleep(0.01)
                running -= 1
                return key

            return operation

        await asyncio.gather(*(fast_scheduler.submit(k, tracked(k)) for k in "ABCD"))

        assert peak == 1


class TestDeduplication:
    """Test duplicate key rejection."""

    @pytest.mark.asyncio
    async def test_duplicate_in_flight_key_is_rejected(self, fast_scheduler):
        """Test that a second submit for an in-flight key raises immediately."""
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "done"

        first = asyncio.create_task(fast_scheduler.submit("AAPL", slow))
        await asyncio.sleep(0.01)

        assert fast_scheduler.status().in_flight_keys == ["AAPL"]
        with pytest.raises(DuplicateRequestError) as exc_info:
            await fast_scheduler.submit("AAPL", returning("again"))
        assert exc_info.value.key == "AAPL"

        release.set()
        assert await first == "done"

    @pytest.mark.asyncio
    async def test_duplicate_queued_key_is_rejected(self, fast_scheduler):
        """Test that a key waiting in the queue cannot be queued twice."""
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "slow"

        first = asyncio.create_task(fast_scheduler.submit("A", slow))
        second = asyncio.create_task(fast_scheduler.submit("B", returning("b")))
        await asyncio.sleep(0.01)

        assert fast_scheduler.status().queued_keys == ["B"]
        with pytest.raises(DuplicateRequestError):
            await fast_scheduler.submit("B", returning("b2"))

        release.set()
        assert await first == "slow"
        assert await second == "b"

    @pytest.mark.asyncio
    async def test_key_can_be_resubmitted_after_completion(self, fast_scheduler):
        """Test that dedup only applies while a request is outstanding."""
        assert await fast_scheduler.submit("AAPL", returning(1)) == 1
        assert await fast_scheduler.submit("AAPL", returning(2)) == 2


class TestRetry:
    """Test retry and failure handling."""

    @pytest.mark.asyncio
    async def test_transient_failure_is_retried(self, fast_scheduler):
        """Test that a network failure is retried until it succeeds."""
        attempts = 0

        async def flaky():
            nonlocal attempts
            attempts += 1
            if attempts < 2:
                raise NetworkError("connection reset", ticker="AAPL")
            return "ok"

        assert await fast_scheduler.submit("AAPL", flaky) == "ok"
        assert attempts == 2
        assert fast_scheduler.status().failed_count == 0

    @pytest.mark.asyncio
    async def test_exhausted_retries_mark_key_failed(self, fast_scheduler):
        """Test that after max_retries the key is failed and the error surfaces."""
        attempts = 0

        async def always_fails():
            nonlocal attempts
            attempts += 1
            raise ConnectionError("boom")

        with pytest.raises(NetworkError) as exc_info:
            await fast_scheduler.submit("AAPL", always_fails)

        # One initial attempt plus max_retries (2)
        assert attempts == 3
        assert exc_info.value.details["original_error"] == "ConnectionError"
        status = fast_scheduler.status()
        assert status.failed_keys == ["AAPL"]
        assert status.retrying_count == 0
        assert status.queued_count == 0

    @pytest.mark.asyncio
    async def test_validation_errors_are_not_retried(self, fast_scheduler):
        """Test that malformed responses fail on the first attempt."""
        attempts = 0

        async def malformed():
            nonlocal attempts
            attempts += 1
            raise DataValidationError("bad payload", ticker="AAPL")

        with pytest.raises(DataValidationError):
            await fast_scheduler.submit("AAPL", malformed)

        assert attempts == 1
        assert fast_scheduler.status().failed_keys == ["AAPL"]

    @pytest.mark.asyncio
    async def test_timeout_surfaces_as_network_error(self):
        """Test that an overrunning operation raises RequestTimeoutError."""
        scheduler = RequestScheduler(min_interval=0, max_retries=0, retry_delay=0, timeout=0.02)

        async def hangs():
            await asyncio.sleep(1)

        with pytest.raises(RequestTimeoutError) as exc_info:
            await scheduler.submit("AAPL", hangs)

        assert isinstance(exc_info.value, NetworkError)
        assert exc_info.value.timeout == 0.02

    @pytest.mark.asyncio
    async def test_late_failure_after_timeout_is_consumed(self):
        """Test an operation that outlives its timeout does not leak an unread error."""
        loop = asyncio.get_running_loop()
        reported = []
        previous_handler = loop.get_exception_handler()
        loop.set_exception_handler(lambda _, context: reported.append(context))
        finished = asyncio.Event()

        async def ignores_cancellation():
            try:
                await asyncio.sleep(1)
            except asyncio.CancelledError:
                await asyncio.sleep(0.02)
                finished.set()
                raise ValueError("late failure")

        scheduler = RequestScheduler(min_interval=0, max_retries=0, retry_delay=0, timeout=0.02)
        try:
            with pytest.raises(RequestTimeoutError):
                await scheduler.submit("AAPL", ignores_cancellation)

            await asyncio.wait_for(finished.wait(), 1.0)
            await asyncio.sleep(0.01)
            gc.collect()
        finally:
            loop.set_exception_handler(previous_handler)

        assert reported == []

    @pytest.mark.asyncio
    async def test_rate_limits_are_counted_and_reset_on_success(self, fast_scheduler):
        """Test the consecutive rate-limit counter exposed in status."""

        async def limited():
            raise RateLimitError("yfinance", ticker="AAPL")

        with pytest.raises(RateLimitError):
            await fast_scheduler.submit("AAPL", limited)
        assert fast_scheduler.status().consecutive_rate_limits == 3

        await fast_scheduler.submit("MSFT", returning("ok"))
        assert fast_scheduler.status().consecutive_rate_limits == 0

    @pytest.mark.asyncio
    async def test_retry_failed_resubmits_failed_keys(self, fast_scheduler):
        """Test that failed keys are only retried when asked to."""
        healthy = False

        async def depends_on_flag():
            if not healthy:
                raise NetworkError("down")
            return "recovered"

        with pytest.raises(NetworkError):
            await fast_scheduler.submit("AAPL", depends_on_flag)

        healthy = True
        outcomes = await fast_scheduler.retry_failed()

        assert outcomes == {"AAPL": "recovered"}
        assert fast_scheduler.status().failed_count == 0

    @pytest.mark.asyncio
    async def test_retry_failed_with_nothing_failed(self, fast_scheduler):
        """Test retry_failed is a no-op without failed keys."""
        assert await fast_scheduler.retry_failed() == {}


class TestCancellation:
    """Test cancel and cancel_all."""

    @pytest.mark.asyncio
    async def test_cancel_all_rejects_everything_and_clears_queues(self):
        """Test that cancel_all rejects pending callers and empties the queues."""
        scheduler = RequestScheduler(min_interval=0, max_retries=3, retry_delay=5, timeout=1.0)
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "late"

        async def fails():
            raise NetworkError("down")

        in_flight = asyncio.create_task(scheduler.submit("A", slow))
        queued = asyncio.create_task(scheduler.submit("B", returning("b")))
        await asyncio.sleep(0.01)

        cancelled = scheduler.cancel_all()

        assert cancelled == 2
        for task in (in_flight, queued):
            with pytest.raises(RequestCancelledError):
                await task

        status = scheduler.status()
        assert status.queued_count == 0
        assert status.retrying_count == 0
        assert status.in_flight_count == 0
        assert status.is_active is False

        # Retry batch is cleared as well
        retrying = asyncio.create_task(scheduler.submit("C", fails))
        await asyncio.sleep(0.01)
        assert scheduler.status().retrying_keys == ["C"]
        assert scheduler.cancel_all() == 1
        with pytest.raises(RequestCancelledError):
            await retrying
        assert scheduler.status().retrying_count == 0

    @pytest.mark.asyncio
    async def test_cancel_single_key(self, fast_scheduler):
        """Test that cancel(key) only rejects that key."""
        release = asyncio.Event()

        async def slow():
            await release.wait()
            return "a"

        first = asyncio.create_task(fast_scheduler.submit("A", slow))
        second = asyncio.create_task(fast_scheduler.submit("B", returning("b")))
        await asyncio.sleep(0.01)

        assert fast_scheduler.cancel("B") == 1
        with pytest.raises(RequestCancelledError):
            await second

        release.set()
        assert await first == "a"

    @pytest.mark.asyncio
    async def test_cancel_in_flight_key(self, fast_scheduler):
        """Test that cancelling the in-flight key frees the worker."""

        async def hangs():
            await asyncio.sleep(10)

        first = asyncio.create_task(fast_scheduler.submit("A", hangs))
        await asyncio.sleep(0.01)

        assert fast_scheduler.cancel("A") == 1
        with pytest.raises(RequestCancelledError):
            await first

        assert await fast_scheduler.submit("B", returning("b")) == "b"

    @pytest.mark.asyncio
    async def test_operation_cancelling_itself_rejects_caller(self, fast_scheduler):
        """Test a self-cancelled operation resolves the caller instead of hanging."""

        async def cancels_itself():
            raise asyncio.CancelledError()

        with pytest.raises(RequestCancelledError) as exc_info:
            await asyncio.wait_for(fast_scheduler.submit("AAPL", cancels_itself), 1.0)

        assert exc_info.value.key == "AAPL"
        assert await fast_scheduler.submit("AAPL", returning("again")) == "again"

    @pytest.mark.asyncio
    async def test_scheduler_usable_after_cancel_all(self, fast_scheduler):
        """Test that new work is accepted after a bulk cancel."""
        fast_scheduler.cancel_all()

        assert await fast_scheduler.submit("AAPL", returning("fresh")) == "fresh"
