"""Rate-limited, deduplicating, retrying request scheduler."""

import asyncio
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Dict, List, Optional

from ...config.logging import get_logger
from ...exceptions import (
    BreakoutScannerError,
    DuplicateRequestError,
    NetworkError,
    RateLimitError,
    RequestCancelledError,
    RequestTimeoutError,
)
from .models import SchedulerStatus

logger = get_logger(__name__)

Operation = Callable[[], Awaitable[Any]]


def _abandon(task: asyncio.Future) -> None:
    """Cancel ``task`` and consume whatever it eventually finishes with."""
    task.cancel()
    task.add_done_callback(_consume_outcome)


def _consume_outcome(task: asyncio.Future) -> None:
    if not task.cancelled():
        task.exception()


@dataclass
class _Request:
    key: str
    operation: Operation
    future: asyncio.Future
    attempts: int = 0


class RequestScheduler:
    """
    Serializes outbound requests under a minimum dispatch interval.

    One worker task drains the queue, so dispatches are globally ordered no
    matter how many callers submit concurrently. Failed requests go to a retry
    batch that is replayed, after ``retry_delay`` seconds, once the main queue
    is empty. A key may only be queued, retrying or in flight once at a time.

    Timeouts and cancellation cancel the operation's task, which only stops
    cooperative coroutines. Blocking work pushed to a thread (yfinance via
    ``asyncio.to_thread``) keeps running in the background, so per-key
    exclusivity holds only for operations that honour cancellation. The
    late outcome of such work is discarded.
    """

    def __init__(
        self,
        min_interval: float = 1.0,
        max_retries: int = 3,
        retry_delay: float = 2.0,
        timeout: Optional[float] = 10.0,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.min_interval = min_interval
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._monotonic = monotonic

        self._queue: Deque[_Request] = deque()
        self._retry_batch: List[_Request] = []
        self._in_flight: Optional[_Request] = None
        self._current_task: Optional[asyncio.Future] = None
        self._worker: Optional[asyncio.Task] = None
        self._failed: Dict[str, Operation] = {}
        self._last_dispatch: Optional[float] = None
        self._consecutive_rate_limits = 0

        self.logger = logger.bind(component="request_scheduler")

    async def submit(self, key: str, operation: Operation) -> Any:
        """
        Queue ``operation`` under ``key`` and wait for its result.

        Args:
            key: Deduplication key, normally the ticker
            operation: Zero-argument callable returning an awaitable

        Returns:
            Whatever the operation returns

        Raises:
            DuplicateRequestError: If the key is already queued or in flight
            RequestCancelledError: If the request was cancelled
            NetworkError: When the retry budget is exhausted
            DataValidationError: When the response could not be parsed
        """
        if key in self._tracked_keys():
            raise DuplicateRequestError(key)

        request = _Request(
            key=key,
            operation=operation,
            future=asyncio.get_running_loop().create_future(),
        )
        self._queue.append(request)
        self._ensure_worker()

        return await request.future

    def _tracked_keys(self) -> set:
        keys = {r.key for r in self._queue}
        keys.update(r.key for r in self._retry_batch)
        if self._in_flight is not None:
            keys.add(self._in_flight.key)
        return keys

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            self._worker = asyncio.create_task(self._run())

    async def _run(self) -> None:
        try:
            while True:
                if not self._queue:
                    if not self._retry_batch:
                        break
                    self.logger.info(
                        "Replaying retry batch",
                        count=len(self._retry_batch),
                        delay_seconds=self.retry_delay,
                    )
                    await asyncio.sleep(self.retry_delay)
                    self._queue.extend(self._retry_batch)
                    self._retry_batch.clear()
                    continue

                request = self._queue.popleft()
                if request.future.done():
                    # Caller went away or the request was cancelled
                    continue
                await self._dispatch(request)
        finally:
            if self._worker is asyncio.current_task():
                self._worker = None

    async def _respect_rate_limit(self) -> None:
        if self._last_dispatch is not None:
            elapsed = self._monotonic() - self._last_dispatch
            if elapsed < self.min_interval:
                await asyncio.sleep(self.min_interval - elapsed)
        self._last_dispatch = self._monotonic()

    async def _dispatch(self, request: _Request) -> None:
        # Hold the in-flight slot while pacing so the key stays deduplicated
        self._in_flight = request
        try:
            await self._respect_rate_limit()
            if request.future.done():
                return

            request.attempts += 1
            task = asyncio.ensure_future(request.operation())
            self._current_task = task
            try:
                done, _ = await asyncio.wait({task}, timeout=self.timeout)
            except asyncio.CancelledError:
                _abandon(task)
                raise
        finally:
            if self._in_flight is request:
                self._in_flight = None
                self._current_task = None

        if not done:
            _abandon(task)
            self._handle_failure(request, RequestTimeoutError(request.key, self.timeout))
            return

        if task.cancelled():
            # No-op when cancel(key) already rejected the caller
            self._reject([request])
            return

        error = task.exception()
        if error is not None:
            self._handle_failure(request, error)
            return

        self._consecutive_rate_limits = 0
        self._failed.pop(request.key, None)
        if not request.future.done():
            request.future.set_result(task.result())

    def _handle_failure(self, request: _Request, error: BaseException) -> None:
        if not isinstance(error, BreakoutScannerError):
            error = NetworkError(
                message=f"Request for {request.key} failed: {error}",
                ticker=request.key,
                details={"original_error": type(error).__name__},
            )

        if isinstance(error, RateLimitError):
            self._consecutive_rate_limits += 1

        retryable = isinstance(error, NetworkError)
        if retryable and request.attempts <= self.max_retries:
            self.logger.warning(
                "Request failed, scheduling retry",
                key=request.key,
                attempt=request.attempts,
                max_retries=self.max_retries,
                error_type=type(error).__name__,
                error=str(error),
            )
            self._retry_batch.append(request)
            return

        self._failed[request.key] = request.operation
        self.logger.error(
            "Request failed permanently",
            key=request.key,
            attempts=request.attempts,
            error_type=type(error).__name__,
            error=str(error),
        )
        if not request.future.done():
            request.future.set_exception(error)

    def cancel(self, key: str) -> int:
        """
        Cancel every queued, retrying or in-flight request for ``key``.

        Returns:
            Number of callers that were rejected
        """
        cancelled: List[_Request] = [r for r in self._queue if r.key == key]
        self._queue = deque(r for r in self._queue if r.key != key)

        cancelled.extend(r for r in self._retry_batch if r.key == key)
        self._retry_batch = [r for r in self._retry_batch if r.key != key]

        if self._in_flight is not None and self._in_flight.key == key:
            cancelled.append(self._in_flight)
            if self._current_task is not None:
                _abandon(self._current_task)
            self._in_flight = None
            self._current_task = None

        return self._reject(cancelled)

    def cancel_all(self) -> int:
        """
        Cancel every outstanding request and clear all queues.

        A network call already running cannot be recalled; its late result
        is discarded.

        Returns:
            Number of callers that were rejected
        """
        cancelled: List[_Request] = list(self._queue) + list(self._retry_batch)
        if self._in_flight is not None:
            cancelled.append(self._in_flight)

        self._queue.clear()
        self._retry_batch.clear()

        if self._current_task is not None:
            _abandon(self._current_task)
        self._in_flight = None
        self._current_task = None

        if self._worker is not None:
            self._worker.cancel()
            self._worker = None

        count = self._reject(cancelled)
        self.logger.info("Cancelled all pending requests", cancelled=count)
        return count

    @staticmethod
    def _reject(requests: List[_Request]) -> int:
        count = 0
        for request in requests:
            if not request.future.done():
                request.future.set_exception(RequestCancelledError(request.key))
                count += 1
        return count

    async def retry_failed(self) -> Dict[str, Any]:
        """
        Resubmit every key that exhausted its retries.

        Returns:
            Mapping of key to result, or to the exception it failed with
        """
        failed = dict(self._failed)
        if not failed:
            return {}

        self.logger.info("Retrying failed requests", count=len(failed))
        self._failed.clear()

        results = await asyncio.gather(
            *(self.submit(key, operation) for key, operation in failed.items()),
            return_exceptions=True,
        )
        return dict(zip(failed, results))

    def status(self) -> SchedulerStatus:
        in_flight_keys = [self._in_flight.key] if self._in_flight is not None else []
        return SchedulerStatus(
            queued_count=len(self._queue),
            retrying_count=len(self._retry_batch),
            in_flight_count=len(in_flight_keys),
            failed_count=len(self._failed),
            queued_keys=[r.key for r in self._queue],
            retrying_keys=[r.key for r in self._retry_batch],
            in_flight_keys=in_flight_keys,
            failed_keys=list(self._failed),
            consecutive_rate_limits=self._consecutive_rate_limits,
            is_active=self._worker is not None and not self._worker.done(),
        )
