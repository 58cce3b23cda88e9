"""
Rate-Limited Dispatcher
One FIFO queue in front of the provider. Every outbound completion, from
every chat session, goes through here so total throughput stays under the
provider's per-minute cap.
"""

import asyncio
import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from config import LLM_MAX_RETRIES, LLM_REQUESTS_PER_MINUTE
from core.llm import ProviderThrottled

logger = logging.getLogger(__name__)

Operation = Callable[[], Awaitable[Any]]


@dataclass
class QueueTask:
    invoke: Operation
    future: asyncio.Future


class RateLimitedDispatcher:
    """
    Serializes provider calls and paces them ``60 / requests_per_minute``
    seconds apart.

    Only ProviderThrottled is retried: the operation gets one initial attempt
    plus up to ``max_retries`` retries, waiting for the provider's
    retry-after when given and ``2 ** attempt`` seconds otherwise. Any other
    error is handed straight back to the caller.
    """

    def __init__(
        self,
        requests_per_minute: float = LLM_REQUESTS_PER_MINUTE,
        max_retries: int = LLM_MAX_RETRIES,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if requests_per_minute <= 0:
            raise ValueError("requests_per_minute must be positive")
        if max_retries < 0:
            raise ValueError("max_retries cannot be negative")
        self.min_interval = 60.0 / requests_per_minute
        self.max_retries = max_retries
        self._clock = clock
        self._sleep = sleep
        self._queue: deque[QueueTask] = deque()
        self._last_request_time: Optional[float] = None
        self._drain_task: Optional[asyncio.Task] = None

    @property
    def pending(self) -> int:
        """Tasks queued but not yet started"""
        return len(self._queue)

    def schedule(self, operation: Operation) -> asyncio.Future:
        """Queue a zero-arg coroutine function; await the returned future for its result"""
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._queue.append(QueueTask(invoke=operation, future=future))
        if self._drain_task is None or self._drain_task.done():
            self._drain_task = loop.create_task(self._drain())
        return future

    async def _drain(self) -> None:
        while self._queue:
            task = self._queue.popleft()
            if task.future.cancelled():
                continue
            try:
                result = await self._run_with_retries(task.invoke)
            except Exception as e:
                if not task.future.done():
                    task.future.set_exception(e)
            else:
                if not task.future.done():
                    task.future.set_result(result)

    async def _run_with_retries(self, operation: Operation) -> Any:
        attempt = 0
        while True:
            await self._wait_for_slot()
            try:
                return await operation()
            except ProviderThrottled as e:
                if attempt >= self.max_retries:
                    logger.warning("Provider still throttling after %d retries, giving up", attempt)
                    raise
                delay = e.retry_after if e.retry_after is not None else 2 ** attempt
                attempt += 1
                logger.warning(
                    "Provider throttled, retry %d/%d in %.1fs", attempt, self.max_retries, delay
                )
                await self._sleep(delay)

    async def _wait_for_slot(self) -> None:
        if self._last_request_time is not None:
            wait = self.min_interval - (self._clock() - self._last_request_time)
            if wait > 0:
                logger.debug("Pacing provider call, waiting %.2fs", wait)
                await self._sleep(wait)
        self._last_request_time = self._clock()
