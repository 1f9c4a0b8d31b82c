"""Per-provider admission control for outbound calls."""

import asyncio
import contextlib
import time
from collections import deque
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from pydantic import BaseModel

from claudish.core.errors import QueueTimeoutError


logger = structlog.get_logger(__name__)

T = TypeVar("T")


class QueueStats(BaseModel):
    """Snapshot of a queue's counters."""

    name: str
    max_concurrency: int
    in_flight: int
    waiting: int
    completed: int
    failed: int


class RequestQueue:
    """FIFO queue admitting at most ``max_concurrency`` calls at once.

    One instance is shared by every request to a provider. All state is
    touched only from the event loop between awaits, so no lock is needed:
    slots are handed directly to the oldest waiter's future on release.

    Args:
        name: Queue name used in logs and errors
        max_concurrency: Maximum calls in flight
        min_interval: Minimum seconds between two admissions
        acquire_timeout: Seconds a call may wait for a slot (None = forever)
    """

    def __init__(
        self,
        name: str,
        *,
        max_concurrency: int = 1,
        min_interval: float = 0.0,
        acquire_timeout: float | None = None,
    ) -> None:
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        self.name = name
        self.max_concurrency = max_concurrency
        self.min_interval = min_interval
        self.acquire_timeout = acquire_timeout
        self._in_flight = 0
        self._waiters: deque[asyncio.Future[None]] = deque()
        self._next_admission = 0.0
        self._completed = 0
        self._failed = 0

    @property
    def in_flight(self) -> int:
        return self._in_flight

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def enqueue(self, send: Callable[[], Awaitable[T]]) -> T:
        """Run ``send`` once a slot is free and return its result.

        The slot is released however ``send`` ends: result, exception or
        cancellation of the caller. Exceptions from ``send`` propagate.
        """
        await self._acquire()
        try:
            await self._space_admission()
            result = await send()
        except BaseException:
            self._failed += 1
            raise
        else:
            self._completed += 1
            return result
        finally:
            self._release()

    async def _acquire(self) -> None:
        if self._in_flight < self.max_concurrency and not self.waiting:
            self._in_flight += 1
            return

        waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        logger.debug(
            "request_queue_waiting",
            queue=self.name,
            waiting=len(self._waiters),
            in_flight=self._in_flight,
        )
        try:
            if self.acquire_timeout is None:
                await waiter
            else:
                await asyncio.wait_for(waiter, self.acquire_timeout)
        except (asyncio.CancelledError, asyncio.TimeoutError) as exc:
            if waiter.done() and not waiter.cancelled():
                # Granted a slot just as we gave up: hand it to the next waiter.
                self._release()
            else:
                with contextlib.suppress(ValueError):
                    self._waiters.remove(waiter)
            if isinstance(exc, asyncio.TimeoutError):
                logger.warning(
                    "request_queue_timeout", queue=self.name, timeout=self.acquire_timeout
                )
                raise QueueTimeoutError(self.name, self.acquire_timeout or 0.0) from exc
            raise

    async def _space_admission(self) -> None:
        if self.min_interval <= 0:
            return
        now = time.monotonic()
        delay = max(0.0, self._next_admission - now)
        self._next_admission = max(now, self._next_admission) + self.min_interval
        if delay:
            await asyncio.sleep(delay)

    def _release(self) -> None:
        self._in_flight -= 1
        while self._waiters and self._in_flight < self.max_concurrency:
            waiter = self._waiters.popleft()
            if waiter.done():
                continue
            self._in_flight += 1
            waiter.set_result(None)

    def stats(self) -> QueueStats:
        return QueueStats(
            name=self.name,
            max_concurrency=self.max_concurrency,
            in_flight=self._in_flight,
            waiting=self.waiting,
            completed=self._completed,
            failed=self._failed,
        )
