"""Bounded concurrency with a FIFO wait queue."""

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """Counting semaphore with strict FIFO hand-off.

    When a slot frees up it is handed directly to the oldest waiter, so
    exactly one queued caller is released per freed slot and late arrivals
    cannot overtake the queue.
    """

    def __init__(self, max_concurrent: int = 3) -> None:
        """Initialize the limiter.

        Args:
            max_concurrent: Maximum number of concurrent holders.
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self._max_concurrent = max_concurrent
        self._active = 0
        self._waiters: deque[asyncio.Future[None]] = deque()

    @property
    def max_concurrent(self) -> int:
        return self._max_concurrent

    @property
    def active(self) -> int:
        """Number of slots currently held."""
        return self._active

    @property
    def waiting(self) -> int:
        """Number of callers queued for a slot."""
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        """Take a slot, waiting in FIFO order if none is free."""
        if self._active < self._max_concurrent and not self._waiters:
            self._active += 1
            return

        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._waiters.append(future)
        logger.debug(
            "Concurrency limit reached (%d active), queued at position %d",
            self._active,
            len(self._waiters),
        )
        try:
            await future
        except asyncio.CancelledError:
            if future.cancelled():
                if future in self._waiters:
                    self._waiters.remove(future)
            else:
                # The slot was handed over before the cancellation landed.
                self.release()
            raise

    def release(self) -> None:
        """Free a slot, handing it to the oldest waiter if any."""
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        if self._active <= 0:
            raise RuntimeError("release() called without a matching acquire()")
        self._active -= 1

    @asynccontextmanager
    async def slot(self) -> AsyncIterator[None]:
        """Hold a slot for the duration of the block."""
        await self.acquire()
        try:
            yield
        finally:
            self.release()
