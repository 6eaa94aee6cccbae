# blunder_scout/utils/rate_limiter.py
"""
Paces requests to the remote evaluation service across all running analyses.

One `RateLimiter` is shared by every game analyzed in a process. It enforces
a minimum spacing between any two requests and, optionally, a rolling budget
of requests per minute. Its bookkeeping is guarded by an `asyncio.Lock`, so
concurrent games queue up instead of racing for the same slot.
"""
import asyncio
import time
from collections import deque
from typing import Awaitable, Callable, Deque, Optional, TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from blunder_scout.config.settings import RateLimitModel

logger = structlog.get_logger(__name__)

_WINDOW_S = 60.0


class RateLimiter:
    """An async, lock-protected request pacer."""

    def __init__(
        self,
        settings: "RateLimitModel",
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initializes the RateLimiter.

        Args:
            settings: Minimum spacing and the optional per-minute budget.
            clock: A monotonic clock in seconds.
            sleep: The coroutine used to wait for a free slot.
        """
        self._min_interval_s = settings.min_interval_s
        self._max_per_window = settings.max_requests_per_minute
        self._clock = clock
        self._sleep = sleep
        self._lock = asyncio.Lock()
        self._last_request_at: Optional[float] = None
        self._window: Deque[float] = deque()
        self._granted = 0

    @property
    def granted(self) -> int:
        """The number of requests let through so far."""
        return self._granted

    def _wait_needed(self, now: float) -> float:
        wait = 0.0
        if self._last_request_at is not None:
            wait = max(wait, self._last_request_at + self._min_interval_s - now)

        if self._max_per_window is not None:
            while self._window and now - self._window[0] >= _WINDOW_S:
                self._window.popleft()
            if len(self._window) >= self._max_per_window:
                wait = max(wait, self._window[0] + _WINDOW_S - now)
        return wait

    async def acquire(self) -> None:
        """Waits until a request may be sent, then records it."""
        async with self._lock:
            wait = self._wait_needed(self._clock())
            if wait > 0:
                logger.debug("Pacing evaluation request.", wait_seconds=round(wait, 3))
                await self._sleep(wait)

            now = self._clock()
            self._last_request_at = now
            if self._max_per_window is not None:
                self._window.append(now)
            self._granted += 1
