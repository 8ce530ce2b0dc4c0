"""Fixed-window rate limiter for outbound connector calls.

Limiter state is local to the instance; nothing is coordinated across
processes.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable

from connector_sdk.resilience import waiting

logger = logging.getLogger(__name__)


class RateLimiter:
    """Admits at most ``max_requests`` calls per ``window_seconds``.

    This is a fixed-window counter: the full quota comes back only once the
    whole window has elapsed since the last reset, with no partial refill in
    between.

    ``tokens`` and ``last_refill_at`` are guarded by a lock so one limiter can
    be shared between threads. The check-then-sleep in ``acquire`` is not
    atomic: every caller that went to sleep on an exhausted window is admitted
    when it wakes, so more than ``max_requests`` callers can pass at a window
    boundary. ``tokens`` never drops below zero.
    """

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()

        self.tokens = max_requests
        self.last_refill_at = clock()

    def refill(self) -> None:
        """Reset the quota if the current window has fully elapsed."""
        with self._lock:
            self._refill()

    async def acquire(self, cancel_event: asyncio.Event | None = None) -> None:
        """Take one slot, suspending until the window resets if none are left.

        Args:
            cancel_event: Optional event that aborts the wait when set

        Raises:
            OperationCancelledError: If ``cancel_event`` fires during the wait
        """
        with self._lock:
            self._refill()
            wait_time = None
            if self.tokens <= 0:
                wait_time = self.window_seconds - (self._clock() - self.last_refill_at)

        if wait_time is not None:
            logger.debug(f"Rate limit reached, waiting {wait_time:.3f}s for window reset")
            await waiting.sleep(wait_time, cancel_event)
            self.refill()

        with self._lock:
            self.tokens = max(self.tokens - 1, 0)

    def _refill(self) -> None:
        now = self._clock()
        if now - self.last_refill_at >= self.window_seconds:
            self.tokens = self.max_requests
            self.last_refill_at = now
