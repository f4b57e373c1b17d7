# Copyright (c)
# SPDX-License-Identifier: MIT
"""Sliding-window request limiter (async, single process).

The limiter keeps the timestamps of requests issued during the last
``window_s`` seconds. Before a request is allowed, expired timestamps are
dropped; if the window is still at capacity the caller sleeps until the
oldest timestamp leaves the window and then re-checks.

A lock serialises admission so concurrent callers never over-admit: the
window is the only shared mutable state and it has exactly one writer at a
time.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from collections.abc import Awaitable, Callable

from windcurtail.infrastructure.logging.logger import get_json_logger

log = get_json_logger(__name__)


class SlidingWindowRateLimiter:
    """Admit at most ``capacity`` requests in any rolling ``window_s`` span."""

    def __init__(
        self,
        *,
        capacity: int,
        window_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the limiter.

        Args:
            capacity: Maximum admitted requests per window (>= 1).
            window_s: Window length in seconds.
            clock: Monotonic clock (injectable for tests).
            sleep: Awaitable sleep (injectable for tests).

        Raises:
            ValueError: If ``capacity`` or ``window_s`` is not positive.
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")
        if window_s <= 0:
            raise ValueError("window_s must be > 0")
        self._capacity = capacity
        self._window = float(window_s)
        self._clock = clock
        self._sleep = sleep
        self._stamps: deque[float] = deque()
        self._lock = asyncio.Lock()

    @property
    def capacity(self) -> int:
        """Return the configured window capacity."""
        return self._capacity

    def in_window(self) -> int:
        """Return the number of admissions still inside the window."""
        self._evict(self._clock())
        return len(self._stamps)

    async def acquire(self) -> float:
        """Wait until a request may be issued and record it.

        Returns:
            Total seconds spent waiting for capacity.
        """
        waited = 0.0
        async with self._lock:
            while True:
                now = self._clock()
                self._evict(now)
                if len(self._stamps) < self._capacity:
                    self._stamps.append(now)
                    return waited
                delay = max(self._stamps[0] + self._window - now, 0.0)
                log.info(
                    "rate_limiter.wait",
                    extra={"extra": {"delay_s": round(delay, 3), "capacity": self._capacity}},
                )
                await self._sleep(delay)
                waited += delay

    def _evict(self, now: float) -> None:
        while self._stamps and now - self._stamps[0] >= self._window:
            self._stamps.popleft()
