# Copyright (c)
# SPDX-License-Identifier: MIT
"""Retry utilities (async) with capped exponential backoff."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TypeVar

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry attempts."""

    total: int  # number of retries (not counting the first attempt)
    base: float  # base backoff seconds
    cap: float  # max backoff seconds
    jitter: bool = False  # add full jitter if True

    def backoff(self, attempt: int) -> float:
        """Return the sleep before retry number ``attempt + 1``."""
        delay = min(self.cap, self.base * (2**attempt))
        if self.jitter:
            delay = random.uniform(0, delay)  # noqa: S311
        return delay


async def retry_async(
    fn: Callable[[], Awaitable[T]],
    *,
    policy: RetryPolicy,
    retry_on: Callable[[Exception], bool],
    delay_for: Callable[[Exception, int], float | None] | None = None,
    on_retry: Callable[[Exception, int, float], None] | None = None,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Retry an async function with backoff until success or budget exhausted.

    Args:
        fn: Zero-arg async function to execute.
        policy: RetryPolicy defining count/backoff.
        retry_on: Predicate that returns True when the exception is retryable.
        delay_for: Optional override returning a fixed delay for a given
            exception (e.g. a rate-limit cool-down). ``None`` falls back to
            the policy's exponential backoff.
        on_retry: Optional hook invoked before each sleep with
            ``(exc, attempt, delay)``; used for logging and metrics.
        sleep: Awaitable sleep function (injectable for tests).

    Returns:
        The return value of ``fn`` if successful.

    Raises:
        The last exception if retries are exhausted or it is not retryable.
    """
    attempt = 0
    while True:
        try:
            return await fn()
        except Exception as exc:  # noqa: BLE001
            if attempt >= policy.total or not retry_on(exc):
                raise
            delay = delay_for(exc, attempt) if delay_for is not None else None
            if delay is None:
                delay = policy.backoff(attempt)
            if on_retry is not None:
                on_retry(exc, attempt, delay)
        await sleep(delay)
        attempt += 1
