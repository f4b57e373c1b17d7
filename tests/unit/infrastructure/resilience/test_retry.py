# tests/unit/infrastructure/resilience/test_retry.py
from __future__ import annotations

import pytest

from windcurtail.infrastructure.resilience.retry import RetryPolicy, retry_async


class _Flaky:
    def __init__(self, failures: int, exc: Exception) -> None:
        self.failures = failures
        self.exc = exc
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc
        return "ok"


@pytest.mark.asyncio
async def test_retries_with_doubling_backoff_until_success() -> None:
    sleeps: list[float] = []

    async def _sleep(s: float) -> None:
        sleeps.append(s)

    fn = _Flaky(2, ConnectionError("reset"))
    result = await retry_async(
        fn,
        policy=RetryPolicy(total=3, base=1.0, cap=10.0),
        retry_on=lambda e: isinstance(e, ConnectionError),
        sleep=_sleep,
    )

    assert result == "ok"
    assert fn.calls == 3
    assert sleeps == [1.0, 2.0]


@pytest.mark.asyncio
async def test_gives_up_after_budget_and_reraises() -> None:
    async def _sleep(s: float) -> None:
        return None

    fn = _Flaky(10, ConnectionError("reset"))
    with pytest.raises(ConnectionError):
        await retry_async(
            fn,
            policy=RetryPolicy(total=2, base=0.1, cap=1.0),
            retry_on=lambda e: True,
            sleep=_sleep,
        )
    assert fn.calls == 3


@pytest.mark.asyncio
async def test_non_retryable_error_is_raised_immediately() -> None:
    fn = _Flaky(1, ValueError("fatal"))
    with pytest.raises(ValueError):
        await retry_async(
            fn, policy=RetryPolicy(total=5, base=0.1, cap=1.0), retry_on=lambda e: False
        )
    assert fn.calls == 1


@pytest.mark.asyncio
async def test_delay_override_and_hook() -> None:
    sleeps: list[float] = []
    seen: list[int] = []

    async def _sleep(s: float) -> None:
        sleeps.append(s)

    fn = _Flaky(1, ConnectionError())
    await retry_async(
        fn,
        policy=RetryPolicy(total=1, base=0.1, cap=1.0),
        retry_on=lambda e: True,
        delay_for=lambda e, a: 60.0,
        on_retry=lambda e, a, d: seen.append(a),
        sleep=_sleep,
    )
    assert sleeps == [60.0]
    assert seen == [0]


def test_backoff_is_capped() -> None:
    policy = RetryPolicy(total=10, base=1.0, cap=5.0)
    assert [policy.backoff(i) for i in range(4)] == [1.0, 2.0, 4.0, 5.0]
