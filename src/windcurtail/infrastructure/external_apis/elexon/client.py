# src/windcurtail/infrastructure/external_apis/elexon/client.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Elexon BMRS Transport Client: rate-limited, resilient, async.

This transport provides:

* Async HTTP (httpx) with per-request timeout.
* A sliding-window limiter shared by every request of the process.
* An in-flight semaphore bounding outbound concurrency.
* Capped exponential retries for timeouts, resets and 5xx.
* A fixed cool-down after HTTP 429 (or ``Retry-After`` when larger).
* Deterministic mapping to domain errors and Prometheus metrics.

Return shape:
* ``get_stack``: the ``data`` rows of one stack endpoint.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Mapping
from contextlib import suppress
from datetime import date
from typing import Any, Final

import httpx

from windcurtail.domain.enums.pipeline import StackSide
from windcurtail.domain.exceptions.pipeline import (
    DataIntegrityError,
    RateLimitedError,
    TransientNetworkError,
)
from windcurtail.infrastructure.external_apis.elexon.settings import ElexonSettings
from windcurtail.infrastructure.logging.logger import get_json_logger, get_run_id
from windcurtail.infrastructure.observability.metrics_pipeline import (
    get_rate_limit_wait_seconds,
    get_upstream_latency_seconds,
    get_upstream_requests_total,
    get_upstream_retries_total,
)
from windcurtail.infrastructure.resilience.rate_limiter import SlidingWindowRateLimiter
from windcurtail.infrastructure.resilience.retry import RetryPolicy, SleepFn, retry_async

log = get_json_logger(__name__)

_DEFAULT_HEADERS: Final[dict[str, str]] = {
    "Accept": "application/json",
    "User-Agent": "windcurtail-elexon-client/1.0",
}


def _parse_retry_after(val: str | None) -> float | None:
    """Parse the HTTP ``Retry-After`` header (seconds form only)."""
    if not val:
        return None
    try:
        return max(0.0, float(val))
    except ValueError:
        return None


class ElexonClient:
    """Transport client for the settlement-stack endpoints."""

    def __init__(
        self,
        settings: ElexonSettings,
        *,
        http: httpx.AsyncClient | None = None,
        limiter: SlidingWindowRateLimiter | None = None,
        retry_policy: RetryPolicy | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the transport client.

        Args:
            settings: Transport settings.
            http: Optional shared ``httpx.AsyncClient``; created and owned when omitted.
            limiter: Optional limiter; one is built from settings when omitted.
            retry_policy: Optional retry configuration; built from settings when omitted.
            sleep: Awaitable sleep used between retries (injectable for tests).
        """
        self._settings = settings
        self._base_url = str(settings.base_url).rstrip("/")
        self._timeout = float(settings.timeout_s)
        self._owns_client = http is None
        self._client = http or httpx.AsyncClient(
            timeout=self._timeout,
            headers=_DEFAULT_HEADERS.copy(),
        )
        if http is not None:
            for key, value in _DEFAULT_HEADERS.items():
                self._client.headers.setdefault(key, value)

        self._limiter = limiter or SlidingWindowRateLimiter(
            capacity=settings.rate_limit_per_window,
            window_s=settings.rate_limit_window_s,
        )
        self._in_flight = asyncio.Semaphore(settings.max_in_flight)
        self._retry = retry_policy or RetryPolicy(
            total=settings.max_retries,
            base=settings.backoff_base_s,
            cap=settings.backoff_cap_s,
        )
        self._cooldown = float(settings.rate_limited_cooldown_s)
        self._sleep = sleep

        self._latency = get_upstream_latency_seconds()
        self._requests_total = get_upstream_requests_total()
        self._retries_total = get_upstream_retries_total()
        self._wait_seconds = get_rate_limit_wait_seconds()

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance owns it."""
        if self._owns_client and not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> ElexonClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.aclose()

    def stack_url(self, side: StackSide, settlement_date: date, settlement_period: int) -> str:
        """Return the endpoint URL of one stack side for one period."""
        return (
            f"{self._base_url}/balancing/settlement/stack/all/"
            f"{side.value}/{settlement_date.isoformat()}/{settlement_period}"
        )

    async def get_stack(
        self, side: StackSide, settlement_date: date, settlement_period: int
    ) -> list[Mapping[str, Any]]:
        """Fetch the ``data`` rows of one stack side.

        Raises:
            TransientNetworkError: Retries exhausted on timeouts, resets or 5xx.
            RateLimitedError: Retries exhausted while the upstream kept answering 429.
            DataIntegrityError: The upstream rejected the request or the body
                has no ``data`` list.
        """
        url = self.stack_url(side, settlement_date, settlement_period)
        headers: dict[str, str] = {}
        run_id = get_run_id()
        if run_id:
            headers["X-Request-ID"] = run_id

        async def _call() -> list[Mapping[str, Any]]:
            waited = await self._limiter.acquire()
            if waited:
                with suppress(Exception):
                    self._wait_seconds.observe(waited)
            async with self._in_flight:
                try:
                    response = await self._client.get(url, headers=headers, timeout=self._timeout)
                except httpx.TimeoutException as exc:
                    raise TransientNetworkError("timeout", details={"url": url}) from exc
                except httpx.RequestError as exc:
                    raise TransientNetworkError(
                        "transport_error", details={"url": url, "error": str(exc)}
                    ) from exc

            with suppress(Exception):
                self._requests_total.labels(side.value, str(response.status_code)).inc()
            self._map_errors(response, url)

            try:
                payload: Any = response.json()
            except ValueError as exc:
                raise DataIntegrityError("non_json", details={"url": url}) from exc
            data = payload.get("data") if isinstance(payload, Mapping) else None
            if not isinstance(data, list):
                raise DataIntegrityError("bad_shape", details={"url": url, "expected": "data:list"})
            return data

        def _delay_for(exc: Exception, attempt: int) -> float | None:
            if isinstance(exc, RateLimitedError):
                retry_after = exc.details.get("retry_after") or 0.0
                return max(self._cooldown, float(retry_after))
            return None

        def _on_retry(exc: Exception, attempt: int, delay: float) -> None:
            with suppress(Exception):
                self._retries_total.labels(getattr(exc, "code", type(exc).__name__)).inc()
            log.warning(
                "elexon.retry",
                extra={
                    "extra": {
                        "side": side.value,
                        "settlement_period": settlement_period,
                        "attempt": attempt + 1,
                        "delay_s": round(delay, 3),
                        "reason": str(exc) or type(exc).__name__,
                    }
                },
            )

        start = time.perf_counter()
        outcome = "error"
        try:
            rows = await retry_async(
                _call,
                policy=self._retry,
                retry_on=lambda exc: isinstance(exc, TransientNetworkError),
                delay_for=_delay_for,
                on_retry=_on_retry,
                sleep=self._sleep,
            )
            outcome = "success"
            return rows
        finally:
            with suppress(Exception):
                self._latency.labels(side=side.value, outcome=outcome).observe(
                    time.perf_counter() - start
                )

    @staticmethod
    def _map_errors(response: httpx.Response, url: str) -> None:
        """Raise domain exceptions for non-2xx statuses."""
        status = response.status_code
        if status == 429:
            raise RateLimitedError(
                "rate_limited",
                details={
                    "url": url,
                    "retry_after": _parse_retry_after(response.headers.get("Retry-After")),
                },
            )
        if status >= 500:
            raise TransientNetworkError(
                "upstream_unavailable", details={"url": url, "status": status}
            )
        if status >= 400:
            raise DataIntegrityError("upstream_rejected", details={"url": url, "status": status})
