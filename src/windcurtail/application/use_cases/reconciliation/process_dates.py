# src/windcurtail/application/use_cases/reconciliation/process_dates.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: batch-process dates with a durable checkpoint.

Dates are processed in chunks of ``batch_size``, concurrently within a chunk
and chunk after chunk. The checkpoint is saved after every date, so an
interrupted run resumes with exactly the dates still pending.

Failure policy:
    * Retryable failures (timeouts, lost connections, deadlocks, upstream
      period failures) are retried with doubling backoff up to
      ``max_attempts`` attempts in total.
    * Fatal failures are recorded on the first occurrence.
    * One date failing never stops the others; the run always ends with a
      :class:`BatchSummaryDTO`.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import date

from windcurtail.application.schemas.dto.pipeline import BatchSummaryDTO, DateFailureDTO
from windcurtail.domain.entities.reconciliation_checkpoint import ReconciliationCheckpoint
from windcurtail.domain.enums.pipeline import FailureKind
from windcurtail.domain.exceptions.pipeline import ConfigurationError
from windcurtail.domain.interfaces.gateways.checkpoint_store import CheckpointStore
from windcurtail.domain.services.failure_classifier import classify_failure, is_retryable
from windcurtail.infrastructure.logging.logger import get_json_logger, set_run_context
from windcurtail.infrastructure.observability.metrics_pipeline import get_reconcile_dates_total
from windcurtail.infrastructure.resilience.retry import RetryPolicy, SleepFn, retry_async

log = get_json_logger(__name__)

DateProcessor = Callable[[date], Awaitable[object]]


@dataclass(slots=True)
class _DateOutcome:
    day: str
    ok: bool
    attempts: int
    kind: FailureKind | None = None
    reason: str | None = None
    records: int = 0
    calculations: int = 0


class ProcessDates:
    """Run a per-date processor over many dates with checkpoint and retry."""

    def __init__(
        self,
        *,
        process: DateProcessor,
        checkpoint_store: CheckpointStore,
        batch_size: int = 5,
        max_attempts: int = 3,
        backoff_base_s: float = 5.0,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        """Initialize the batch processor.

        Args:
            process: Coroutine function processing one date; raises on failure.
            checkpoint_store: Where progress is persisted after every date.
            batch_size: Dates processed concurrently per chunk.
            max_attempts: Attempts per date for retryable failures.
            backoff_base_s: First retry delay; doubles on each retry.
            sleep: Awaitable sleep (injectable for tests).
        """
        if batch_size < 1 or max_attempts < 1:
            raise ConfigurationError("batch_size and max_attempts must be >= 1")
        self._process = process
        self._store = checkpoint_store
        self._batch_size = batch_size
        self._policy = RetryPolicy(
            total=max_attempts - 1,
            base=backoff_base_s,
            cap=backoff_base_s * 2 ** max(max_attempts - 1, 0),
        )
        self._sleep = sleep
        self._save_lock = asyncio.Lock()

    async def execute(self, dates: Sequence[date]) -> BatchSummaryDTO:
        """Start a new run over ``dates`` (replacing any previous checkpoint)."""
        checkpoint = ReconciliationCheckpoint.start([d.isoformat() for d in dates])
        await self._save(checkpoint)
        log.info(
            "reconcile.run_started",
            extra={"extra": {"run_id": checkpoint.run_id, "dates": len(checkpoint.pending_dates)}},
        )
        return await self._run(checkpoint)

    async def resume(self) -> BatchSummaryDTO | None:
        """Continue the persisted run; ``None`` when there is nothing to resume."""
        checkpoint = await asyncio.to_thread(self._store.load)
        if checkpoint is None or checkpoint.is_finished:
            return None
        log.info(
            "reconcile.run_resumed",
            extra={
                "extra": {
                    "run_id": checkpoint.run_id,
                    "pending": len(checkpoint.pending_dates),
                    "completed": len(checkpoint.completed_dates),
                }
            },
        )
        return await self._run(checkpoint)

    async def _run(self, checkpoint: ReconciliationCheckpoint) -> BatchSummaryDTO:
        set_run_context(run_id=checkpoint.run_id)
        pending = list(checkpoint.pending_dates)
        outcomes: list[_DateOutcome] = []

        for start in range(0, len(pending), self._batch_size):
            chunk = pending[start : start + self._batch_size]
            outcomes.extend(
                await asyncio.gather(*(self._process_one(day, checkpoint) for day in chunk))
            )

        checkpoint.finish()
        await self._save(checkpoint)

        failures = [
            DateFailureDTO(
                settlement_date=o.day,
                reason=o.reason or "unknown",
                kind=o.kind or FailureKind.FATAL,
                attempts=o.attempts,
            )
            for o in outcomes
            if not o.ok
        ]
        summary = BatchSummaryDTO(
            run_id=checkpoint.run_id,
            processed=len(outcomes),
            succeeded=sum(1 for o in outcomes if o.ok),
            failed=len(failures),
            timeouts=sum(1 for f in failures if f.kind is FailureKind.TIMEOUT),
            failures=failures,
        )
        log.info(
            "reconcile.run_done",
            extra={
                "extra": {
                    "run_id": summary.run_id,
                    "processed": summary.processed,
                    "succeeded": summary.succeeded,
                    "failed": summary.failed,
                    "timeouts": summary.timeouts,
                }
            },
        )
        return summary

    async def _save(self, checkpoint: ReconciliationCheckpoint) -> None:
        """Persist a snapshot of ``checkpoint`` off the event loop, one write at a time."""
        async with self._save_lock:
            snapshot = ReconciliationCheckpoint.from_dict(checkpoint.to_dict())
            await asyncio.to_thread(self._store.save, snapshot)

    async def _process_one(self, day: str, checkpoint: ReconciliationCheckpoint) -> _DateOutcome:
        attempts = 0

        async def _attempt() -> object:
            nonlocal attempts
            attempts += 1
            return await self._process(date.fromisoformat(day))

        def _on_retry(exc: Exception, attempt: int, delay: float) -> None:
            log.warning(
                "reconcile.date_retry",
                extra={
                    "extra": {
                        "settlement_date": day,
                        "attempt": attempt + 1,
                        "delay_s": delay,
                        "kind": classify_failure(exc).value,
                        "reason": str(exc) or type(exc).__name__,
                    }
                },
            )

        try:
            result = await retry_async(
                _attempt,
                policy=self._policy,
                retry_on=is_retryable,
                on_retry=_on_retry,
                sleep=self._sleep,
            )
        except Exception as exc:  # noqa: BLE001
            kind = classify_failure(exc)
            reason = str(exc) or type(exc).__name__
            checkpoint.mark_failed(day, reason, timeout=kind is FailureKind.TIMEOUT)
            await self._save(checkpoint)
            get_reconcile_dates_total().labels("failed").inc()
            log.error(
                "reconcile.date_failed",
                extra={
                    "extra": {
                        "settlement_date": day,
                        "kind": kind.value,
                        "attempts": attempts,
                        "reason": reason,
                    }
                },
            )
            return _DateOutcome(day=day, ok=False, attempts=attempts, kind=kind, reason=reason)

        records, calculations = _counts(result)
        checkpoint.mark_completed(day, records=records, calculations=calculations)
        await self._save(checkpoint)
        get_reconcile_dates_total().labels("succeeded").inc()
        log.info(
            "reconcile.date_done",
            extra={"extra": {"settlement_date": day, "attempts": attempts}},
        )
        return _DateOutcome(
            day=day, ok=True, attempts=attempts, records=records, calculations=calculations
        )


def _counts(result: object) -> tuple[int, int]:
    """Extract ``(records, calculations)`` from a processing result, if it has them."""
    ingestion = getattr(result, "ingestion", None)
    calculation = getattr(result, "calculation", None)
    return (
        int(getattr(ingestion, "records", 0) or 0),
        int(getattr(calculation, "rows_written", 0) or 0),
    )
