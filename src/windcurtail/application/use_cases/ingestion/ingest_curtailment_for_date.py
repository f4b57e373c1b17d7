# src/windcurtail/application/use_cases/ingestion/ingest_curtailment_for_date.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: ingest curtailment facts for one settlement date.

Each of the 48 periods is fetched, filtered and written independently under
a bounded concurrency. A failure in one period is logged and counted; it
never aborts its siblings. A fetched period replaces that period's stored
facts in its own transaction, so facts the upstream no longer reports go away.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from windcurtail.application.schemas.dto.pipeline import IngestionResultDTO
from windcurtail.application.uow import UnitOfWork, UnitOfWorkFactory, run_in_uow
from windcurtail.domain.entities.curtailment_record import CurtailmentRecord
from windcurtail.domain.enums.pipeline import IngestMode
from windcurtail.domain.exceptions.pipeline import ConfigurationError
from windcurtail.domain.interfaces.gateways.settlement_gateway import (
    SettlementGateway,
    UnitIdentity,
    UnitResolver,
)
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
    UnitOwnershipRepository,
)
from windcurtail.domain.services.curtailment_rules import build_curtailment_records, totals
from windcurtail.domain.services.settlement_calendar import (
    all_periods,
    parse_settlement_date,
    validate_period,
)
from windcurtail.infrastructure.logging.logger import get_json_logger, set_run_context
from windcurtail.infrastructure.observability.metrics_pipeline import (
    get_ingest_failed_periods_total,
    get_ingested_records_total,
)

log = get_json_logger(__name__)

UNKNOWN_LEAD_PARTY = "unknown"


@dataclass(slots=True)
class IngestCurtailmentRequest:
    """Request parameters for ingesting a date."""

    settlement_date: date | str
    mode: IngestMode = IngestMode.UPSERT
    periods: Sequence[int] | None = None  # defaults to 1..48


@dataclass(slots=True)
class _PeriodOutcome:
    period: int
    records: list[CurtailmentRecord]
    ok: bool


class IngestCurtailmentForDate:
    """Fetch, filter and upsert curtailment facts for a date.

    Raises:
        ValueError: If the date is malformed or in the future.
        DataIntegrityError: If the unit mapping cannot be resolved.
    """

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        gateway: SettlementGateway,
        units: UnitResolver,
        period_concurrency: int = 10,
        today: Callable[[], date] | None = None,
    ) -> None:
        if period_concurrency < 1:
            raise ConfigurationError("period_concurrency must be >= 1")
        self._uow_factory = uow_factory
        self._gateway = gateway
        self._units = units
        self._period_concurrency = period_concurrency
        self._today = today

    async def execute(self, req: IngestCurtailmentRequest) -> IngestionResultDTO:
        """Ingest the requested periods of ``req.settlement_date``."""
        day = parse_settlement_date(
            req.settlement_date, today=self._today() if self._today else None
        )
        set_run_context(settlement_date=day.isoformat())
        periods = sorted({validate_period(p) for p in (req.periods or all_periods())})
        registry = self._units.resolve()

        async with self._uow_factory() as tx:
            owners: UnitOwnershipRepository = tx.get_repository(UnitOwnershipRepository)
            await owners.replace_all(registry.lead_party_of)
            if req.mode is IngestMode.FULL_REINGEST:
                repo: CurtailmentRepository = tx.get_repository(CurtailmentRepository)
                deleted = await repo.delete_for_date(day)
                log.info(
                    "ingest.date_cleared",
                    extra={"extra": {"settlement_date": day.isoformat(), "deleted": deleted}},
                )
            await tx.commit()

        sem = asyncio.Semaphore(self._period_concurrency)
        outcomes = await asyncio.gather(
            *(self._ingest_period(day, p, registry, sem) for p in periods)
        )

        records = [r for o in outcomes for r in o.records]
        failed = [o.period for o in outcomes if not o.ok]
        total_volume, total_payment = totals(records)
        by_party = await self._payment_by_lead_party(records)
        result = IngestionResultDTO(
            settlement_date=day,
            mode=req.mode,
            records=len(records),
            total_volume=total_volume,
            total_payment=total_payment,
            periods_with_data=sum(1 for o in outcomes if o.records),
            failed_periods=failed,
            payment_by_lead_party=by_party,
        )
        log.info(
            "ingest.date_done",
            extra={
                "extra": {
                    "settlement_date": day.isoformat(),
                    "mode": req.mode.value,
                    "records": result.records,
                    "total_volume": str(total_volume),
                    "total_payment": str(total_payment),
                    "periods_with_data": result.periods_with_data,
                    "failed_periods": failed,
                }
            },
        )
        return result

    async def _ingest_period(
        self,
        day: date,
        period: int,
        registry: UnitIdentity,
        sem: asyncio.Semaphore,
    ) -> _PeriodOutcome:
        async with sem:
            try:
                fetched = await self._gateway.fetch(day, period)
                if not fetched.ok:
                    self._count_failure(day, period, fetched.error or "fetch_failed")
                    return _PeriodOutcome(period=period, records=[], ok=False)

                records = build_curtailment_records(
                    day, period, fetched.entries, registry.valid_ids
                )

                async def _replace(tx: UnitOfWork) -> int:
                    repo: CurtailmentRepository = tx.get_repository(CurtailmentRepository)
                    await repo.delete_for_period(day, period)
                    return await repo.upsert_records(records)

                await run_in_uow(self._uow_factory(), _replace)
                if records:
                    get_ingested_records_total().inc(len(records))
                return _PeriodOutcome(period=period, records=records, ok=True)
            except Exception as exc:  # noqa: BLE001
                self._count_failure(day, period, f"{type(exc).__name__}: {exc}")
                return _PeriodOutcome(period=period, records=[], ok=False)

    async def _payment_by_lead_party(
        self, records: Sequence[CurtailmentRecord]
    ) -> dict[str, Decimal]:
        """Total payments per lead party, joined through the ownership table."""
        if not records:
            return {}
        async with self._uow_factory() as tx:
            owners: UnitOwnershipRepository = tx.get_repository(UnitOwnershipRepository)
            party_of = await owners.lead_party_of(sorted({r.unit_id for r in records}))
        by_party: dict[str, Decimal] = {}
        for r in records:
            party = party_of.get(r.unit_id, UNKNOWN_LEAD_PARTY)
            by_party[party] = by_party.get(party, Decimal(0)) + r.payment
        return dict(sorted(by_party.items()))

    @staticmethod
    def _count_failure(day: date, period: int, reason: str) -> None:
        get_ingest_failed_periods_total().inc()
        log.warning(
            "ingest.period_failed",
            extra={
                "extra": {
                    "settlement_date": day.isoformat(),
                    "settlement_period": period,
                    "reason": reason,
                }
            },
        )

