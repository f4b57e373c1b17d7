# src/windcurtail/application/use_cases/reconciliation/verify_date.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: sample a date against the upstream API to detect drift.

A handful of periods are re-fetched and run through the same filter and
payment rules as ingestion; their totals are compared with the stored rows.
Any difference above the tolerance, or a sample period that cannot be
fetched, means the date should be fully re-ingested.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from windcurtail.application.schemas.dto.pipeline import DriftReportDTO, PeriodDriftDTO
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.domain.interfaces.gateways.settlement_gateway import (
    SettlementGateway,
    UnitResolver,
)
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
)
from windcurtail.domain.services.curtailment_rules import build_curtailment_records, totals
from windcurtail.domain.services.settlement_calendar import validate_period
from windcurtail.infrastructure.logging.logger import get_json_logger

log = get_json_logger(__name__)

DEFAULT_SAMPLE_PERIODS: tuple[int, ...] = (1, 12, 24, 36, 48)
DEFAULT_TOLERANCE = Decimal("0.01")


class VerifyDateAgainstUpstream:
    """Compare sampled upstream totals against stored curtailment rows."""

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        gateway: SettlementGateway,
        units: UnitResolver,
        sample_periods: Sequence[int] = DEFAULT_SAMPLE_PERIODS,
        tolerance: Decimal = DEFAULT_TOLERANCE,
    ) -> None:
        self._uow_factory = uow_factory
        self._gateway = gateway
        self._units = units
        self._sample_periods = tuple(validate_period(p) for p in sample_periods)
        self._tolerance = tolerance

    async def execute(self, settlement_date: date) -> DriftReportDTO:
        """Return the drift report for ``settlement_date``."""
        valid_ids = self._units.resolve().valid_ids
        async with self._uow_factory() as tx:
            repo: CurtailmentRepository = tx.get_repository(CurtailmentRepository)
            stored = await repo.list_for_date(settlement_date)

        periods: list[PeriodDriftDTO] = []
        for period in self._sample_periods:
            stored_volume, stored_payment = totals(
                r for r in stored if r.settlement_period == period
            )
            fetched = await self._gateway.fetch(settlement_date, period)
            if not fetched.ok:
                periods.append(
                    PeriodDriftDTO(
                        settlement_period=period,
                        upstream_volume=Decimal(0),
                        stored_volume=stored_volume,
                        upstream_payment=Decimal(0),
                        stored_payment=stored_payment,
                        fetched=False,
                        mismatched=True,
                    )
                )
                continue

            upstream_volume, upstream_payment = totals(
                build_curtailment_records(settlement_date, period, fetched.entries, valid_ids)
            )
            mismatched = (
                abs(upstream_volume - stored_volume) > self._tolerance
                or abs(upstream_payment - stored_payment) > self._tolerance
            )
            periods.append(
                PeriodDriftDTO(
                    settlement_period=period,
                    upstream_volume=upstream_volume,
                    stored_volume=stored_volume,
                    upstream_payment=upstream_payment,
                    stored_payment=stored_payment,
                    fetched=True,
                    mismatched=mismatched,
                )
            )

        report = DriftReportDTO(
            settlement_date=settlement_date,
            tolerance=self._tolerance,
            periods=periods,
            needs_reingest=any(p.mismatched for p in periods),
        )
        log.info(
            "verify.done",
            extra={
                "extra": {
                    "settlement_date": settlement_date.isoformat(),
                    "needs_reingest": report.needs_reingest,
                    "mismatched_periods": [p.settlement_period for p in periods if p.mismatched],
                }
            },
        )
        return report
