# src/windcurtail/application/use_cases/summaries/rollup_summaries.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: cascade summary recomputation for a date.

Runs daily → monthly → yearly for curtailment totals and then for per-model
mining totals, in a single transaction. Callers run it only after every
write for the date has completed.
"""

from __future__ import annotations

from datetime import date

from windcurtail.application.schemas.dto.pipeline import RollupResultDTO
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.domain.entities.summaries import DailySummary, MonthlySummary, YearlySummary
from windcurtail.domain.enums.pipeline import SummaryGranularity
from windcurtail.domain.interfaces.repositories.summary_repository import SummaryRepository
from windcurtail.domain.services.settlement_calendar import year_month_of, year_of
from windcurtail.infrastructure.logging.logger import get_json_logger

log = get_json_logger(__name__)


class RollupSummaries:
    """Recompute summaries at each granularity."""

    def __init__(self, *, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    async def recompute_daily(self, summary_date: date) -> DailySummary | None:
        """Recompute one daily row in its own transaction."""
        async with self._uow_factory() as tx:
            repo: SummaryRepository = tx.get_repository(SummaryRepository)
            result = await repo.recompute_daily(summary_date)
            await repo.recompute_mining(SummaryGranularity.DAILY, summary_date.isoformat())
            await tx.commit()
        return result

    async def recompute_monthly(self, year_month: str) -> MonthlySummary | None:
        """Recompute one monthly row in its own transaction."""
        async with self._uow_factory() as tx:
            repo: SummaryRepository = tx.get_repository(SummaryRepository)
            result = await repo.recompute_monthly(year_month)
            await repo.recompute_mining(SummaryGranularity.MONTHLY, year_month)
            await tx.commit()
        return result

    async def recompute_yearly(self, year: str) -> YearlySummary | None:
        """Recompute one yearly row in its own transaction."""
        async with self._uow_factory() as tx:
            repo: SummaryRepository = tx.get_repository(SummaryRepository)
            result = await repo.recompute_yearly(year)
            await repo.recompute_mining(SummaryGranularity.YEARLY, year)
            await tx.commit()
        return result

    async def for_date(self, summary_date: date) -> RollupResultDTO:
        """Run the full daily → monthly → yearly cascade for ``summary_date``."""
        ym = year_month_of(summary_date)
        yr = year_of(summary_date)
        async with self._uow_factory() as tx:
            repo: SummaryRepository = tx.get_repository(SummaryRepository)
            daily = await repo.recompute_daily(summary_date)
            monthly = await repo.recompute_monthly(ym)
            yearly = await repo.recompute_yearly(yr)
            mining = await repo.recompute_mining(
                SummaryGranularity.DAILY, summary_date.isoformat()
            )
            await repo.recompute_mining(SummaryGranularity.MONTHLY, ym)
            await repo.recompute_mining(SummaryGranularity.YEARLY, yr)
            await tx.commit()

        result = RollupResultDTO(
            summary_date=summary_date,
            year_month=ym,
            year=yr,
            daily_present=daily is not None,
            monthly_present=monthly is not None,
            yearly_present=yearly is not None,
            mining_models=sorted(m.device_model for m in mining),
        )
        log.info(
            "rollup.done",
            extra={
                "extra": {
                    "summary_date": summary_date.isoformat(),
                    "daily_energy": str(daily.total_energy_mwh) if daily else None,
                    "monthly_present": result.monthly_present,
                    "yearly_present": result.yearly_present,
                }
            },
        )
        return result
