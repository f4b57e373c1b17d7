# src/windcurtail/adapters/repositories/summary_repository.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""SQLAlchemy repository for rolled-up summaries.

Each ``recompute_*`` aggregates the next-finer level inside the caller's
transaction:

* daily   ← ``curtailment_records`` of the date
* monthly ← ``daily_summaries`` of the month
* yearly  ← ``monthly_summaries`` of the year

When the finer level has no rows the summary row is deleted, so a summary
never outlives its inputs. Payment totals are stored as ``abs(sum(payment))``.
Mining summaries follow the same cascade per device model, starting from
``mining_calculations``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from windcurtail.adapters.repositories.base_repository import BaseRepository
from windcurtail.domain.entities.summaries import (
    DailySummary,
    MiningSummary,
    MonthlySummary,
    YearlySummary,
)
from windcurtail.domain.enums.pipeline import SummaryGranularity
from windcurtail.infrastructure.database.models.curtailment import CurtailmentRecordModel
from windcurtail.infrastructure.database.models.mining import MiningCalculationModel
from windcurtail.infrastructure.database.models.summaries import (
    DailySummaryModel,
    MiningDailySummaryModel,
    MiningMonthlySummaryModel,
    MiningYearlySummaryModel,
    MonthlySummaryModel,
    YearlySummaryModel,
)


def month_bounds(year_month: str) -> tuple[date, date]:
    """Return ``[first day, first day of next month)`` for ``YYYY-MM``.

    Raises:
        ValueError: If ``year_month`` is not ``YYYY-MM``.
    """
    year_s, _, month_s = year_month.partition("-")
    start = date(int(year_s), int(month_s), 1)
    end = date(start.year + 1, 1, 1) if start.month == 12 else date(start.year, start.month + 1, 1)
    return start, end


class SqlAlchemySummaryRepository(BaseRepository[DailySummaryModel]):
    """Summary recomputation at daily, monthly and yearly granularity."""

    async def recompute_daily(self, summary_date: date) -> DailySummary | None:
        """Rebuild the daily row from the date's curtailment facts."""
        cr = CurtailmentRecordModel
        stmt = select(func.count(), func.sum(cr.volume), func.sum(cr.payment)).where(
            cr.settlement_date == summary_date
        )
        count, energy, payment = (await self._session.execute(stmt)).one()
        if not count:
            await self.delete_where(
                delete(DailySummaryModel).where(DailySummaryModel.summary_date == summary_date)
            )
            return None
        summary = DailySummary(
            summary_date=summary_date,
            total_energy_mwh=Decimal(energy or 0),
            total_payment=abs(Decimal(payment or 0)),
        )
        await self._upsert(
            DailySummaryModel,
            {"summary_date": summary_date},
            summary.total_energy_mwh,
            summary.total_payment,
        )
        return summary

    async def recompute_monthly(self, year_month: str) -> MonthlySummary | None:
        """Rebuild the monthly row from the month's daily rows."""
        start, end = month_bounds(year_month)
        ds = DailySummaryModel
        stmt = select(
            func.count(), func.sum(ds.total_curtailed_energy), func.sum(ds.total_payment)
        ).where(ds.summary_date >= start, ds.summary_date < end)
        count, energy, payment = (await self._session.execute(stmt)).one()
        if not count:
            await self.delete_where(
                delete(MonthlySummaryModel).where(MonthlySummaryModel.year_month == year_month)
            )
            return None
        summary = MonthlySummary(
            year_month=year_month,
            total_energy_mwh=Decimal(energy or 0),
            total_payment=abs(Decimal(payment or 0)),
        )
        await self._upsert(
            MonthlySummaryModel,
            {"year_month": year_month},
            summary.total_energy_mwh,
            summary.total_payment,
        )
        return summary

    async def recompute_yearly(self, year: str) -> YearlySummary | None:
        """Rebuild the yearly row from the year's monthly rows."""
        ms = MonthlySummaryModel
        stmt = select(
            func.count(), func.sum(ms.total_curtailed_energy), func.sum(ms.total_payment)
        ).where(ms.year_month.like(f"{year}-%"))
        count, energy, payment = (await self._session.execute(stmt)).one()
        if not count:
            await self.delete_where(
                delete(YearlySummaryModel).where(YearlySummaryModel.year == year)
            )
            return None
        summary = YearlySummary(
            year=year,
            total_energy_mwh=Decimal(energy or 0),
            total_payment=abs(Decimal(payment or 0)),
        )
        await self._upsert(
            YearlySummaryModel,
            {"year": year},
            summary.total_energy_mwh,
            summary.total_payment,
        )
        return summary

    async def recompute_mining(
        self, granularity: SummaryGranularity, period_key: str
    ) -> list[MiningSummary]:
        """Replace the per-model mined totals of one summary key."""
        if granularity is SummaryGranularity.DAILY:
            day = date.fromisoformat(period_key)
            target: Any = MiningDailySummaryModel
            key_col, key_value = MiningDailySummaryModel.summary_date, day
            src = MiningCalculationModel
            stmt = (
                select(src.device_model, func.sum(src.mined_units))
                .where(src.settlement_date == day)
                .group_by(src.device_model)
            )
        elif granularity is SummaryGranularity.MONTHLY:
            start, end = month_bounds(period_key)
            target = MiningMonthlySummaryModel
            key_col, key_value = MiningMonthlySummaryModel.year_month, period_key
            dsrc = MiningDailySummaryModel
            stmt = (
                select(dsrc.device_model, func.sum(dsrc.mined_units))
                .where(dsrc.summary_date >= start, dsrc.summary_date < end)
                .group_by(dsrc.device_model)
            )
        else:
            target = MiningYearlySummaryModel
            key_col, key_value = MiningYearlySummaryModel.year, period_key
            msrc = MiningMonthlySummaryModel
            stmt = (
                select(msrc.device_model, func.sum(msrc.mined_units))
                .where(msrc.year_month.like(f"{period_key}-%"))
                .group_by(msrc.device_model)
            )

        totals = [(m, Decimal(v or 0)) for m, v in (await self._session.execute(stmt)).all()]
        await self.delete_where(delete(target).where(key_col == key_value))
        if not totals:
            return []

        now = self.utc_now()
        await self._session.execute(
            pg_insert(target).values(
                [
                    {key_col.key: key_value, "device_model": m, "mined_units": v, "updated_at": now}
                    for m, v in totals
                ]
            )
        )
        return [
            MiningSummary(
                granularity=granularity,
                period_key=period_key,
                device_model=m,
                mined_units=v,
            )
            for m, v in sorted(totals)
        ]

    async def _upsert(
        self, model: Any, key: dict[str, Any], energy: Decimal, payment: Decimal
    ) -> None:
        stmt = pg_insert(model).values(
            {
                **key,
                "total_curtailed_energy": energy,
                "total_payment": payment,
                "updated_at": self.utc_now(),
            }
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(key),
            set_={
                "total_curtailed_energy": stmt.excluded.total_curtailed_energy,
                "total_payment": stmt.excluded.total_payment,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._session.execute(stmt)
