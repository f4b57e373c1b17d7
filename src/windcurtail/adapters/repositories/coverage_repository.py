# src/windcurtail/adapters/repositories/coverage_repository.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""SQLAlchemy read model for reconciliation coverage.

Three grouped queries (records per date, nonzero combinations per date,
matching calculation rows per date and model) are merged in Python. A
calculation row only counts when its ``(date, period, unit)`` has a nonzero
curtailment fact.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from sqlalchemy import and_, distinct, func, select, tuple_

from windcurtail.adapters.repositories.base_repository import BaseRepository
from windcurtail.domain.interfaces.repositories.coverage_repository import DateCoverageRow
from windcurtail.infrastructure.database.models.curtailment import CurtailmentRecordModel
from windcurtail.infrastructure.database.models.mining import MiningCalculationModel


class SqlAlchemyCoverageRepository(BaseRepository[CurtailmentRecordModel]):
    """Coverage counts for every date with curtailment facts."""

    async def coverage_rows(self, models: Sequence[str]) -> list[DateCoverageRow]:
        """Return per-date records, combinations and per-model actual counts."""
        cr = CurtailmentRecordModel
        mc = MiningCalculationModel

        records_stmt = select(cr.settlement_date, func.count()).group_by(cr.settlement_date)
        combos_stmt = (
            select(
                cr.settlement_date,
                func.count(distinct(tuple_(cr.settlement_period, cr.unit_id))),
            )
            .where(cr.volume != 0)
            .group_by(cr.settlement_date)
        )
        actual_stmt = (
            select(mc.settlement_date, mc.device_model, func.count())
            .join(
                cr,
                and_(
                    cr.settlement_date == mc.settlement_date,
                    cr.settlement_period == mc.settlement_period,
                    cr.unit_id == mc.unit_id,
                ),
            )
            .where(cr.volume != 0, mc.device_model.in_(list(models)))
            .group_by(mc.settlement_date, mc.device_model)
        )

        records = dict((await self._session.execute(records_stmt)).all())
        combos = dict((await self._session.execute(combos_stmt)).all())
        by_date: dict[date, dict[str, int]] = {d: {m: 0 for m in models} for d in records}
        for day, model, count in (await self._session.execute(actual_stmt)).all():
            by_date.setdefault(day, {m: 0 for m in models})[model] = int(count)

        return [
            DateCoverageRow(
                settlement_date=day,
                curtailment_records=int(records[day]),
                combinations=int(combos.get(day, 0)),
                actual_by_model=by_date[day],
            )
            for day in sorted(records)
        ]
