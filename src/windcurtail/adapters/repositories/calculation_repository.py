# src/windcurtail/adapters/repositories/calculation_repository.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""SQLAlchemy repository for mining calculation rows."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal

from sqlalchemy import and_, delete, not_, select, tuple_
from sqlalchemy.dialects.postgresql import insert as pg_insert

from windcurtail.adapters.repositories.base_repository import BaseRepository
from windcurtail.domain.entities.calculation_record import CalculationRecord
from windcurtail.infrastructure.database.models.mining import MiningCalculationModel


class SqlAlchemyCalculationRepository(BaseRepository[MiningCalculationModel]):
    """Calculation storage keyed by ``(date, period, unit, model)``."""

    async def upsert_calculations(self, rows: Sequence[CalculationRecord]) -> int:
        """Insert or overwrite calculation rows."""
        if not rows:
            return 0
        dedup = {r.key: r for r in rows}
        payload = [
            {
                "settlement_date": r.settlement_date,
                "settlement_period": r.settlement_period,
                "unit_id": r.unit_id,
                "device_model": r.device_model,
                "mined_units": Decimal(str(r.mined_units)),
                "difficulty": Decimal(str(r.difficulty)),
                "calculated_at": r.calculated_at,
            }
            for r in dedup.values()
        ]
        stmt = pg_insert(MiningCalculationModel).values(payload)
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                MiningCalculationModel.settlement_date,
                MiningCalculationModel.settlement_period,
                MiningCalculationModel.unit_id,
                MiningCalculationModel.device_model,
            ],
            set_={
                "mined_units": stmt.excluded.mined_units,
                "difficulty": stmt.excluded.difficulty,
                "calculated_at": stmt.excluded.calculated_at,
            },
        )
        await self._session.execute(stmt)
        return len(payload)

    async def list_triples(self, settlement_date: date) -> set[tuple[int, str, str]]:
        """Return the distinct ``(period, unit, model)`` keys of the date."""
        stmt = select(
            MiningCalculationModel.settlement_period,
            MiningCalculationModel.unit_id,
            MiningCalculationModel.device_model,
        ).where(MiningCalculationModel.settlement_date == settlement_date)
        return {(p, u, m) for p, u, m in (await self._session.execute(stmt)).all()}

    async def delete_orphans(self, settlement_date: date, keep: set[tuple[int, str]]) -> int:
        """Delete rows of the date whose ``(period, unit)`` is not in ``keep``."""
        stmt = delete(MiningCalculationModel).where(
            MiningCalculationModel.settlement_date == settlement_date
        )
        if keep:
            stmt = stmt.where(
                not_(
                    tuple_(
                        MiningCalculationModel.settlement_period, MiningCalculationModel.unit_id
                    ).in_(sorted(keep))
                )
            )
        return await self.delete_where(stmt)

    async def delete_combination(
        self, settlement_date: date, settlement_period: int, unit_id: str
    ) -> int:
        """Delete every model's row for one combination."""
        return await self.delete_where(
            delete(MiningCalculationModel).where(
                and_(
                    MiningCalculationModel.settlement_date == settlement_date,
                    MiningCalculationModel.settlement_period == settlement_period,
                    MiningCalculationModel.unit_id == unit_id,
                )
            )
        )
