# src/windcurtail/adapters/repositories/curtailment_repository.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""SQLAlchemy repositories for curtailment facts and unit ownership.

Upserts use PostgreSQL ``INSERT ... ON CONFLICT`` on the natural key and
overwrite every non-key column, so re-ingesting a period is idempotent.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from windcurtail.adapters.repositories.base_repository import BaseRepository
from windcurtail.domain.entities.curtailment_record import CurtailmentRecord
from windcurtail.infrastructure.database.models.curtailment import (
    CurtailmentRecordModel,
    UnitOwnershipModel,
)


def _to_entity(row: CurtailmentRecordModel) -> CurtailmentRecord:
    return CurtailmentRecord(
        settlement_date=row.settlement_date,
        settlement_period=row.settlement_period,
        unit_id=row.unit_id,
        volume=row.volume,
        payment=row.payment,
        original_price=row.original_price,
        final_price=row.final_price,
        so_flag=row.so_flag,
        cadl_flag=row.cadl_flag,
    )


class SqlAlchemyCurtailmentRepository(BaseRepository[CurtailmentRecordModel]):
    """Curtailment fact storage."""

    async def upsert_records(self, records: Sequence[CurtailmentRecord]) -> int:
        """Insert or overwrite records keyed by ``(date, period, unit)``.

        Notes:
            The batch is de-duplicated by key (last occurrence wins) to avoid
            PostgreSQL's ``ON CONFLICT DO UPDATE command cannot affect row a
            second time`` error.
        """
        if not records:
            return 0

        dedup: dict[tuple[date, int, str], CurtailmentRecord] = {r.key: r for r in records}
        now = self.utc_now()
        payload = [
            {
                "settlement_date": r.settlement_date,
                "settlement_period": r.settlement_period,
                "unit_id": r.unit_id,
                "volume": r.volume,
                "payment": r.payment,
                "original_price": r.original_price,
                "final_price": r.final_price,
                "so_flag": r.so_flag,
                "cadl_flag": r.cadl_flag,
                "updated_at": now,
            }
            for r in dedup.values()
        ]

        stmt = pg_insert(CurtailmentRecordModel).values(payload)
        stmt = stmt.on_conflict_do_update(
            index_elements=[
                CurtailmentRecordModel.settlement_date,
                CurtailmentRecordModel.settlement_period,
                CurtailmentRecordModel.unit_id,
            ],
            set_={
                "volume": stmt.excluded.volume,
                "payment": stmt.excluded.payment,
                "original_price": stmt.excluded.original_price,
                "final_price": stmt.excluded.final_price,
                "so_flag": stmt.excluded.so_flag,
                "cadl_flag": stmt.excluded.cadl_flag,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._session.execute(stmt)
        return len(payload)

    async def delete_for_date(self, settlement_date: date) -> int:
        """Delete every record of the date."""
        return await self.delete_where(
            delete(CurtailmentRecordModel).where(
                CurtailmentRecordModel.settlement_date == settlement_date
            )
        )

    async def delete_for_period(self, settlement_date: date, settlement_period: int) -> int:
        """Delete every record of one period."""
        return await self.delete_where(
            delete(CurtailmentRecordModel).where(
                CurtailmentRecordModel.settlement_date == settlement_date,
                CurtailmentRecordModel.settlement_period == settlement_period,
            )
        )

    async def list_for_date(self, settlement_date: date) -> list[CurtailmentRecord]:
        """Return the date's records ordered by period then unit."""
        stmt = (
            select(CurtailmentRecordModel)
            .where(CurtailmentRecordModel.settlement_date == settlement_date)
            .order_by(CurtailmentRecordModel.settlement_period, CurtailmentRecordModel.unit_id)
        )
        return [_to_entity(r) for r in await self.fetch_all(stmt)]

    async def get(
        self, settlement_date: date, settlement_period: int, unit_id: str
    ) -> CurtailmentRecord | None:
        """Return one record by natural key."""
        row = await self._session.get(
            CurtailmentRecordModel, (settlement_date, settlement_period, unit_id)
        )
        return _to_entity(row) if row is not None else None


class SqlAlchemyUnitOwnershipRepository(BaseRepository[UnitOwnershipModel]):
    """Unit → lead party lookup table."""

    async def replace_all(self, lead_party_of: Mapping[str, str]) -> int:
        """Make the table mirror ``lead_party_of``.

        Units absent from the mapping are deleted, the rest are upserted.
        """
        stale = delete(UnitOwnershipModel)
        if lead_party_of:
            stale = stale.where(UnitOwnershipModel.unit_id.not_in(list(lead_party_of)))
        await self.delete_where(stale)
        if not lead_party_of:
            return 0
        now = self.utc_now()
        payload = [
            {"unit_id": unit_id, "lead_party_name": party, "updated_at": now}
            for unit_id, party in lead_party_of.items()
        ]
        stmt = pg_insert(UnitOwnershipModel).values(payload)
        stmt = stmt.on_conflict_do_update(
            index_elements=[UnitOwnershipModel.unit_id],
            set_={
                "lead_party_name": stmt.excluded.lead_party_name,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self._session.execute(stmt)
        return len(payload)

    async def lead_party_of(self, unit_ids: Sequence[str]) -> dict[str, str]:
        """Return the lead party of each known unit among ``unit_ids``."""
        if not unit_ids:
            return {}
        stmt = select(UnitOwnershipModel.unit_id, UnitOwnershipModel.lead_party_name).where(
            UnitOwnershipModel.unit_id.in_(list(unit_ids))
        )
        rows = (await self._session.execute(stmt)).all()
        return {unit_id: party for unit_id, party in rows}
