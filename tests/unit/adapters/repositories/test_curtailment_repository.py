# tests/unit/adapters/repositories/test_curtailment_repository.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, cast

import pytest

from windcurtail.adapters.repositories.curtailment_repository import (
    SqlAlchemyCurtailmentRepository,
    SqlAlchemyUnitOwnershipRepository,
)
from windcurtail.domain.entities.curtailment_record import CurtailmentRecord
from windcurtail.infrastructure.database.models.curtailment import CurtailmentRecordModel

DAY = date(2025, 3, 5)


def _record(period: int, unit: str, volume: str, price: str = "50") -> CurtailmentRecord:
    return CurtailmentRecord(
        settlement_date=DAY,
        settlement_period=period,
        unit_id=unit,
        volume=Decimal(volume),
        payment=Decimal(volume) * Decimal(price),
        original_price=Decimal(price),
        final_price=Decimal(price),
        so_flag=True,
        cadl_flag=False,
    )


def _model(period: int, unit: str) -> CurtailmentRecordModel:
    return CurtailmentRecordModel(
        settlement_date=DAY,
        settlement_period=period,
        unit_id=unit,
        volume=Decimal("10"),
        payment=Decimal("500"),
        original_price=Decimal("50"),
        final_price=Decimal("50"),
        so_flag=True,
        cadl_flag=False,
    )


@pytest.mark.asyncio
async def test_upsert_dedupes_batch_and_overwrites_on_conflict(session_cls: Any) -> None:
    session = session_cls()
    repo = SqlAlchemyCurtailmentRepository(session=cast(Any, session))

    written = await repo.upsert_records(
        [_record(7, "U1", "5"), _record(7, "U2", "3"), _record(7, "U1", "7")]
    )

    assert written == 2
    sql = session.sql(0)
    assert sql.startswith("INSERT INTO curtailment_records")
    assert (
        "ON CONFLICT (settlement_date, settlement_period, unit_id) DO UPDATE SET "
        "volume = excluded.volume, payment = excluded.payment" in sql
    )
    values = list(session.compiled(0).params.values())
    assert Decimal("7") in values and Decimal("3") in values
    assert Decimal("5") not in values


@pytest.mark.asyncio
async def test_period_delete_is_scoped_to_date_and_period(session_cls: Any) -> None:
    session = session_cls([4])
    repo = SqlAlchemyCurtailmentRepository(session=cast(Any, session))

    assert await repo.delete_for_period(DAY, 12) == 4
    assert session.sql(0).startswith(
        "DELETE FROM curtailment_records WHERE curtailment_records.settlement_date ="
    )
    assert "curtailment_records.settlement_period =" in session.sql(0)
    assert sorted(map(str, session.compiled(0).params.values())) == ["12", "2025-03-05"]


@pytest.mark.asyncio
async def test_list_and_get_map_rows_to_entities(session_cls: Any) -> None:
    session = session_cls([[_model(1, "U1"), _model(2, "U2")]], get_result=_model(3, "U3"))
    repo = SqlAlchemyCurtailmentRepository(session=cast(Any, session))

    listed = await repo.list_for_date(DAY)
    fetched = await repo.get(DAY, 3, "U3")

    assert [(r.settlement_period, r.unit_id, r.payment) for r in listed] == [
        (1, "U1", Decimal("500")),
        (2, "U2", Decimal("500")),
    ]
    assert "ORDER BY curtailment_records.settlement_period, curtailment_records.unit_id" in (
        session.sql(0)
    )
    assert fetched is not None and fetched.key == (DAY, 3, "U3")
    assert session.gets == [(CurtailmentRecordModel, (DAY, 3, "U3"))]


@pytest.mark.asyncio
async def test_missing_record_is_none(session_cls: Any) -> None:
    repo = SqlAlchemyCurtailmentRepository(session=cast(Any, session_cls()))
    assert await repo.get(DAY, 3, "U3") is None


@pytest.mark.asyncio
async def test_ownership_drops_units_absent_from_mapping(session_cls: Any) -> None:
    session = session_cls([1])
    repo = SqlAlchemyUnitOwnershipRepository(session=cast(Any, session))

    kept = await repo.replace_all({"U1": "Windco", "U2": "Breezy"})

    assert kept == 2
    assert session.sql(0).startswith("DELETE FROM unit_ownership WHERE")
    assert "unit_ownership.unit_id NOT IN" in session.sql(0)
    assert ["U1", "U2"] in session.compiled(0).params.values()
    assert (
        "ON CONFLICT (unit_id) DO UPDATE SET lead_party_name = excluded.lead_party_name"
        in session.sql(1)
    )


@pytest.mark.asyncio
async def test_empty_mapping_clears_ownership(session_cls: Any) -> None:
    session = session_cls([5])
    repo = SqlAlchemyUnitOwnershipRepository(session=cast(Any, session))

    assert await repo.replace_all({}) == 0
    assert len(session.statements) == 1
    assert session.sql(0) == "DELETE FROM unit_ownership"


@pytest.mark.asyncio
async def test_lead_party_lookup(session_cls: Any) -> None:
    session = session_cls([[("U1", "Windco")]])
    repo = SqlAlchemyUnitOwnershipRepository(session=cast(Any, session))

    assert await repo.lead_party_of(["U1", "U9"]) == {"U1": "Windco"}
    assert "unit_ownership.unit_id IN" in session.sql(0)
    assert await repo.lead_party_of([]) == {}
    assert len(session.statements) == 1
