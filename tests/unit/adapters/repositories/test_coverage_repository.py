# tests/unit/adapters/repositories/test_coverage_repository.py
from __future__ import annotations

from datetime import date
from typing import Any, cast

import pytest

from windcurtail.adapters.repositories.coverage_repository import SqlAlchemyCoverageRepository

D1, D2 = date(2025, 3, 1), date(2025, 3, 2)


@pytest.mark.asyncio
async def test_counts_merge_per_date_and_model(session_cls: Any) -> None:
    session = session_cls(
        [
            [(D1, 4), (D2, 1)],
            [(D1, 2)],
            [(D1, "S9", 2)],
        ]
    )
    repo = SqlAlchemyCoverageRepository(session=cast(Any, session))

    rows = await repo.coverage_rows(("S9", "M20S"))

    assert [(r.settlement_date, r.curtailment_records, r.combinations) for r in rows] == [
        (D1, 4, 2),
        (D2, 1, 0),
    ]
    assert rows[0].actual_by_model == {"S9": 2, "M20S": 0}
    assert rows[1].actual_by_model == {"S9": 0, "M20S": 0}


@pytest.mark.asyncio
async def test_combinations_count_distinct_nonzero_period_unit_pairs(session_cls: Any) -> None:
    session = session_cls([[], [], []])

    await SqlAlchemyCoverageRepository(session=cast(Any, session)).coverage_rows(("S9",))

    assert "GROUP BY curtailment_records.settlement_date" in session.sql(0)
    combos = session.sql(1)
    assert "count(DISTINCT" in combos
    assert "curtailment_records.settlement_period, curtailment_records.unit_id" in combos
    assert "curtailment_records.volume !=" in combos


@pytest.mark.asyncio
async def test_calculations_only_count_when_joined_to_a_nonzero_fact(session_cls: Any) -> None:
    session = session_cls([[], [], []])

    await SqlAlchemyCoverageRepository(session=cast(Any, session)).coverage_rows(("S9", "M20S"))

    actual = session.sql(2)
    assert "FROM mining_calculations JOIN curtailment_records ON" in actual
    for col in ("settlement_date", "settlement_period", "unit_id"):
        assert f"curtailment_records.{col} = mining_calculations.{col}" in actual
    assert "curtailment_records.volume !=" in actual
    assert "mining_calculations.device_model IN" in actual
    assert ["S9", "M20S"] in session.compiled(2).params.values()
    assert (
        "GROUP BY mining_calculations.settlement_date, mining_calculations.device_model" in actual
    )
