# tests/unit/adapters/repositories/test_summary_repository.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, cast

import pytest

from windcurtail.adapters.repositories.summary_repository import (
    SqlAlchemySummaryRepository,
    month_bounds,
)
from windcurtail.domain.enums.pipeline import SummaryGranularity

DAY = date(2025, 3, 5)


def _repo(session: Any) -> SqlAlchemySummaryRepository:
    return SqlAlchemySummaryRepository(session=cast(Any, session))


@pytest.mark.asyncio
async def test_daily_stores_absolute_payment_and_upserts(session_cls: Any) -> None:
    session = session_cls([[(2, Decimal("12"), Decimal("-600"))]])

    summary = await _repo(session).recompute_daily(DAY)

    assert summary is not None
    assert summary.total_energy_mwh == Decimal("12")
    assert summary.total_payment == Decimal("600")
    assert "FROM curtailment_records WHERE curtailment_records.settlement_date =" in session.sql(0)
    assert session.sql(1).startswith("INSERT INTO daily_summaries")
    assert (
        "ON CONFLICT (summary_date) DO UPDATE SET "
        "total_curtailed_energy = excluded.total_curtailed_energy" in session.sql(1)
    )
    params = session.compiled(1).params
    assert params["total_payment"] == Decimal("600")
    assert params["summary_date"] == DAY


@pytest.mark.asyncio
async def test_daily_without_facts_deletes_the_row(session_cls: Any) -> None:
    session = session_cls([[(0, None, None)], 1])

    assert await _repo(session).recompute_daily(DAY) is None
    assert len(session.statements) == 2
    assert session.sql(1).startswith(
        "DELETE FROM daily_summaries WHERE daily_summaries.summary_date ="
    )


@pytest.mark.asyncio
async def test_monthly_sums_daily_rows_within_month_bounds(session_cls: Any) -> None:
    session = session_cls([[(3, Decimal("30"), Decimal("900"))]])

    summary = await _repo(session).recompute_monthly("2025-12")

    assert summary is not None and summary.total_payment == Decimal("900")
    sql = session.sql(0)
    assert "sum(daily_summaries.total_payment)" in sql
    assert "daily_summaries.summary_date >=" in sql and "daily_summaries.summary_date <" in sql
    assert set(session.compiled(0).params.values()) == {date(2025, 12, 1), date(2026, 1, 1)}
    assert "ON CONFLICT (year_month) DO UPDATE" in session.sql(1)


@pytest.mark.asyncio
async def test_yearly_without_months_deletes_the_row(session_cls: Any) -> None:
    session = session_cls([[(0, None, None)], 1])

    assert await _repo(session).recompute_yearly("2025") is None
    assert "monthly_summaries.year_month LIKE" in session.sql(0)
    assert "2025-%" in session.compiled(0).params.values()
    assert session.sql(1).startswith("DELETE FROM yearly_summaries")


@pytest.mark.asyncio
async def test_daily_mining_totals_replace_previous_rows(session_cls: Any) -> None:
    session = session_cls([[("S9", Decimal("0.5")), ("M20S", Decimal("0.25"))], 2])

    rows = await _repo(session).recompute_mining(SummaryGranularity.DAILY, DAY.isoformat())

    assert [(r.device_model, r.mined_units) for r in rows] == [
        ("M20S", Decimal("0.25")),
        ("S9", Decimal("0.5")),
    ]
    assert "GROUP BY mining_calculations.device_model" in session.sql(0)
    assert session.sql(1).startswith("DELETE FROM mining_daily_summaries")
    assert session.sql(2).startswith("INSERT INTO mining_daily_summaries")
    assert "ON CONFLICT" not in session.sql(2)


@pytest.mark.asyncio
async def test_monthly_mining_without_inputs_only_deletes(session_cls: Any) -> None:
    session = session_cls([[], 3])

    rows = await _repo(session).recompute_mining(SummaryGranularity.MONTHLY, "2025-03")

    assert rows == []
    assert len(session.statements) == 2
    assert "FROM mining_daily_summaries" in session.sql(0)
    assert session.sql(1).startswith("DELETE FROM mining_monthly_summaries")


@pytest.mark.asyncio
async def test_yearly_mining_rolls_up_monthly_rows(session_cls: Any) -> None:
    session = session_cls([[("S9", Decimal("4"))], 0])

    rows = await _repo(session).recompute_mining(SummaryGranularity.YEARLY, "2025")

    assert [r.period_key for r in rows] == ["2025"]
    assert "mining_monthly_summaries.year_month LIKE" in session.sql(0)
    assert session.sql(2).startswith("INSERT INTO mining_yearly_summaries")


def test_month_bounds_roll_over_december() -> None:
    assert month_bounds("2025-12") == (date(2025, 12, 1), date(2026, 1, 1))
    assert month_bounds("2024-02") == (date(2024, 2, 1), date(2024, 3, 1))
