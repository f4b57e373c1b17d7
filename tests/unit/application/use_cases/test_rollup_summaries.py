# tests/unit/application/use_cases/test_rollup_summaries.py
from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

import pytest

from windcurtail.application.use_cases.summaries.rollup_summaries import RollupSummaries
from windcurtail.domain.entities.calculation_record import CalculationRecord
from windcurtail.domain.enums.pipeline import SummaryGranularity


def _calc(day: date, period: int, model: str, mined: float) -> CalculationRecord:
    return CalculationRecord(
        settlement_date=day,
        settlement_period=period,
        unit_id="U1",
        device_model=model,
        mined_units=mined,
        difficulty=1e12,
        calculated_at=datetime(2025, 1, 1, tzinfo=UTC),
    )


@pytest.mark.asyncio
async def test_cascade_keeps_levels_consistent(store: Any, uow_factory: Any, helpers: Any) -> None:
    d1, d2 = date(2025, 3, 5), date(2025, 3, 6)
    store.facts[(d1, 1, "U1")] = helpers.fact(d1, 1, "U1", volume="10", price="50")
    store.facts[(d2, 1, "U1")] = helpers.fact(d2, 1, "U1", volume="5", price="-20")
    store.calcs[(d1, 1, "U1", "S9")] = _calc(d1, 1, "S9", 0.5)
    store.calcs[(d2, 1, "U1", "S9")] = _calc(d2, 1, "S9", 0.25)
    rollup = RollupSummaries(uow_factory=uow_factory)

    await rollup.for_date(d1)
    result = await rollup.for_date(d2)

    assert result.daily_present and result.monthly_present and result.yearly_present
    assert result.mining_models == ["S9"]
    assert store.daily[d2].total_payment == Decimal("100")
    monthly = store.monthly["2025-03"]
    assert monthly.total_energy_mwh == Decimal("15")
    assert monthly.total_payment == Decimal("600")
    assert store.yearly["2025"].total_energy_mwh == monthly.total_energy_mwh
    assert store.mining[(SummaryGranularity.MONTHLY, "2025-03", "S9")] == Decimal("0.75")
    assert store.mining[(SummaryGranularity.YEARLY, "2025", "S9")] == Decimal("0.75")


@pytest.mark.asyncio
async def test_date_without_facts_removes_stale_summaries(
    store: Any, uow_factory: Any, helpers: Any
) -> None:
    day = date(2025, 4, 1)
    store.facts[(day, 1, "U1")] = helpers.fact(day, 1, "U1")
    rollup = RollupSummaries(uow_factory=uow_factory)
    await rollup.for_date(day)
    del store.facts[(day, 1, "U1")]

    result = await rollup.for_date(day)

    assert not result.daily_present
    assert day not in store.daily
    assert "2025-04" not in store.monthly


@pytest.mark.asyncio
async def test_single_level_recompute(store: Any, uow_factory: Any, helpers: Any) -> None:
    day = date(2025, 5, 1)
    store.facts[(day, 1, "U1")] = helpers.fact(day, 1, "U1", volume="2", price="10")
    rollup = RollupSummaries(uow_factory=uow_factory)

    daily = await rollup.recompute_daily(day)
    monthly = await rollup.recompute_monthly("2025-05")
    yearly = await rollup.recompute_yearly("2025")

    assert daily is not None and daily.total_payment == Decimal("20")
    assert monthly is not None and monthly.total_energy_mwh == Decimal("2")
    assert yearly is not None and yearly.total_payment == Decimal("20")
