# tests/unit/application/use_cases/test_spot_fix.py
from __future__ import annotations

from datetime import date
from typing import Any

import pytest

from windcurtail.application.use_cases.calculations.compute_calculations_for_date import (
    ComputeCalculationsForDate,
)
from windcurtail.application.use_cases.reconciliation.spot_fix import SpotFixCombination
from windcurtail.application.use_cases.summaries.rollup_summaries import RollupSummaries
from windcurtail.domain.services.device_registry import DeviceRegistry

DAY = date(2025, 3, 5)


def _uc(uow_factory: Any, helpers: Any) -> SpotFixCombination:
    calculate = ComputeCalculationsForDate(
        uow_factory=uow_factory, difficulty=helpers.FixedDifficulty(), devices=DeviceRegistry()
    )
    return SpotFixCombination(
        uow_factory=uow_factory,
        calculate=calculate,
        rollup=RollupSummaries(uow_factory=uow_factory),
    )


@pytest.mark.asyncio
async def test_recomputes_combination_for_every_profile(
    store: Any, uow_factory: Any, helpers: Any
) -> None:
    store.facts[(DAY, 7, "U1")] = helpers.fact(DAY, 7, "U1")

    result = await _uc(uow_factory, helpers).execute(DAY, 7, "U1")

    assert result.curtailment_present
    assert result.rows_written == 3
    assert {k[3] for k in store.calcs} == {"S19J_PRO", "S9", "M20S"}
    assert DAY in store.daily


@pytest.mark.asyncio
async def test_combination_without_fact_loses_its_rows(
    store: Any, uow_factory: Any, helpers: Any
) -> None:
    store.facts[(DAY, 7, "U1")] = helpers.fact(DAY, 7, "U1")
    uc = _uc(uow_factory, helpers)
    await uc.execute(DAY, 7, "U1")
    del store.facts[(DAY, 7, "U1")]

    result = await uc.execute(DAY, 7, "U1")

    assert not result.curtailment_present
    assert result.rows_deleted == 3
    assert store.calcs == {}


@pytest.mark.asyncio
async def test_invalid_period_rejected(uow_factory: Any, helpers: Any) -> None:
    with pytest.raises(ValueError):
        await _uc(uow_factory, helpers).execute(DAY, 49, "U1")
