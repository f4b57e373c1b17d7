# tests/unit/application/use_cases/test_verify_date.py
from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from windcurtail.application.use_cases.reconciliation.verify_date import (
    VerifyDateAgainstUpstream,
)

DAY = date(2025, 3, 5)


def _uc(uow_factory: Any, helpers: Any, gateway: Any) -> VerifyDateAgainstUpstream:
    return VerifyDateAgainstUpstream(
        uow_factory=uow_factory,
        gateway=gateway,
        units=helpers.FakeUnits({"U1": "W"}),
        sample_periods=(1, 24),
    )


@pytest.mark.asyncio
async def test_matching_samples_need_no_reingest(
    store: Any, uow_factory: Any, helpers: Any
) -> None:
    store.facts[(DAY, 1, "U1")] = helpers.fact(DAY, 1, "U1", volume="10", price="50")
    gateway = helpers.FakeGateway({1: [helpers.curtailed("U1", "-10", "50")]})

    report = await _uc(uow_factory, helpers, gateway).execute(DAY)

    assert not report.needs_reingest
    assert [p.settlement_period for p in report.periods] == [1, 24]
    assert report.periods[0].upstream_payment == Decimal("500")


@pytest.mark.asyncio
async def test_volume_drift_beyond_tolerance_flags_reingest(
    store: Any, uow_factory: Any, helpers: Any
) -> None:
    store.facts[(DAY, 1, "U1")] = helpers.fact(DAY, 1, "U1", volume="10", price="50")
    gateway = helpers.FakeGateway({1: [helpers.curtailed("U1", "-10.5", "50")]})

    report = await _uc(uow_factory, helpers, gateway).execute(DAY)

    assert report.needs_reingest
    assert report.periods[0].mismatched
    assert not report.periods[1].mismatched


@pytest.mark.asyncio
async def test_unfetchable_sample_flags_reingest(uow_factory: Any, helpers: Any) -> None:
    gateway = helpers.FakeGateway(failing={24: "TRANSIENT_NETWORK: timeout"})

    report = await _uc(uow_factory, helpers, gateway).execute(DAY)

    assert report.needs_reingest
    assert report.periods[1].fetched is False
