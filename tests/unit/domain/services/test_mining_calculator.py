# tests/unit/domain/services/test_mining_calculator.py
from __future__ import annotations

from decimal import Decimal

import pytest

from windcurtail.domain.entities.device_profile import DeviceProfile
from windcurtail.domain.exceptions.pipeline import ConfigurationError
from windcurtail.domain.services.mining_calculator import (
    DEFAULT_DIFFICULTY,
    compute_mined_units,
    devices_supportable,
    network_hashrate_th,
)

# One device uses exactly 1000 Wh per 30-minute period.
UNIT_PROFILE = DeviceProfile(name="X", hashrate_th=1.0, power_w=2000.0)
# Difficulty implying a network hashrate of 1e6 TH/s.
MILLION_TH_DIFFICULTY = 600 * 1e18 / 2**32


def test_devices_supportable_ignores_sign() -> None:
    assert devices_supportable(Decimal("-1"), UNIT_PROFILE) == 1000
    assert devices_supportable(1.0, UNIT_PROFILE) == 1000


def test_network_hashrate_matches_difficulty() -> None:
    assert network_hashrate_th(MILLION_TH_DIFFICULTY) == pytest.approx(1e6)


def test_mined_units_hand_computed() -> None:
    # 1000 TH of 1e6 TH network, 3 blocks of 3.125 BTC.
    value = compute_mined_units(Decimal("1"), UNIT_PROFILE, MILLION_TH_DIFFICULTY, 3.125)
    assert value == pytest.approx(0.009375)


def test_mined_units_are_deterministic_and_rounded() -> None:
    profile = DeviceProfile(name="S19J_PRO", hashrate_th=100.0, power_w=3050.0)
    first = compute_mined_units(Decimal("10"), profile, float(DEFAULT_DIFFICULTY))
    second = compute_mined_units(Decimal("10"), profile, float(DEFAULT_DIFFICULTY))

    assert first == second
    assert first > 0
    assert round(first, 8) == first


def test_too_little_energy_mines_nothing() -> None:
    assert compute_mined_units(Decimal("0.0001"), UNIT_PROFILE, MILLION_TH_DIFFICULTY) == 0.0


@pytest.mark.parametrize("difficulty", [0.0, -5.0])
def test_non_positive_difficulty_is_configuration_error(difficulty: float) -> None:
    with pytest.raises(ConfigurationError):
        compute_mined_units(Decimal("1"), UNIT_PROFILE, difficulty)


def test_non_positive_block_reward_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        compute_mined_units(Decimal("1"), UNIT_PROFILE, MILLION_TH_DIFFICULTY, 0.0)
