# Copyright (c)
# SPDX-License-Identifier: MIT
"""Mining-equivalence calculator (Domain Service).

Converts curtailed energy into the bitcoin a fleet of one device model could
have mined with it during a settlement period. Pure and deterministic: the
same volume, profile, difficulty and reward always produce the same value.
"""

from __future__ import annotations

import math
from decimal import Decimal

from windcurtail.domain.entities.device_profile import DeviceProfile
from windcurtail.domain.exceptions.pipeline import ConfigurationError
from windcurtail.domain.services.settlement_calendar import SETTLEMENT_PERIOD_MINUTES

DEFAULT_BLOCK_REWARD = 3.125
DEFAULT_DIFFICULTY = 108105433845147
BLOCK_TIME_SECONDS = 600
BLOCKS_PER_PERIOD = SETTLEMENT_PERIOD_MINUTES * 60 / BLOCK_TIME_SECONDS
MINED_UNITS_DP = 8


def network_hashrate_th(difficulty: float) -> float:
    """Return the implied network hashrate in TH/s for ``difficulty``."""
    return difficulty * 2**32 / BLOCK_TIME_SECONDS / 1e12


def devices_supportable(volume_mwh: float | Decimal, profile: DeviceProfile) -> int:
    """Return how many devices the curtailed energy could run for one period."""
    energy_wh = abs(float(volume_mwh)) * 1_000_000
    device_energy_wh = profile.power_w * (SETTLEMENT_PERIOD_MINUTES / 60)
    return math.floor(energy_wh / device_energy_wh)


def compute_mined_units(
    volume_mwh: float | Decimal,
    profile: DeviceProfile,
    difficulty: float,
    block_reward: float = DEFAULT_BLOCK_REWARD,
) -> float:
    """Return the bitcoin mined by ``profile`` with ``volume_mwh`` of energy.

    Args:
        volume_mwh: Curtailed volume (sign ignored).
        profile: Device profile.
        difficulty: Network difficulty in effect for the date.
        block_reward: Block subsidy in BTC.

    Returns:
        Mined units rounded to 8 decimal places.

    Raises:
        ConfigurationError: If difficulty or block reward is not positive.
    """
    if difficulty is None or difficulty <= 0:
        raise ConfigurationError(
            "difficulty must be positive", details={"difficulty": difficulty}
        )
    if block_reward <= 0:
        raise ConfigurationError(
            "block reward must be positive", details={"block_reward": block_reward}
        )
    total_hashrate_th = devices_supportable(volume_mwh, profile) * profile.hashrate_th
    share = total_hashrate_th / network_hashrate_th(float(difficulty))
    return round(share * block_reward * BLOCKS_PER_PERIOD, MINED_UNITS_DP)
