# Copyright (c)
# SPDX-License-Identifier: MIT
"""Device (miner) profiles.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass

from windcurtail.domain.entities.base import BaseEntity


@dataclass(frozen=True)
class DeviceProfile(BaseEntity):
    """Named hardware configuration used as an energy-equivalence unit.

    Attributes:
        name: Model name, e.g. ``"S19J_PRO"``.
        hashrate_th: Hashrate in TH/s.
        power_w: Power draw in watts.
    """

    name: str
    hashrate_th: float
    power_w: float

    def __post_init__(self) -> None:
        """Reject profiles that would divide by zero or mine nothing."""
        if not self.name:
            raise ValueError("device profile name must be non-empty")
        if self.hashrate_th <= 0 or self.power_w <= 0:
            raise ValueError(f"device profile {self.name!r} needs positive hashrate and power")
