# Copyright (c)
# SPDX-License-Identifier: MIT
"""Derived mining calculations (Domain Entities).

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from windcurtail.domain.entities.base import BaseEntity


@dataclass(frozen=True)
class CalculationRecord(BaseEntity):
    """Bitcoin that one device profile could have mined with one curtailment fact.

    Natural key is ``(settlement_date, settlement_period, unit_id, device_model)``.
    """

    settlement_date: date
    settlement_period: int
    unit_id: str
    device_model: str
    mined_units: float
    difficulty: float
    calculated_at: datetime

    @property
    def key(self) -> tuple[date, int, str, str]:
        """Return the natural key."""
        return (self.settlement_date, self.settlement_period, self.unit_id, self.device_model)
