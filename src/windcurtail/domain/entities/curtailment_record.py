# Copyright (c)
# SPDX-License-Identifier: MIT
"""Curtailment facts (Domain Entities).

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from windcurtail.domain.entities.base import BaseEntity
from windcurtail.domain.services.settlement_calendar import validate_period


@dataclass(frozen=True)
class CurtailmentRecord(BaseEntity):
    """One unit's curtailment in one settlement period.

    Natural key is ``(settlement_date, settlement_period, unit_id)``.

    Attributes:
        settlement_date: Settlement day.
        settlement_period: Period 1..48.
        unit_id: BM unit identifier.
        volume: Curtailed energy in MWh, stored as an absolute value.
        payment: ``volume * original_price`` (see ``compute_payment``).
        original_price: Volume-weighted submitted price.
        final_price: Volume-weighted final price.
        so_flag: True when any merged acceptance carried the SO flag.
        cadl_flag: True when any merged acceptance carried the CADL flag.
    """

    settlement_date: date
    settlement_period: int
    unit_id: str
    volume: Decimal
    payment: Decimal
    original_price: Decimal
    final_price: Decimal
    so_flag: bool
    cadl_flag: bool

    def __post_init__(self) -> None:
        """Enforce key and sign invariants."""
        validate_period(self.settlement_period)
        if not self.unit_id:
            raise ValueError("unit_id must be non-empty")
        if self.volume < 0:
            raise ValueError("volume is stored as an absolute value")

    @property
    def key(self) -> tuple[date, int, str]:
        """Return the natural key."""
        return (self.settlement_date, self.settlement_period, self.unit_id)
