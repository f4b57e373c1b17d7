# Copyright (c)
# SPDX-License-Identifier: MIT
"""Settlement stack entries (Domain Entities).

Synopsis:
    Immutable view of one row of the upstream bid/offer settlement stack for a
    single (date, period). Only the fields ingestion consumes are modelled.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from windcurtail.domain.entities.base import BaseEntity
from windcurtail.domain.enums.pipeline import StackSide


@dataclass(frozen=True)
class SettlementStackEntry(BaseEntity):
    """A single bid or offer acceptance for a unit.

    Attributes:
        unit_id: BM unit identifier (e.g. ``"T_WHILW-1"``).
        volume: Signed volume in MWh. Negative means the unit was turned down.
        so_flag: System-operator flag.
        cadl_flag: Continuous acceptance duration limit flag.
        original_price: Submitted price in GBP/MWh.
        final_price: Price after tagging in GBP/MWh.
        side: Which stack the row came from.
    """

    unit_id: str
    volume: Decimal
    so_flag: bool
    cadl_flag: bool
    original_price: Decimal
    final_price: Decimal
    side: StackSide = StackSide.BID


@dataclass(frozen=True)
class FetchResult(BaseEntity):
    """Outcome of fetching one settlement period.

    ``ok`` is False when the period could not be fetched after the retry
    budget was spent; ``entries`` is then empty and ``error`` names the
    failure. Callers treat the period as failed without aborting siblings.
    """

    settlement_date: date
    settlement_period: int
    entries: tuple[SettlementStackEntry, ...] = field(default_factory=tuple)
    ok: bool = True
    error: str | None = None
