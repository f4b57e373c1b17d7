# Copyright (c)
# SPDX-License-Identifier: MIT
"""Rolled-up summaries (Domain Entities).

Summaries are pure aggregations. They are never mutated independently of
their child rows; every rollup replaces them wholesale.

Layer:
    domain/entities
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from windcurtail.domain.entities.base import BaseEntity
from windcurtail.domain.enums.pipeline import SummaryGranularity


@dataclass(frozen=True)
class DailySummary(BaseEntity):
    """Curtailed energy and payment for one settlement date."""

    summary_date: date
    total_energy_mwh: Decimal
    total_payment: Decimal


@dataclass(frozen=True)
class MonthlySummary(BaseEntity):
    """Sum of the daily rows of one ``YYYY-MM`` month."""

    year_month: str
    total_energy_mwh: Decimal
    total_payment: Decimal


@dataclass(frozen=True)
class YearlySummary(BaseEntity):
    """Sum of the monthly rows of one ``YYYY`` year."""

    year: str
    total_energy_mwh: Decimal
    total_payment: Decimal


@dataclass(frozen=True)
class MiningSummary(BaseEntity):
    """Per-device-model mined total at one granularity.

    ``period_key`` is an ISO date, ``YYYY-MM`` or ``YYYY`` depending on
    ``granularity``.
    """

    granularity: SummaryGranularity
    period_key: str
    device_model: str
    mined_units: Decimal
