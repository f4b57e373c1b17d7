# Copyright (c)
# SPDX-License-Identifier: MIT
"""Date coverage (Domain Entities).

Synopsis:
    Snapshot of how many derived calculation rows a settlement date has
    versus how many it should have.

Layer:
    domain/entities
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date

from windcurtail.domain.entities.base import BaseEntity
from windcurtail.domain.enums.pipeline import CoverageState


@dataclass(frozen=True)
class DateCoverage(BaseEntity):
    """Expected vs. actual calculation rows for one date.

    Attributes:
        settlement_date: The date.
        curtailment_records: Stored curtailment facts (including zero-volume rows).
        combinations: Distinct nonzero ``(period, unit)`` pairs.
        expected: ``combinations * number of device profiles``.
        actual: Distinct ``(period, unit, model)`` triples present.
        actual_by_model: Distinct ``(period, unit)`` pairs present per model.
        state: Derived coverage state.
    """

    settlement_date: date
    curtailment_records: int
    combinations: int
    expected: int
    actual: int
    actual_by_model: Mapping[str, int] = field(default_factory=dict)
    state: CoverageState = CoverageState.EMPTY

    @property
    def missing(self) -> int:
        """Return how many calculation rows are absent (never negative)."""
        return max(self.expected - self.actual, 0)

    @property
    def percentage(self) -> float:
        """Return completion as a percentage capped at 100, 1 dp."""
        if self.expected <= 0:
            return 100.0
        return round(min(self.actual / self.expected * 100.0, 100.0), 1)

    @property
    def is_complete(self) -> bool:
        """Return True when nothing is left to reconcile for the date."""
        return self.state in (CoverageState.COMPLETE, CoverageState.EMPTY)
