# Copyright (c)
# SPDX-License-Identifier: MIT
"""Domain-facing interface for the coverage read model."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Protocol


@dataclass(frozen=True)
class DateCoverageRow:
    """Raw per-date counts used to build a coverage report.

    Attributes:
        settlement_date: The date.
        curtailment_records: Stored curtailment facts.
        combinations: Distinct nonzero ``(period, unit)`` pairs.
        actual_by_model: Calculation rows matching a nonzero combination, per model.
    """

    settlement_date: date
    curtailment_records: int
    combinations: int
    actual_by_model: dict[str, int] = field(default_factory=dict)


class CoverageRepository(Protocol):
    """Aggregated expected-vs-actual counts across all dates."""

    async def coverage_rows(self, models: Sequence[str]) -> list[DateCoverageRow]:
        """Return one row per date with curtailment records, ascending by date."""
        raise NotImplementedError
