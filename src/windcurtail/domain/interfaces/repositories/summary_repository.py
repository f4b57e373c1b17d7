# Copyright (c)
# SPDX-License-Identifier: MIT
"""Domain-facing interface for rolled-up summaries.

Every ``recompute_*`` method aggregates the next-finer level and either
upserts the result or deletes the row when there is nothing to aggregate,
so a summary is never left stale.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from windcurtail.domain.entities.summaries import (
    DailySummary,
    MiningSummary,
    MonthlySummary,
    YearlySummary,
)
from windcurtail.domain.enums.pipeline import SummaryGranularity


class SummaryRepository(Protocol):
    """Storage and recomputation of summary rows."""

    async def recompute_daily(self, summary_date: date) -> DailySummary | None:
        """Aggregate curtailment facts of the date into its daily row."""
        raise NotImplementedError

    async def recompute_monthly(self, year_month: str) -> MonthlySummary | None:
        """Aggregate daily rows of ``YYYY-MM`` into its monthly row."""
        raise NotImplementedError

    async def recompute_yearly(self, year: str) -> YearlySummary | None:
        """Aggregate monthly rows of ``YYYY`` into its yearly row."""
        raise NotImplementedError

    async def recompute_mining(
        self, granularity: SummaryGranularity, period_key: str
    ) -> list[MiningSummary]:
        """Aggregate per-model mined totals at ``granularity`` for ``period_key``."""
        raise NotImplementedError
