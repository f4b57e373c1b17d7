# src/windcurtail/application/use_cases/reconciliation/get_reconciliation_status.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: report reconciliation status across all dates.

Incomplete dates are ordered by completion percentage ascending, so the
largest gaps come first; ties put the most recent date first.
"""

from __future__ import annotations

from collections.abc import Sequence

from windcurtail.application.schemas.dto.pipeline import DateCoverageDTO, ReconciliationStatusDTO
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.domain.entities.coverage import DateCoverage
from windcurtail.domain.interfaces.repositories.coverage_repository import (
    CoverageRepository,
    DateCoverageRow,
)
from windcurtail.domain.services.coverage import classify_coverage


def coverage_from_row(row: DateCoverageRow, models: Sequence[str]) -> DateCoverage:
    """Turn raw counts into a :class:`DateCoverage`."""
    by_model = {m: min(int(row.actual_by_model.get(m, 0)), row.combinations) for m in models}
    expected = row.combinations * len(models)
    actual = sum(by_model.values())
    return DateCoverage(
        settlement_date=row.settlement_date,
        curtailment_records=row.curtailment_records,
        combinations=row.combinations,
        expected=expected,
        actual=actual,
        actual_by_model=by_model,
        state=classify_coverage(
            expected,
            actual,
            per_model_complete=all(by_model[m] >= row.combinations for m in models),
        ),
    )


class GetReconciliationStatus:
    """Build a dataset-wide :class:`ReconciliationStatusDTO`."""

    def __init__(self, *, uow_factory: UnitOfWorkFactory, models: Sequence[str]) -> None:
        self._uow_factory = uow_factory
        self._models = tuple(models)

    async def execute(self) -> ReconciliationStatusDTO:
        """Return overall totals, per-model counts and the incomplete dates."""
        async with self._uow_factory() as tx:
            repo: CoverageRepository = tx.get_repository(CoverageRepository)
            rows = await repo.coverage_rows(self._models)

        coverages = [coverage_from_row(r, self._models) for r in rows]
        expected = sum(c.expected for c in coverages)
        actual = sum(c.actual for c in coverages)
        by_model = {m: sum(c.actual_by_model.get(m, 0) for c in coverages) for m in self._models}
        percentage = 100.0 if expected == 0 else round(min(actual / expected * 100.0, 100.0), 1)

        incomplete = sorted(
            (c for c in coverages if not c.is_complete),
            key=lambda c: (c.percentage, -c.settlement_date.toordinal()),
        )
        return ReconciliationStatusDTO(
            total_curtailment_records=sum(c.curtailment_records for c in coverages),
            total_combinations=sum(c.combinations for c in coverages),
            expected=expected,
            actual=actual,
            missing=max(expected - actual, 0),
            percentage=percentage,
            actual_by_model=by_model,
            dates=[DateCoverageDTO.from_entity(c) for c in coverages],
            incomplete_dates=[DateCoverageDTO.from_entity(c) for c in incomplete],
        )
