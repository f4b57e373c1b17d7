# Copyright (c)
# SPDX-License-Identifier: MIT
"""Coverage rules (Domain Service).

A date is judged by comparing the set of nonzero curtailment combinations
``(period, unit)`` against the calculation triples ``(period, unit, model)``
actually stored for it. Both the status report and the repair paths go
through these functions.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import date

from windcurtail.domain.entities.coverage import DateCoverage
from windcurtail.domain.enums.pipeline import CoverageState

Combination = tuple[int, str]
Triple = tuple[int, str, str]


def classify_coverage(
    expected: int, actual: int, *, per_model_complete: bool = True
) -> CoverageState:
    """Return the coverage state for the given counts."""
    if expected <= 0:
        return CoverageState.EMPTY
    if actual <= 0:
        return CoverageState.MISSING
    if actual >= expected and per_model_complete:
        return CoverageState.COMPLETE
    return CoverageState.PARTIAL


def compute_coverage(
    settlement_date: date,
    combinations: Iterable[Combination],
    present: Iterable[Triple],
    models: Collection[str],
    *,
    curtailment_records: int | None = None,
) -> DateCoverage:
    """Build a :class:`DateCoverage` from stored keys.

    Triples whose model is not configured, or whose combination has no
    nonzero curtailment fact, do not count towards ``actual``.
    """
    combos = set(combinations)
    counted = {t for t in present if t[2] in models and (t[0], t[1]) in combos}
    by_model = {m: 0 for m in models}
    for _, _, model in counted:
        by_model[model] += 1

    expected = len(combos) * len(models)
    actual = len(counted)
    per_model_complete = all(by_model[m] >= len(combos) for m in models)
    return DateCoverage(
        settlement_date=settlement_date,
        curtailment_records=len(combos) if curtailment_records is None else curtailment_records,
        combinations=len(combos),
        expected=expected,
        actual=actual,
        actual_by_model=by_model,
        state=classify_coverage(expected, actual, per_model_complete=per_model_complete),
    )


def missing_triples(
    combinations: Iterable[Combination],
    present: Iterable[Triple],
    models: Collection[str],
) -> list[Triple]:
    """Return the expected triples that are absent, sorted by period, unit, model."""
    have = set(present)
    wanted = {(p, u, m) for p, u in set(combinations) for m in models}
    return sorted(wanted - have)
