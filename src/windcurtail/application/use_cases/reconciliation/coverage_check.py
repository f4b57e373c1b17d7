# Copyright (c)
# SPDX-License-Identifier: MIT
"""Single-date coverage loader shared by the reconciliation use cases."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date

from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.domain.entities.coverage import DateCoverage
from windcurtail.domain.interfaces.repositories.calculation_repository import (
    CalculationRepository,
)
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
)
from windcurtail.domain.services.coverage import Combination, Triple, compute_coverage


async def load_date_keys(
    uow_factory: UnitOfWorkFactory, settlement_date: date
) -> tuple[int, set[Combination], set[Triple]]:
    """Return ``(record_count, nonzero combinations, stored triples)`` for a date."""
    async with uow_factory() as tx:
        facts_repo: CurtailmentRepository = tx.get_repository(CurtailmentRepository)
        calc_repo: CalculationRepository = tx.get_repository(CalculationRepository)
        facts = await facts_repo.list_for_date(settlement_date)
        triples = await calc_repo.list_triples(settlement_date)
    combos = {(f.settlement_period, f.unit_id) for f in facts if f.volume != 0}
    return len(facts), combos, triples


async def load_date_coverage(
    uow_factory: UnitOfWorkFactory, settlement_date: date, models: Sequence[str]
) -> DateCoverage:
    """Return the current coverage of ``settlement_date``."""
    records, combos, triples = await load_date_keys(uow_factory, settlement_date)
    return compute_coverage(
        settlement_date, combos, triples, models, curtailment_records=records
    )
