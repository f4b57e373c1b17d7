# src/windcurtail/application/use_cases/reconciliation/spot_fix.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: recompute one (date, period, unit) combination for every profile."""

from __future__ import annotations

from datetime import date

from windcurtail.application.schemas.dto.pipeline import SpotFixResultDTO
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.application.use_cases.calculations.compute_calculations_for_date import (
    ComputeCalculationsForDate,
)
from windcurtail.application.use_cases.summaries.rollup_summaries import RollupSummaries
from windcurtail.domain.interfaces.repositories.calculation_repository import (
    CalculationRepository,
)
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
)
from windcurtail.domain.services.settlement_calendar import validate_period
from windcurtail.infrastructure.logging.logger import get_json_logger

log = get_json_logger(__name__)


class SpotFixCombination:
    """Rewrite the calculation rows of a single combination.

    When the combination has no nonzero curtailment fact its calculation rows
    are deleted instead, keeping the existence rule intact.
    """

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        calculate: ComputeCalculationsForDate,
        rollup: RollupSummaries,
    ) -> None:
        self._uow_factory = uow_factory
        self._calculate = calculate
        self._rollup = rollup

    async def execute(
        self,
        settlement_date: date,
        settlement_period: int,
        unit_id: str,
        difficulty: float | None = None,
    ) -> SpotFixResultDTO:
        """Recompute the combination and roll the date's summaries up."""
        validate_period(settlement_period)
        async with self._uow_factory() as tx:
            facts_repo: CurtailmentRepository = tx.get_repository(CurtailmentRepository)
            fact = await facts_repo.get(settlement_date, settlement_period, unit_id)

        written = 0
        deleted = 0
        present = fact is not None and fact.volume != 0
        if fact is not None and present:
            resolved = await self._calculate.resolve_difficulty(settlement_date, difficulty)
            rows = self._calculate.build_rows([fact], resolved)
            written = await self._calculate.write_rows(rows)
        else:
            async with self._uow_factory() as tx:
                calc_repo: CalculationRepository = tx.get_repository(CalculationRepository)
                deleted = await calc_repo.delete_combination(
                    settlement_date, settlement_period, unit_id
                )
                await tx.commit()

        await self._rollup.for_date(settlement_date)
        log.info(
            "spot_fix.done",
            extra={
                "extra": {
                    "settlement_date": settlement_date.isoformat(),
                    "settlement_period": settlement_period,
                    "unit_id": unit_id,
                    "rows_written": written,
                    "rows_deleted": deleted,
                }
            },
        )
        return SpotFixResultDTO(
            settlement_date=settlement_date,
            settlement_period=settlement_period,
            unit_id=unit_id,
            curtailment_present=present,
            rows_written=written,
            rows_deleted=deleted,
        )
