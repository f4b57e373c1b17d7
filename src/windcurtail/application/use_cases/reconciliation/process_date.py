# src/windcurtail/application/use_cases/reconciliation/process_date.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: run the whole pipeline for one date.

Ingestion → calculation → rollup, then a fresh coverage check. The date
counts as done only when the coverage check says so; a date with upstream
period failures raises a retryable error so batch callers try it again.
"""

from __future__ import annotations

from datetime import date

from windcurtail.application.schemas.dto.pipeline import DateCoverageDTO, DateProcessingResultDTO
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.application.use_cases.calculations.compute_calculations_for_date import (
    ComputeCalculationsForDate,
)
from windcurtail.application.use_cases.ingestion.ingest_curtailment_for_date import (
    IngestCurtailmentForDate,
    IngestCurtailmentRequest,
)
from windcurtail.application.use_cases.reconciliation.coverage_check import load_date_coverage
from windcurtail.application.use_cases.summaries.rollup_summaries import RollupSummaries
from windcurtail.domain.enums.pipeline import IngestMode
from windcurtail.domain.exceptions.pipeline import DataIntegrityError, TransientNetworkError
from windcurtail.infrastructure.logging.logger import get_json_logger, set_run_context

log = get_json_logger(__name__)


class ProcessDate:
    """Ingest, derive and roll up one settlement date."""

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        ingest: IngestCurtailmentForDate,
        calculate: ComputeCalculationsForDate,
        rollup: RollupSummaries,
    ) -> None:
        self._uow_factory = uow_factory
        self._ingest = ingest
        self._calculate = calculate
        self._rollup = rollup

    async def execute(
        self,
        settlement_date: date,
        *,
        mode: IngestMode = IngestMode.UPSERT,
        difficulty: float | None = None,
    ) -> DateProcessingResultDTO:
        """Process ``settlement_date`` end to end.

        Raises:
            TransientNetworkError: If any period could not be fetched.
            DataIntegrityError: If coverage is still incomplete after processing.
        """
        set_run_context(settlement_date=settlement_date.isoformat())
        ingestion = await self._ingest.execute(
            IngestCurtailmentRequest(settlement_date=settlement_date, mode=mode)
        )
        calculation = await self._calculate.execute(settlement_date, difficulty)
        rollup = await self._rollup.for_date(settlement_date)
        coverage = await load_date_coverage(
            self._uow_factory, settlement_date, self._calculate.devices.names
        )

        if ingestion.failed_periods:
            raise TransientNetworkError(
                f"{len(ingestion.failed_periods)} periods failed upstream",
                details={"failed_periods": ingestion.failed_periods},
            )
        if not coverage.is_complete:
            raise DataIntegrityError(
                f"coverage {coverage.state.value} at {coverage.percentage}% after processing",
                details={"expected": coverage.expected, "actual": coverage.actual},
            )

        log.info(
            "reconcile.date_processed",
            extra={
                "extra": {
                    "settlement_date": settlement_date.isoformat(),
                    "records": ingestion.records,
                    "calculations": calculation.rows_written,
                    "coverage": coverage.state.value,
                }
            },
        )
        return DateProcessingResultDTO(
            settlement_date=settlement_date,
            ingestion=ingestion,
            calculation=calculation,
            rollup=rollup,
            coverage=DateCoverageDTO.from_entity(coverage),
        )
