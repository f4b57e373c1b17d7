# src/windcurtail/application/use_cases/reconciliation/repair_critical_date.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: repair a stubborn date one missing triple at a time.

The exact missing ``(period, unit, model)`` triples are the set difference
between the expected triples and the stored ones. Each triple is written in
its own transaction with a pause between writes, which keeps lock pressure
low on dates where bulk writes keep timing out. Individual triple failures
are collected, not raised.
"""

from __future__ import annotations

import asyncio
from datetime import date

from windcurtail.application.schemas.dto.pipeline import CriticalRepairResultDTO, DateCoverageDTO
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.application.use_cases.calculations.compute_calculations_for_date import (
    ComputeCalculationsForDate,
)
from windcurtail.application.use_cases.ingestion.ingest_curtailment_for_date import (
    IngestCurtailmentForDate,
    IngestCurtailmentRequest,
)
from windcurtail.application.use_cases.reconciliation.coverage_check import (
    load_date_coverage,
    load_date_keys,
)
from windcurtail.application.use_cases.summaries.rollup_summaries import RollupSummaries
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
)
from windcurtail.domain.services.coverage import missing_triples
from windcurtail.infrastructure.logging.logger import get_json_logger, set_run_context
from windcurtail.infrastructure.resilience.retry import SleepFn

log = get_json_logger(__name__)


class RepairCriticalDate:
    """Fill every missing calculation triple of a date individually."""

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        ingest: IngestCurtailmentForDate,
        calculate: ComputeCalculationsForDate,
        rollup: RollupSummaries,
        pause_s: float = 0.5,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._uow_factory = uow_factory
        self._ingest = ingest
        self._calculate = calculate
        self._rollup = rollup
        self._pause_s = pause_s
        self._sleep = sleep

    async def execute(self, settlement_date: date) -> CriticalRepairResultDTO:
        """Repair ``settlement_date`` and return the final coverage."""
        set_run_context(settlement_date=settlement_date.isoformat())
        models = self._calculate.devices.names

        records, combos, triples = await load_date_keys(self._uow_factory, settlement_date)
        if records == 0:
            log.info(
                "critical.ingesting_first",
                extra={"extra": {"settlement_date": settlement_date.isoformat()}},
            )
            await self._ingest.execute(IngestCurtailmentRequest(settlement_date=settlement_date))
            records, combos, triples = await load_date_keys(self._uow_factory, settlement_date)

        missing = missing_triples(combos, triples, models)
        log.info(
            "critical.missing_triples",
            extra={
                "extra": {"settlement_date": settlement_date.isoformat(), "missing": len(missing)}
            },
        )

        difficulty = await self._calculate.resolve_difficulty(settlement_date)
        repaired = 0
        failed: list[str] = []
        for index, (period, unit_id, model) in enumerate(missing):
            if index:
                await self._sleep(self._pause_s)
            try:
                async with self._uow_factory() as tx:
                    facts_repo: CurtailmentRepository = tx.get_repository(CurtailmentRepository)
                    fact = await facts_repo.get(settlement_date, period, unit_id)
                if fact is None:
                    failed.append(f"{period}/{unit_id}/{model}: curtailment record vanished")
                    continue
                rows = self._calculate.build_rows([fact], difficulty, models=[model])
                repaired += await self._calculate.write_rows(rows)
            except Exception as exc:  # noqa: BLE001
                failed.append(f"{period}/{unit_id}/{model}: {exc}")
                log.warning(
                    "critical.triple_failed",
                    extra={
                        "extra": {
                            "settlement_date": settlement_date.isoformat(),
                            "settlement_period": period,
                            "unit_id": unit_id,
                            "device_model": model,
                            "reason": str(exc),
                        }
                    },
                )

        await self._rollup.for_date(settlement_date)
        coverage = await load_date_coverage(self._uow_factory, settlement_date, models)
        log.info(
            "critical.done",
            extra={
                "extra": {
                    "settlement_date": settlement_date.isoformat(),
                    "repaired": repaired,
                    "failed": len(failed),
                    "coverage": coverage.state.value,
                }
            },
        )
        return CriticalRepairResultDTO(
            settlement_date=settlement_date,
            missing_before=len(missing),
            repaired=repaired,
            failed=failed,
            coverage=DateCoverageDTO.from_entity(coverage),
        )
