# src/windcurtail/dependencies/pipeline.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Dependency wiring for the pipeline use cases.

Purpose:
    Build every use case from :class:`Settings` and :class:`ElexonSettings`
    with a shared engine, HTTP client, limiter and unit registry. The CLI
    opens one :func:`open_pipeline` per command; tests construct the use
    cases directly with fakes instead.

Layer:
    dependencies
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

from windcurtail.adapters.gateways.elexon_settlement_gateway import ElexonSettlementGateway
from windcurtail.adapters.uow import sqlalchemy_uow_factory
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.application.use_cases.calculations.compute_calculations_for_date import (
    ComputeCalculationsForDate,
)
from windcurtail.application.use_cases.ingestion.ingest_curtailment_for_date import (
    IngestCurtailmentForDate,
)
from windcurtail.application.use_cases.reconciliation.get_reconciliation_status import (
    GetReconciliationStatus,
)
from windcurtail.application.use_cases.reconciliation.process_date import ProcessDate
from windcurtail.application.use_cases.reconciliation.process_dates import ProcessDates
from windcurtail.application.use_cases.reconciliation.repair_critical_date import (
    RepairCriticalDate,
)
from windcurtail.application.use_cases.reconciliation.spot_fix import SpotFixCombination
from windcurtail.application.use_cases.reconciliation.verify_date import (
    VerifyDateAgainstUpstream,
)
from windcurtail.application.use_cases.summaries.rollup_summaries import RollupSummaries
from windcurtail.config.settings import Settings
from windcurtail.infrastructure.checkpoint.json_checkpoint_store import JsonCheckpointStore
from windcurtail.infrastructure.database.session import (
    dispose_engine,
    get_sessionmaker,
    init_engine_and_sessionmaker,
)
from windcurtail.infrastructure.difficulty.difficulty_table import FileDifficultyGateway
from windcurtail.infrastructure.external_apis.elexon.client import ElexonClient
from windcurtail.infrastructure.external_apis.elexon.settings import ElexonSettings
from windcurtail.infrastructure.identity.unit_registry import UnitRegistryLoader


@dataclass(slots=True)
class Pipeline:
    """Fully wired use cases sharing one engine and one upstream client."""

    uow_factory: UnitOfWorkFactory
    ingest: IngestCurtailmentForDate
    calculate: ComputeCalculationsForDate
    rollup: RollupSummaries
    process_date: ProcessDate
    status: GetReconciliationStatus
    spot_fix: SpotFixCombination
    critical: RepairCriticalDate
    verify: VerifyDateAgainstUpstream
    checkpoint_store: JsonCheckpointStore
    settings: Settings

    def batch(self, batch_size: int | None = None) -> ProcessDates:
        """Return a batch processor running :attr:`process_date` per date."""
        return ProcessDates(
            process=self.process_date.execute,
            checkpoint_store=self.checkpoint_store,
            batch_size=batch_size or self.settings.reconcile_batch_size,
            max_attempts=self.settings.reconcile_max_attempts,
            backoff_base_s=self.settings.reconcile_backoff_base_s,
        )


@asynccontextmanager
async def open_pipeline(
    settings: Settings,
    elexon_settings: ElexonSettings | None = None,
) -> AsyncIterator[Pipeline]:
    """Yield a wired :class:`Pipeline`; close the client and engine on exit."""
    init_engine_and_sessionmaker(settings)
    uow_factory = sqlalchemy_uow_factory(get_sessionmaker())
    client = ElexonClient(elexon_settings or ElexonSettings())
    try:
        gateway = ElexonSettlementGateway(client)
        units = UnitRegistryLoader(settings.unit_mapping_path)
        devices = settings.device_registry()

        ingest = IngestCurtailmentForDate(
            uow_factory=uow_factory,
            gateway=gateway,
            units=units,
            period_concurrency=settings.period_concurrency,
        )
        calculate = ComputeCalculationsForDate(
            uow_factory=uow_factory,
            difficulty=FileDifficultyGateway(
                settings.difficulty_table_path, default=settings.default_difficulty
            ),
            devices=devices,
            block_reward=settings.block_reward,
            batch_size=settings.calculation_batch_size,
            fallback_difficulty=settings.default_difficulty,
        )
        rollup = RollupSummaries(uow_factory=uow_factory)

        yield Pipeline(
            uow_factory=uow_factory,
            ingest=ingest,
            calculate=calculate,
            rollup=rollup,
            process_date=ProcessDate(
                uow_factory=uow_factory, ingest=ingest, calculate=calculate, rollup=rollup
            ),
            status=GetReconciliationStatus(uow_factory=uow_factory, models=devices.names),
            spot_fix=SpotFixCombination(
                uow_factory=uow_factory, calculate=calculate, rollup=rollup
            ),
            critical=RepairCriticalDate(
                uow_factory=uow_factory,
                ingest=ingest,
                calculate=calculate,
                rollup=rollup,
                pause_s=settings.critical_pause_s,
            ),
            verify=VerifyDateAgainstUpstream(
                uow_factory=uow_factory, gateway=gateway, units=units
            ),
            checkpoint_store=JsonCheckpointStore(settings.checkpoint_path),
            settings=settings,
        )
    finally:
        await client.aclose()
        await dispose_engine()
