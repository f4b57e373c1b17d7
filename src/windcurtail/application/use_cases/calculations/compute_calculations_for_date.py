# src/windcurtail/application/use_cases/calculations/compute_calculations_for_date.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Use case: derive mining calculations from a date's curtailment facts.

For every nonzero curtailment fact and every configured device profile one
calculation row is produced. Rows are written in bounded batches, each batch
one multi-row upsert in its own transaction, batches one after another.
Calculation rows whose ``(period, unit)`` no longer has a nonzero fact are
deleted first, so the existence rule holds after a re-ingest.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, date, datetime

from windcurtail.application.schemas.dto.pipeline import CalculationResultDTO
from windcurtail.application.uow import UnitOfWorkFactory
from windcurtail.domain.entities.calculation_record import CalculationRecord
from windcurtail.domain.entities.curtailment_record import CurtailmentRecord
from windcurtail.domain.exceptions.pipeline import ConfigurationError
from windcurtail.domain.interfaces.gateways.settlement_gateway import DifficultyGateway
from windcurtail.domain.interfaces.repositories.calculation_repository import (
    CalculationRepository,
)
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
)
from windcurtail.domain.services.device_registry import DeviceRegistry
from windcurtail.domain.services.mining_calculator import (
    DEFAULT_BLOCK_REWARD,
    DEFAULT_DIFFICULTY,
    compute_mined_units,
)
from windcurtail.infrastructure.logging.logger import get_json_logger
from windcurtail.infrastructure.observability.metrics_pipeline import (
    get_calculations_written_total,
)

log = get_json_logger(__name__)


class ComputeCalculationsForDate:
    """Build and persist calculation rows for a date or a single combination."""

    def __init__(
        self,
        *,
        uow_factory: UnitOfWorkFactory,
        difficulty: DifficultyGateway,
        devices: DeviceRegistry,
        block_reward: float = DEFAULT_BLOCK_REWARD,
        batch_size: int = 50,
        fallback_difficulty: float = float(DEFAULT_DIFFICULTY),
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if batch_size < 1:
            raise ConfigurationError("batch_size must be >= 1")
        self._uow_factory = uow_factory
        self._difficulty = difficulty
        self._devices = devices
        self._block_reward = block_reward
        self._batch_size = batch_size
        self._fallback = fallback_difficulty
        self._clock = clock or (lambda: datetime.now(tz=UTC))

    @property
    def devices(self) -> DeviceRegistry:
        """Return the configured device registry."""
        return self._devices

    async def resolve_difficulty(self, day: date, override: float | None = None) -> float:
        """Return ``override`` or the looked-up difficulty, falling back on failure.

        Raises:
            ConfigurationError: If ``override`` is given and not positive.
        """
        if override is not None:
            if override <= 0:
                raise ConfigurationError(
                    "difficulty must be positive", details={"difficulty": override}
                )
            return float(override)
        try:
            value = float(await self._difficulty.lookup(day))
        except Exception as exc:  # noqa: BLE001
            log.warning(
                "calculate.difficulty_fallback",
                extra={"extra": {"settlement_date": day.isoformat(), "error": str(exc)}},
            )
            return self._fallback
        if value <= 0:
            log.warning(
                "calculate.difficulty_fallback",
                extra={"extra": {"settlement_date": day.isoformat(), "difficulty": value}},
            )
            return self._fallback
        return value

    def build_rows(
        self,
        facts: Sequence[CurtailmentRecord],
        difficulty: float,
        models: Sequence[str] | None = None,
    ) -> list[CalculationRecord]:
        """Return one row per (nonzero fact x profile).

        Raises:
            ConfigurationError: On an unknown model or a non-positive difficulty.
        """
        profiles = [self._devices.get(m) for m in (models or self._devices.names)]
        now = self._clock()
        rows: list[CalculationRecord] = []
        for fact in facts:
            if fact.volume == 0:
                continue
            for profile in profiles:
                rows.append(
                    CalculationRecord(
                        settlement_date=fact.settlement_date,
                        settlement_period=fact.settlement_period,
                        unit_id=fact.unit_id,
                        device_model=profile.name,
                        mined_units=compute_mined_units(
                            fact.volume, profile, difficulty, self._block_reward
                        ),
                        difficulty=difficulty,
                        calculated_at=now,
                    )
                )
        return rows

    async def execute(
        self, settlement_date: date, difficulty: float | None = None
    ) -> CalculationResultDTO:
        """Recompute every calculation row of ``settlement_date``."""
        resolved = await self.resolve_difficulty(settlement_date, difficulty)

        async with self._uow_factory() as tx:
            facts_repo: CurtailmentRepository = tx.get_repository(CurtailmentRepository)
            facts = [f for f in await facts_repo.list_for_date(settlement_date) if f.volume != 0]

        rows = self.build_rows(facts, resolved)
        keep = {(f.settlement_period, f.unit_id) for f in facts}

        async with self._uow_factory() as tx:
            calc_repo: CalculationRepository = tx.get_repository(CalculationRepository)
            orphans = await calc_repo.delete_orphans(settlement_date, keep)
            await tx.commit()

        written = await self.write_rows(rows)

        mined: dict[str, float] = {m: 0.0 for m in self._devices.names}
        for r in rows:
            mined[r.device_model] += r.mined_units
        result = CalculationResultDTO(
            settlement_date=settlement_date,
            difficulty=resolved,
            combinations=len(keep),
            rows_written=written,
            orphans_deleted=orphans,
            mined_by_model={m: round(v, 8) for m, v in mined.items()},
        )
        log.info(
            "calculate.date_done",
            extra={
                "extra": {
                    "settlement_date": settlement_date.isoformat(),
                    "difficulty": resolved,
                    "combinations": result.combinations,
                    "rows_written": written,
                    "orphans_deleted": orphans,
                }
            },
        )
        return result

    async def write_rows(self, rows: Sequence[CalculationRecord]) -> int:
        """Upsert ``rows`` in batches; return rows written."""
        written = 0
        for start in range(0, len(rows), self._batch_size):
            batch = rows[start : start + self._batch_size]
            async with self._uow_factory() as tx:
                repo: CalculationRepository = tx.get_repository(CalculationRepository)
                written += await repo.upsert_calculations(batch)
                await tx.commit()
            counter = get_calculations_written_total()
            for r in batch:
                counter.labels(r.device_model).inc()
        return written
