# src/windcurtail/application/schemas/dto/pipeline.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Application DTOs for ingestion, calculation, rollup and reconciliation.

Layer:
    application/schemas/dto

Notes:
    These DTOs are what the CLI prints; they carry counts and totals only,
    never ORM rows.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from pydantic import Field

from windcurtail.application.schemas.dto.base import BaseDTO
from windcurtail.domain.entities.coverage import DateCoverage
from windcurtail.domain.enums.pipeline import CoverageState, FailureKind, IngestMode


class IngestionResultDTO(BaseDTO):
    """Outcome of ingesting one settlement date."""

    settlement_date: date
    mode: IngestMode
    records: int
    total_volume: Decimal
    total_payment: Decimal
    periods_with_data: int
    failed_periods: list[int] = Field(default_factory=list)
    payment_by_lead_party: dict[str, Decimal] = Field(default_factory=dict)


class CalculationResultDTO(BaseDTO):
    """Outcome of deriving calculation rows for one date."""

    settlement_date: date
    difficulty: float
    combinations: int
    rows_written: int
    orphans_deleted: int = 0
    mined_by_model: dict[str, float] = Field(default_factory=dict)


class RollupResultDTO(BaseDTO):
    """Which summary rows exist after a rollup cascade."""

    summary_date: date
    year_month: str
    year: str
    daily_present: bool
    monthly_present: bool
    yearly_present: bool
    mining_models: list[str] = Field(default_factory=list)


class DateCoverageDTO(BaseDTO):
    """Coverage of one date."""

    settlement_date: date
    curtailment_records: int
    combinations: int
    expected: int
    actual: int
    missing: int
    percentage: float
    state: CoverageState
    actual_by_model: dict[str, int] = Field(default_factory=dict)

    @classmethod
    def from_entity(cls, cov: DateCoverage) -> DateCoverageDTO:
        """Map a :class:`DateCoverage` entity."""
        return cls(
            settlement_date=cov.settlement_date,
            curtailment_records=cov.curtailment_records,
            combinations=cov.combinations,
            expected=cov.expected,
            actual=cov.actual,
            missing=cov.missing,
            percentage=cov.percentage,
            state=cov.state,
            actual_by_model=dict(cov.actual_by_model),
        )


class ReconciliationStatusDTO(BaseDTO):
    """Dataset-wide reconciliation status."""

    total_curtailment_records: int
    total_combinations: int
    expected: int
    actual: int
    missing: int
    percentage: float
    actual_by_model: dict[str, int] = Field(default_factory=dict)
    dates: list[DateCoverageDTO] = Field(default_factory=list)
    incomplete_dates: list[DateCoverageDTO] = Field(default_factory=list)


class DateProcessingResultDTO(BaseDTO):
    """Full pipeline outcome for one date."""

    settlement_date: date
    ingestion: IngestionResultDTO
    calculation: CalculationResultDTO
    rollup: RollupResultDTO
    coverage: DateCoverageDTO


class DateFailureDTO(BaseDTO):
    """A date that could not be processed."""

    settlement_date: str
    reason: str
    kind: FailureKind
    attempts: int


class BatchSummaryDTO(BaseDTO):
    """Structured summary of a batch run."""

    run_id: str
    processed: int
    succeeded: int
    failed: int
    timeouts: int
    failures: list[DateFailureDTO] = Field(default_factory=list)


class SpotFixResultDTO(BaseDTO):
    """Outcome of recomputing one (date, period, unit) combination."""

    settlement_date: date
    settlement_period: int
    unit_id: str
    curtailment_present: bool
    rows_written: int
    rows_deleted: int


class CriticalRepairResultDTO(BaseDTO):
    """Outcome of triple-by-triple repair of one date."""

    settlement_date: date
    missing_before: int
    repaired: int
    failed: list[str] = Field(default_factory=list)
    coverage: DateCoverageDTO


class PeriodDriftDTO(BaseDTO):
    """Upstream vs stored totals for one sample period."""

    settlement_period: int
    upstream_volume: Decimal
    stored_volume: Decimal
    upstream_payment: Decimal
    stored_payment: Decimal
    fetched: bool
    mismatched: bool


class DriftReportDTO(BaseDTO):
    """Result of sampling a date against the upstream API."""

    settlement_date: date
    tolerance: Decimal
    periods: list[PeriodDriftDTO] = Field(default_factory=list)
    needs_reingest: bool
