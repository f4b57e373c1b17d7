# Copyright (c)
# SPDX-License-Identifier: MIT
"""Domain-facing interface for derived calculation storage."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol

from windcurtail.domain.entities.calculation_record import CalculationRecord


class CalculationRepository(Protocol):
    """Storage of calculation rows keyed by (date, period, unit, model)."""

    async def upsert_calculations(self, rows: Sequence[CalculationRecord]) -> int:
        """Insert or overwrite rows by natural key; return rows processed."""
        raise NotImplementedError

    async def list_triples(self, settlement_date: date) -> set[tuple[int, str, str]]:
        """Return the distinct ``(period, unit, model)`` keys stored for the date."""
        raise NotImplementedError

    async def delete_orphans(
        self, settlement_date: date, keep: set[tuple[int, str]]
    ) -> int:
        """Delete rows of the date whose ``(period, unit)`` is not in ``keep``."""
        raise NotImplementedError

    async def delete_combination(
        self, settlement_date: date, settlement_period: int, unit_id: str
    ) -> int:
        """Delete every model's row for one combination."""
        raise NotImplementedError
