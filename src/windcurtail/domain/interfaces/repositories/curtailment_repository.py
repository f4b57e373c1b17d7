# Copyright (c)
# SPDX-License-Identifier: MIT
"""Domain-facing interfaces for curtailment and ownership storage.

Notes:
    Persistence-agnostic; the SQLAlchemy adapters in
    ``adapters/repositories`` satisfy these Protocols, as do the in-memory
    fakes used by tests.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from typing import Protocol

from windcurtail.domain.entities.curtailment_record import CurtailmentRecord


class CurtailmentRepository(Protocol):
    """Storage of curtailment facts keyed by (date, period, unit)."""

    async def upsert_records(self, records: Sequence[CurtailmentRecord]) -> int:
        """Insert or overwrite records by natural key; return rows processed."""
        raise NotImplementedError

    async def delete_for_date(self, settlement_date: date) -> int:
        """Delete every record of the date; return rows deleted."""
        raise NotImplementedError

    async def delete_for_period(self, settlement_date: date, settlement_period: int) -> int:
        """Delete every record of one period; return rows deleted."""
        raise NotImplementedError

    async def list_for_date(self, settlement_date: date) -> list[CurtailmentRecord]:
        """Return all records of the date ordered by period then unit."""
        raise NotImplementedError

    async def get(
        self, settlement_date: date, settlement_period: int, unit_id: str
    ) -> CurtailmentRecord | None:
        """Return one record by natural key, if present."""
        raise NotImplementedError


class UnitOwnershipRepository(Protocol):
    """Lookup table of unit id to lead party name."""

    async def replace_all(self, lead_party_of: Mapping[str, str]) -> int:
        """Replace the table with the mapping; return rows kept."""
        raise NotImplementedError

    async def lead_party_of(self, unit_ids: Sequence[str]) -> dict[str, str]:
        """Return the lead party of each known unit among ``unit_ids``."""
        raise NotImplementedError
