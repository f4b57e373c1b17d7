# src/windcurtail/adapters/gateways/elexon_settlement_gateway.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Adapter Gateway: Elexon settlement stack → domain entries.

This gateway sits on top of the transport client and provides the
``SettlementGateway`` port used by ingestion:

* Fetches the bid and offer stacks of one (date, period) and concatenates them.
* Maps provider rows to :class:`SettlementStackEntry`, preserving numeric
  precision through ``Decimal(str(...))``.
* Converts exhausted retries and malformed payloads into
  ``FetchResult(ok=False)`` so one bad period never aborts its siblings.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Protocol

from windcurtail.domain.entities.settlement import FetchResult, SettlementStackEntry
from windcurtail.domain.enums.pipeline import StackSide
from windcurtail.domain.exceptions.base import DomainError
from windcurtail.domain.exceptions.pipeline import DataIntegrityError
from windcurtail.infrastructure.logging.logger import get_json_logger

log = get_json_logger(__name__)


class _StackClient(Protocol):
    async def get_stack(
        self, side: StackSide, settlement_date: date, settlement_period: int
    ) -> Sequence[Mapping[str, Any]]: ...


def _to_decimal(value: Any, field: str) -> Decimal:
    if value is None or isinstance(value, bool):
        raise DataIntegrityError("bad_field", details={"field": field, "value": value})
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise DataIntegrityError("bad_field", details={"field": field, "value": value}) from exc


def map_stack_row(row: Mapping[str, Any], side: StackSide) -> SettlementStackEntry:
    """Map one provider row to a :class:`SettlementStackEntry`.

    Raises:
        DataIntegrityError: If the unit id or a numeric field is missing.
    """
    unit_id = row.get("id")
    if not isinstance(unit_id, str) or not unit_id:
        raise DataIntegrityError("bad_field", details={"field": "id", "value": unit_id})
    original_price = _to_decimal(row.get("originalPrice"), "originalPrice")
    final_raw = row.get("finalPrice")
    return SettlementStackEntry(
        unit_id=unit_id,
        volume=_to_decimal(row.get("volume"), "volume"),
        so_flag=bool(row.get("soFlag")),
        cadl_flag=bool(row.get("cadlFlag")),
        original_price=original_price,
        final_price=original_price if final_raw is None else _to_decimal(final_raw, "finalPrice"),
        side=side,
    )


class ElexonSettlementGateway:
    """Elexon adapter implementing the settlement fetch port."""

    def __init__(self, client: _StackClient) -> None:
        """Initialize the gateway.

        Args:
            client: Transport client exposing ``get_stack``.
        """
        self._client = client

    async def fetch(self, settlement_date: date, settlement_period: int) -> FetchResult:
        """Return both stacks of the period; ``ok=False`` when either side failed."""
        entries: list[SettlementStackEntry] = []
        try:
            for side in (StackSide.BID, StackSide.OFFER):
                rows = await self._client.get_stack(side, settlement_date, settlement_period)
                entries.extend(map_stack_row(row, side) for row in rows)
        except DomainError as exc:
            log.warning(
                "elexon.period_unavailable",
                extra={
                    "extra": {
                        "settlement_date": settlement_date.isoformat(),
                        "settlement_period": settlement_period,
                        "code": exc.code,
                        "reason": str(exc),
                        "details": exc.details,
                    }
                },
            )
            return FetchResult(
                settlement_date=settlement_date,
                settlement_period=settlement_period,
                ok=False,
                error=f"{exc.code}: {exc}",
            )
        return FetchResult(
            settlement_date=settlement_date,
            settlement_period=settlement_period,
            entries=tuple(entries),
        )
