# Copyright (c)
# SPDX-License-Identifier: MIT
"""Settlement data gateway Protocols.

Synopsis:
    Domain-level Protocols (PEP 544) for the upstream inputs of the pipeline:
    settlement-stack fetches, network difficulty and in-scope unit identity.
    Concrete implementations live in the infrastructure layer.

Layer:
    domain/interfaces/gateways
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Protocol

from windcurtail.domain.entities.settlement import FetchResult


class SettlementGateway(Protocol):
    """Fetches the settlement stack of one (date, period)."""

    async def fetch(self, settlement_date: date, settlement_period: int) -> FetchResult:
        """Return the bid and offer entries for the period.

        Implementations never raise for per-period upstream failures; they
        return ``FetchResult(ok=False, error=...)`` once retries are spent.
        """
        ...


class DifficultyGateway(Protocol):
    """Resolves the network difficulty in effect on a date."""

    async def lookup(self, settlement_date: date) -> float:
        """Return the difficulty for ``settlement_date``."""
        ...


class UnitIdentity(Protocol):
    """Resolved view of in-scope units and their owners."""

    @property
    def valid_ids(self) -> frozenset[str]:
        """In-scope unit identifiers."""
        ...

    @property
    def lead_party_of(self) -> Mapping[str, str]:
        """Unit id to lead party name."""
        ...


class UnitResolver(Protocol):
    """Loads the unit registry (cached after the first call)."""

    def resolve(self) -> UnitIdentity:
        """Return the cached registry, loading it on first use."""
        ...
