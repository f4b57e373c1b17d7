# tests/unit/conftest.py
"""In-memory fakes for use-case tests.

The fakes mirror the SQL repositories' semantics closely enough for the
pipeline invariants (natural-key upserts, orphan deletion, summary cascade)
to be exercised without a database.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any

import pytest

from windcurtail.domain.entities.calculation_record import CalculationRecord
from windcurtail.domain.entities.curtailment_record import CurtailmentRecord
from windcurtail.domain.entities.settlement import FetchResult, SettlementStackEntry
from windcurtail.domain.entities.summaries import (
    DailySummary,
    MiningSummary,
    MonthlySummary,
    YearlySummary,
)
from windcurtail.domain.enums.pipeline import SummaryGranularity
from windcurtail.domain.interfaces.repositories.calculation_repository import (
    CalculationRepository,
)
from windcurtail.domain.interfaces.repositories.coverage_repository import (
    CoverageRepository,
    DateCoverageRow,
)
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
    UnitOwnershipRepository,
)
from windcurtail.domain.interfaces.repositories.summary_repository import SummaryRepository
from windcurtail.infrastructure.identity.unit_registry import UnitRegistry


@dataclass
class InMemoryStore:
    facts: dict[tuple[date, int, str], CurtailmentRecord] = field(default_factory=dict)
    owners: dict[str, str] = field(default_factory=dict)
    calcs: dict[tuple[date, int, str, str], CalculationRecord] = field(default_factory=dict)
    daily: dict[date, DailySummary] = field(default_factory=dict)
    monthly: dict[str, MonthlySummary] = field(default_factory=dict)
    yearly: dict[str, YearlySummary] = field(default_factory=dict)
    mining: dict[tuple[SummaryGranularity, str, str], Decimal] = field(default_factory=dict)
    commits: int = 0
    upsert_batches: list[int] = field(default_factory=list)
    fail_calc_upsert: Callable[[Sequence[CalculationRecord]], bool] | None = None


class _FakeCurtailmentRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.s = store

    async def upsert_records(self, records: Sequence[CurtailmentRecord]) -> int:
        for r in records:
            self.s.facts[r.key] = r
        return len(records)

    async def delete_for_date(self, settlement_date: date) -> int:
        keys = [k for k in self.s.facts if k[0] == settlement_date]
        for k in keys:
            del self.s.facts[k]
        return len(keys)

    async def delete_for_period(self, settlement_date: date, settlement_period: int) -> int:
        keys = [k for k in self.s.facts if k[:2] == (settlement_date, settlement_period)]
        for k in keys:
            del self.s.facts[k]
        return len(keys)

    async def list_for_date(self, settlement_date: date) -> list[CurtailmentRecord]:
        return [self.s.facts[k] for k in sorted(self.s.facts) if k[0] == settlement_date]

    async def get(
        self, settlement_date: date, settlement_period: int, unit_id: str
    ) -> CurtailmentRecord | None:
        return self.s.facts.get((settlement_date, settlement_period, unit_id))


class _FakeOwnershipRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.s = store

    async def replace_all(self, lead_party_of: Mapping[str, str]) -> int:
        self.s.owners = dict(lead_party_of)
        return len(self.s.owners)

    async def lead_party_of(self, unit_ids: Sequence[str]) -> dict[str, str]:
        return {u: self.s.owners[u] for u in unit_ids if u in self.s.owners}


class _FakeCalculationRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.s = store

    async def upsert_calculations(self, rows: Sequence[CalculationRecord]) -> int:
        if self.s.fail_calc_upsert is not None and self.s.fail_calc_upsert(rows):
            raise TimeoutError("statement timeout")
        self.s.upsert_batches.append(len(rows))
        for r in rows:
            self.s.calcs[r.key] = r
        return len(rows)

    async def list_triples(self, settlement_date: date) -> set[tuple[int, str, str]]:
        return {(k[1], k[2], k[3]) for k in self.s.calcs if k[0] == settlement_date}

    async def delete_orphans(self, settlement_date: date, keep: set[tuple[int, str]]) -> int:
        keys = [k for k in self.s.calcs if k[0] == settlement_date and (k[1], k[2]) not in keep]
        for k in keys:
            del self.s.calcs[k]
        return len(keys)

    async def delete_combination(
        self, settlement_date: date, settlement_period: int, unit_id: str
    ) -> int:
        keys = [k for k in self.s.calcs if k[:3] == (settlement_date, settlement_period, unit_id)]
        for k in keys:
            del self.s.calcs[k]
        return len(keys)


class _FakeSummaryRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.s = store

    async def recompute_daily(self, summary_date: date) -> DailySummary | None:
        facts = [f for k, f in self.s.facts.items() if k[0] == summary_date]
        if not facts:
            self.s.daily.pop(summary_date, None)
            return None
        row = DailySummary(
            summary_date=summary_date,
            total_energy_mwh=sum((f.volume for f in facts), Decimal(0)),
            total_payment=abs(sum((f.payment for f in facts), Decimal(0))),
        )
        self.s.daily[summary_date] = row
        return row

    async def recompute_monthly(self, year_month: str) -> MonthlySummary | None:
        days = [d for k, d in self.s.daily.items() if k.isoformat()[:7] == year_month]
        if not days:
            self.s.monthly.pop(year_month, None)
            return None
        row = MonthlySummary(
            year_month=year_month,
            total_energy_mwh=sum((d.total_energy_mwh for d in days), Decimal(0)),
            total_payment=sum((d.total_payment for d in days), Decimal(0)),
        )
        self.s.monthly[year_month] = row
        return row

    async def recompute_yearly(self, year: str) -> YearlySummary | None:
        months = [m for k, m in self.s.monthly.items() if k[:4] == year]
        if not months:
            self.s.yearly.pop(year, None)
            return None
        row = YearlySummary(
            year=year,
            total_energy_mwh=sum((m.total_energy_mwh for m in months), Decimal(0)),
            total_payment=sum((m.total_payment for m in months), Decimal(0)),
        )
        self.s.yearly[year] = row
        return row

    async def recompute_mining(
        self, granularity: SummaryGranularity, period_key: str
    ) -> list[MiningSummary]:
        totals: dict[str, Decimal] = {}
        if granularity is SummaryGranularity.DAILY:
            for k, r in self.s.calcs.items():
                if k[0].isoformat() == period_key:
                    totals[r.device_model] = totals.get(r.device_model, Decimal(0)) + Decimal(
                        str(r.mined_units)
                    )
        else:
            finer = (
                SummaryGranularity.DAILY
                if granularity is SummaryGranularity.MONTHLY
                else SummaryGranularity.MONTHLY
            )
            for (g, key, model), value in self.s.mining.items():
                if g is finer and key.startswith(f"{period_key}-"):
                    totals[model] = totals.get(model, Decimal(0)) + value
        for k in [k for k in self.s.mining if k[:2] == (granularity, period_key)]:
            del self.s.mining[k]
        for model, value in totals.items():
            self.s.mining[(granularity, period_key, model)] = value
        return [
            MiningSummary(
                granularity=granularity, period_key=period_key, device_model=m, mined_units=v
            )
            for m, v in sorted(totals.items())
        ]


class _FakeCoverageRepo:
    def __init__(self, store: InMemoryStore) -> None:
        self.s = store

    async def coverage_rows(self, models: Sequence[str]) -> list[DateCoverageRow]:
        rows: list[DateCoverageRow] = []
        for day in sorted({k[0] for k in self.s.facts}):
            combos = {
                (k[1], k[2]) for k, f in self.s.facts.items() if k[0] == day and f.volume != 0
            }
            by_model = {m: 0 for m in models}
            for k in self.s.calcs:
                if k[0] == day and k[3] in by_model and (k[1], k[2]) in combos:
                    by_model[k[3]] += 1
            rows.append(
                DateCoverageRow(
                    settlement_date=day,
                    curtailment_records=sum(1 for k in self.s.facts if k[0] == day),
                    combinations=len(combos),
                    actual_by_model=by_model,
                )
            )
        return rows


class FakeUow:
    """UnitOfWork double resolving repositories by interface type."""

    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self._repos: dict[type[Any], Any] = {
            CurtailmentRepository: _FakeCurtailmentRepo(store),
            UnitOwnershipRepository: _FakeOwnershipRepo(store),
            CalculationRepository: _FakeCalculationRepo(store),
            SummaryRepository: _FakeSummaryRepo(store),
            CoverageRepository: _FakeCoverageRepo(store),
        }
        self.rolled_back = False

    async def __aenter__(self) -> FakeUow:
        return self

    async def __aexit__(self, exc_type: Any, exc: Any, tb: Any) -> None:
        return None

    async def commit(self) -> None:
        self.store.commits += 1

    async def rollback(self) -> None:
        self.rolled_back = True

    def get_repository(self, repo_type: type[Any]) -> Any:
        return self._repos[repo_type]


class FakeGateway:
    """SettlementGateway double returning canned entries per period."""

    def __init__(
        self,
        entries: Mapping[int, Sequence[SettlementStackEntry]] | None = None,
        *,
        failing: Mapping[int, Exception | str] | None = None,
    ) -> None:
        self.entries = dict(entries or {})
        self.failing = dict(failing or {})
        self.calls: list[tuple[date, int]] = []

    async def fetch(self, settlement_date: date, settlement_period: int) -> FetchResult:
        self.calls.append((settlement_date, settlement_period))
        failure = self.failing.get(settlement_period)
        if isinstance(failure, Exception):
            raise failure
        if failure is not None:
            return FetchResult(
                settlement_date=settlement_date,
                settlement_period=settlement_period,
                ok=False,
                error=failure,
            )
        return FetchResult(
            settlement_date=settlement_date,
            settlement_period=settlement_period,
            entries=tuple(self.entries.get(settlement_period, ())),
        )


class FakeUnits:
    def __init__(self, mapping: Mapping[str, str]) -> None:
        self.registry = UnitRegistry(valid_ids=frozenset(mapping), lead_party_of=dict(mapping))

    def resolve(self) -> UnitRegistry:
        return self.registry


class FixedDifficulty:
    def __init__(self, value: float = 100e12) -> None:
        self.value = value

    async def lookup(self, settlement_date: date) -> float:
        return self.value


def curtailed(unit_id: str, volume: str, price: str, *, so: bool = True) -> SettlementStackEntry:
    """Build an accepted stack entry (negative volume means turned down)."""
    return SettlementStackEntry(
        unit_id=unit_id,
        volume=Decimal(volume),
        so_flag=so,
        cadl_flag=False,
        original_price=Decimal(price),
        final_price=Decimal(price),
    )


def fact(
    day: date, period: int, unit_id: str, volume: str = "10", price: str = "50"
) -> CurtailmentRecord:
    vol = Decimal(volume)
    return CurtailmentRecord(
        settlement_date=day,
        settlement_period=period,
        unit_id=unit_id,
        volume=vol,
        payment=vol * Decimal(price),
        original_price=Decimal(price),
        final_price=Decimal(price),
        so_flag=True,
        cadl_flag=False,
    )


@pytest.fixture()
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture()
def uow_factory(store: InMemoryStore) -> Callable[[], FakeUow]:
    return lambda: FakeUow(store)


@pytest.fixture()
def helpers() -> Any:
    """Expose the builders and fakes to test modules without package imports."""

    class _Helpers:
        FakeGateway = FakeGateway
        FakeUnits = FakeUnits
        FixedDifficulty = FixedDifficulty
        curtailed = staticmethod(curtailed)
        fact = staticmethod(fact)

    return _Helpers
