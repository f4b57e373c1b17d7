# tests/unit/adapters/repositories/conftest.py
"""Recording AsyncSession double for SQL repository tests.

Every executed statement is kept so tests can assert on the PostgreSQL SQL
the repositories emit; results are pre-baked per ``execute()`` call.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any

import pytest
from sqlalchemy.dialects import postgresql


class _FakeScalars:
    def __init__(self, rows: Sequence[Any]) -> None:
        self._rows = list(rows)

    def all(self) -> list[Any]:
        return list(self._rows)


class _FakeResult:
    """Mimic the subset of SQLAlchemy Result used by the repositories."""

    def __init__(self, rows: Sequence[Any], rowcount: int = 0) -> None:
        self._rows = list(rows)
        self.rowcount = rowcount

    def one(self) -> Any:
        return self._rows[0]

    def all(self) -> list[Any]:
        return list(self._rows)

    def scalars(self) -> _FakeScalars:
        return _FakeScalars(self._rows)


class RecordingSession:
    """Minimal AsyncSession replacement.

    ``results`` holds one entry per ``execute()`` call: a sequence of rows,
    or an ``int`` standing for the rowcount of a DELETE.
    """

    def __init__(
        self, results: Iterable[Sequence[Any] | int] | None = None, get_result: Any = None
    ) -> None:
        self._results: list[Sequence[Any] | int] = list(results or [])
        self._get_result = get_result
        self.statements: list[Any] = []
        self.gets: list[tuple[Any, Any]] = []

    async def execute(self, stmt: Any) -> _FakeResult:
        self.statements.append(stmt)
        nxt = self._results.pop(0) if self._results else []
        if isinstance(nxt, int):
            return _FakeResult([], rowcount=nxt)
        return _FakeResult(nxt)

    async def get(self, model: Any, key: Any) -> Any:
        self.gets.append((model, key))
        return self._get_result

    def compiled(self, index: int) -> Any:
        return self.statements[index].compile(dialect=postgresql.dialect())

    def sql(self, index: int) -> str:
        return " ".join(str(self.compiled(index)).split())


@pytest.fixture()
def session_cls() -> type[RecordingSession]:
    return RecordingSession
