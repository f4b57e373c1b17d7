# tests/unit/adapters/uow/test_sqlalchemy_uow.py
from __future__ import annotations

from typing import Any

import pytest
from sqlalchemy.exc import OperationalError

from windcurtail.adapters.repositories.curtailment_repository import (
    SqlAlchemyCurtailmentRepository,
)
from windcurtail.adapters.uow import SqlAlchemyUnitOfWork, sqlalchemy_uow_factory
from windcurtail.application.uow import run_in_uow
from windcurtail.domain.exceptions.pipeline import DatabaseError
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
)


class _FakeSession:
    def __init__(self, commit_error: Exception | None = None) -> None:
        self.committed = False
        self.rolled_back = False
        self.closed = False
        self.commit_error = commit_error

    async def commit(self) -> None:
        if self.commit_error is not None:
            raise self.commit_error
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def close(self) -> None:
        self.closed = True


class _FakeSessionFactory:
    def __init__(self, commit_error: Exception | None = None) -> None:
        self.sessions: list[_FakeSession] = []
        self.commit_error = commit_error

    def __call__(self) -> Any:
        session = _FakeSession(self.commit_error)
        self.sessions.append(session)
        return session


@pytest.mark.asyncio
async def test_commit_and_close() -> None:
    factory = _FakeSessionFactory()
    async with SqlAlchemyUnitOfWork(session_factory=factory) as uow:  # type: ignore[arg-type]
        repo = uow.get_repository(CurtailmentRepository)
        assert isinstance(repo, SqlAlchemyCurtailmentRepository)
        assert uow.get_repository(CurtailmentRepository) is repo
        await uow.commit()

    session = factory.sessions[0]
    assert session.committed and session.closed and not session.rolled_back


@pytest.mark.asyncio
async def test_error_rolls_back_and_propagates() -> None:
    factory = _FakeSessionFactory()
    uow = SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]

    async def _boom(tx: Any) -> None:
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await run_in_uow(uow, _boom)

    session = factory.sessions[0]
    assert session.rolled_back and session.closed and not session.committed


@pytest.mark.asyncio
async def test_repository_outside_scope_and_unknown_type() -> None:
    uow = SqlAlchemyUnitOfWork(session_factory=_FakeSessionFactory())  # type: ignore[arg-type]
    with pytest.raises(RuntimeError):
        uow.get_repository(CurtailmentRepository)
    async with uow:
        with pytest.raises(KeyError):
            uow.get_repository(int)


def test_factory_builds_fresh_units() -> None:
    make = sqlalchemy_uow_factory(_FakeSessionFactory())  # type: ignore[arg-type]
    assert make() is not make()


class _PgError(Exception):
    def __init__(self, message: str, sqlstate: str) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def _driver_error(message: str, sqlstate: str) -> OperationalError:
    return OperationalError("INSERT INTO mining_calculations ...", {}, _PgError(message, sqlstate))


@pytest.mark.asyncio
async def test_deadlock_in_scope_is_raised_as_database_error() -> None:
    factory = _FakeSessionFactory()
    uow = SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]

    with pytest.raises(DatabaseError) as info:
        async with uow:
            raise _driver_error("deadlock detected", "40P01")

    assert info.value.retryable
    assert info.value.details["sqlstate"] == "40P01"
    assert isinstance(info.value.__cause__, OperationalError)
    assert factory.sessions[0].rolled_back and factory.sessions[0].closed


@pytest.mark.asyncio
async def test_lost_connection_on_commit_is_raised_as_database_error() -> None:
    factory = _FakeSessionFactory(_driver_error("server closed the connection", "08006"))

    with pytest.raises(DatabaseError):
        async with SqlAlchemyUnitOfWork(session_factory=factory) as uow:  # type: ignore[arg-type]
            await uow.commit()


@pytest.mark.asyncio
async def test_statement_timeout_keeps_driver_error() -> None:
    factory = _FakeSessionFactory()
    uow = SqlAlchemyUnitOfWork(session_factory=factory)  # type: ignore[arg-type]

    with pytest.raises(OperationalError):
        async with uow:
            raise _driver_error("canceling statement due to statement timeout", "57014")
