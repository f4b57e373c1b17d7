# src/windcurtail/adapters/uow/sqlalchemy_uow.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""SQLAlchemy-backed Unit of Work implementation.

Purpose:
    Concrete implementation of the application-layer UnitOfWork protocol
    using SQLAlchemy's AsyncSession. Repositories are resolved by their
    domain interface type and share the UoW's session.

Layer:
    adapters/uow
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from types import TracebackType
from typing import Any

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from windcurtail.adapters.repositories.calculation_repository import (
    SqlAlchemyCalculationRepository,
)
from windcurtail.adapters.repositories.coverage_repository import SqlAlchemyCoverageRepository
from windcurtail.adapters.repositories.curtailment_repository import (
    SqlAlchemyCurtailmentRepository,
    SqlAlchemyUnitOwnershipRepository,
)
from windcurtail.adapters.repositories.summary_repository import SqlAlchemySummaryRepository
from windcurtail.application.uow import UnitOfWork, UnitOfWorkFactory
from windcurtail.domain.enums.pipeline import FailureKind
from windcurtail.domain.exceptions.pipeline import DatabaseError
from windcurtail.domain.interfaces.repositories.calculation_repository import (
    CalculationRepository,
)
from windcurtail.domain.interfaces.repositories.coverage_repository import CoverageRepository
from windcurtail.domain.interfaces.repositories.curtailment_repository import (
    CurtailmentRepository,
    UnitOwnershipRepository,
)
from windcurtail.domain.interfaces.repositories.summary_repository import SummaryRepository
from windcurtail.domain.services.failure_classifier import classify_failure


def _as_database_error(exc: BaseException | None) -> DatabaseError | None:
    """Wrap retryable driver failures (deadlock, lost connection) in :class:`DatabaseError`.

    Timeouts stay untouched so batch callers still count them as timeouts.
    """
    if not isinstance(exc, DBAPIError) or classify_failure(exc) is not FailureKind.RETRYABLE:
        return None
    orig = getattr(exc, "orig", None)
    return DatabaseError(
        str(orig or exc),
        details={
            "sqlstate": getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None),
            "connection_invalidated": bool(exc.connection_invalidated),
        },
    )


_DEFAULT_FACTORIES: dict[type[Any], Callable[[AsyncSession], Any]] = {
    CurtailmentRepository: SqlAlchemyCurtailmentRepository,
    UnitOwnershipRepository: SqlAlchemyUnitOwnershipRepository,
    CalculationRepository: SqlAlchemyCalculationRepository,
    SummaryRepository: SqlAlchemySummaryRepository,
    CoverageRepository: SqlAlchemyCoverageRepository,
}


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy-based UnitOfWork implementation.

    Usage:

        async with SqlAlchemyUnitOfWork(session_factory=sm) as uow:
            repo = uow.get_repository(CurtailmentRepository)
            ...
            await uow.commit()
    """

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        repo_factories: Mapping[type[Any], Callable[[AsyncSession], Any]] | None = None,
    ) -> None:
        """Initialize the UnitOfWork.

        Args:
            session_factory: Factory for new AsyncSession instances.
            repo_factories: Optional overrides of the interface → repository wiring.
        """
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self._repo_factories: dict[type[Any], Callable[[AsyncSession], Any]] = {
            **_DEFAULT_FACTORIES,
            **(dict(repo_factories) if repo_factories is not None else {}),
        }
        self._repos: dict[type[Any], Any] = {}
        self._committed = False
        self._rolled_back = False

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        """Open a new AsyncSession.

        Raises:
            RuntimeError: If a session is already active (nested usage).
        """
        if self._session is not None:
            raise RuntimeError("UnitOfWork is already active; nested usage is not supported.")
        self._session = self._session_factory()
        self._committed = False
        self._rolled_back = False
        self._repos.clear()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> bool | None:
        """Roll back on error, then close the session.

        Exceptions propagate; retryable driver failures are re-raised as
        :class:`DatabaseError`.
        """
        try:
            if exc_type is not None and not self._rolled_back:
                await self.rollback()
        finally:
            if self._session is not None:
                await self._session.close()
                self._session = None
            self._repos.clear()
        translated = _as_database_error(exc)
        if translated is not None:
            raise translated from exc
        return None

    async def commit(self) -> None:
        """Commit the current transaction (no-op after commit/rollback).

        Raises:
            RuntimeError: If called without an active session.
        """
        if self._session is None:
            raise RuntimeError("Cannot commit: UnitOfWork has no active session.")
        if self._committed or self._rolled_back:
            return
        try:
            await self._session.commit()
        except DBAPIError as exc:
            translated = _as_database_error(exc)
            if translated is None:
                raise
            raise translated from exc
        self._committed = True

    async def rollback(self) -> None:
        """Roll back the current transaction (no-op after commit/rollback)."""
        if self._session is None or self._rolled_back or self._committed:
            return
        await self._session.rollback()
        self._rolled_back = True

    def get_repository(self, repo_type: type[Any]) -> Any:
        """Return the repository bound to the active session for ``repo_type``.

        Raises:
            RuntimeError: If called outside of an active UnitOfWork context.
            KeyError: If no factory is registered for ``repo_type``.
        """
        if self._session is None:
            raise RuntimeError(
                "get_repository() called outside of an active UnitOfWork scope. "
                "Use 'async with uow:' before requesting repositories.",
            )
        if repo_type in self._repos:
            return self._repos[repo_type]
        try:
            factory = self._repo_factories[repo_type]
        except KeyError as exc:
            raise KeyError(f"No repository factory registered for type {repo_type!r}.") from exc
        repo = factory(self._session)
        self._repos[repo_type] = repo
        return repo


def sqlalchemy_uow_factory(session_factory: async_sessionmaker[AsyncSession]) -> UnitOfWorkFactory:
    """Return a zero-arg factory producing fresh UnitOfWork instances."""
    return lambda: SqlAlchemyUnitOfWork(session_factory=session_factory)
