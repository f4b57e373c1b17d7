# Copyright (c)
# SPDX-License-Identifier: MIT
"""Failure classification (Domain Service).

Maps raised exceptions onto :class:`FailureKind` so batch processing can
decide between retrying a date and recording it as failed.

Recognition is structural: domain errors carry a ``retryable`` flag, and
driver errors are recognised by attributes and message signatures (the
SQLAlchemy ``connection_invalidated`` flag, PostgreSQL SQLSTATE codes,
timeout class names) so this module imports no transport or ORM package.
"""

from __future__ import annotations

import asyncio

from windcurtail.domain.enums.pipeline import FailureKind
from windcurtail.domain.exceptions.base import DomainError

_RETRYABLE_SQLSTATES = frozenset({"40P01", "40001", "08000", "08003", "08006", "57P01"})
_RETRYABLE_SIGNATURES = (
    "deadlock detected",
    "could not serialize access",
    "connection reset",
    "connection refused",
    "connection was closed",
    "connection is closed",
    "server closed the connection",
    "terminating connection",
    "econnreset",
    "too many clients",
)
_TIMEOUT_SIGNATURES = ("timeout", "timed out", "canceling statement due to statement timeout")


def _sqlstate(exc: BaseException) -> str | None:
    for candidate in (exc, getattr(exc, "orig", None)):
        if candidate is None:
            continue
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if isinstance(code, str):
            return code
    return None


def classify_failure(exc: BaseException) -> FailureKind:
    """Return how a failure of ``exc`` should be handled.

    Args:
        exc: The raised exception.

    Returns:
        ``TIMEOUT`` and ``RETRYABLE`` are worth another attempt; ``FATAL``
        is recorded without retry.
    """
    if isinstance(exc, asyncio.TimeoutError | TimeoutError):
        return FailureKind.TIMEOUT
    if isinstance(exc, DomainError):
        return FailureKind.RETRYABLE if exc.retryable else FailureKind.FATAL

    name = type(exc).__name__.lower()
    message = str(exc).lower()
    if "timeout" in name or any(sig in message for sig in _TIMEOUT_SIGNATURES):
        return FailureKind.TIMEOUT
    if getattr(exc, "connection_invalidated", False):
        return FailureKind.RETRYABLE
    if _sqlstate(exc) in _RETRYABLE_SQLSTATES:
        return FailureKind.RETRYABLE
    if isinstance(exc, ConnectionError) or "operationalerror" in name:
        return FailureKind.RETRYABLE
    if any(sig in message for sig in _RETRYABLE_SIGNATURES):
        return FailureKind.RETRYABLE
    return FailureKind.FATAL


def is_retryable(exc: BaseException) -> bool:
    """Return True when ``exc`` is worth another attempt."""
    return classify_failure(exc) is not FailureKind.FATAL
