# src/windcurtail/infrastructure/logging/logger.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Structured JSON logging utilities.

This module exposes an idempotent root configurator and a per-module logger
factory that produce JSON logs suitable for ingestion by log pipelines.

Features:
    * Stable keys: ``ts``, ``level``, ``logger``, ``message``.
    * Automatic enrichment with ``run_id`` and ``settlement_date`` via contextvars,
      so every line emitted while a batch or a single date is being processed
      can be correlated.
    * Fallback enrichment via record attributes or environment variables.

Typical usage:
    configure_root_logging()
    log = get_json_logger(__name__)
"""

from __future__ import annotations

import json
import logging
import os
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any

__all__ = [
    "configure_root_logging",
    "get_json_logger",
    "set_run_context",
    "get_run_id",
    "get_settlement_date",
]

_RUN_ID_ENV_KEY = "RUN_ID"

# Per-task correlation context (task-local via contextvars).
_RUN_ID_CTX: ContextVar[str | None] = ContextVar("windcurtail_run_id", default=None)
_DATE_CTX: ContextVar[str | None] = ContextVar("windcurtail_settlement_date", default=None)


def set_run_context(*, run_id: str | None = None, settlement_date: str | None = None) -> None:
    """Set correlation identifiers on the current context.

    Args:
        run_id: Identifier of the batch/reconciliation run, if any.
        settlement_date: ISO date currently being processed, if any.

    Notes:
        Additive: passing only one argument updates that value and leaves the
        other unchanged. Each asyncio task gets its own copy of the context,
        so concurrent dates never overwrite each other.
    """
    if run_id is not None:
        _RUN_ID_CTX.set(run_id)
    if settlement_date is not None:
        _DATE_CTX.set(settlement_date)


def get_run_id() -> str | None:
    """Return the current run id from contextvars, if any."""
    return _RUN_ID_CTX.get(None)


def get_settlement_date() -> str | None:
    """Return the settlement date bound to the current context, if any."""
    return _DATE_CTX.get(None)


class _JsonFormatter(logging.Formatter):
    """JSON log formatter emitting stable keys and optional extras."""

    def format(self, record: logging.LogRecord) -> str:
        """Format a log record as a JSON object.

        Args:
            record: Logging record.

        Returns:
            JSON-encoded log line.
        """
        ts = datetime.now(tz=UTC).isoformat()
        payload: dict[str, Any] = {
            "ts": ts,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Run id enrichment: record attribute, then contextvar, then env.
        try:
            rid: str | None = (
                getattr(record, "run_id", None)
                or _RUN_ID_CTX.get(None)
                or os.getenv(_RUN_ID_ENV_KEY)
            )
            if rid:
                payload["run_id"] = rid
        except Exception as exc:  # pragma: no cover (defensive)
            payload["run_id_error"] = str(exc)

        settlement_date = getattr(record, "settlement_date", None) or _DATE_CTX.get(None)
        if settlement_date:
            payload["settlement_date"] = settlement_date

        # Exceptions: guard against None in exc_info tuple.
        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            if exc_type is not None:
                payload["exc_type"] = exc_type.__name__
            if exc_value is not None:
                payload["exc_message"] = str(exc_value)

        # Extra dict, if any.
        extra = getattr(record, "extra", None)
        if isinstance(extra, dict):
            payload.update(extra)

        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def configure_root_logging(level: str | int | None = None) -> None:
    """Initialize the root logger with a JSON stream handler (idempotent).

    Args:
        level: Logging level or level name. If ``None``, use env ``LOG_LEVEL`` or ``INFO``.
    """
    root = logging.getLogger()

    env_level = os.getenv("LOG_LEVEL")
    resolved: int | str = (
        level if level is not None else (env_level.upper() if env_level else "INFO")
    )
    root.setLevel(resolved)

    if root.handlers:
        # Already configured; prevent duplicate handlers.
        return

    handler = logging.StreamHandler()
    handler.setFormatter(_JsonFormatter())
    root.addHandler(handler)


def get_json_logger(name: str) -> logging.Logger:
    """Return a module-specific logger backed by the JSON root handler.

    This does *not* implicitly configure the root logger. Call
    :func:`configure_root_logging` once at startup for global defaults.

    Args:
        name: Logger name, typically ``__name__`` of the caller.

    Returns:
        Configured logger.
    """
    logger = logging.getLogger(name)
    # Delegate formatting and level to the root logger.
    logger.propagate = True
    return logger
