# migrations/env.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Alembic Environment (migrations/env.py)

Purpose:
    Configure Alembic for windcurtail's SQLAlchemy models with deterministic
    behavior across offline and online (async) migration runs.

Design:
    - Resolves the database URL from the environment, then alembic.ini, then
      the application's ``Settings`` (which also reads ``.env``).
    - Uses the project Declarative Base for autogenerate (``target_metadata``).
    - Supports async engines for "online" migrations while keeping "offline"
      output stable and deterministic.
    - Emits masked connection information to the log (no credentials).

Environment variables:
    DATABASE_URL        Primary database URL (preferred).
    ECHO_SQL            If "1", enable SQL echo in online runs.
    ALEMBIC_SHOW_URL    If "1", log masked URL during runs.

Usage:
    # Offline (SQL script):
    alembic upgrade head --sql

    # Online (apply to DB):
    alembic -x show_url=1 upgrade head
"""

from __future__ import annotations

import asyncio
import logging
import logging.config
import os
from collections.abc import Mapping
from typing import Any
from urllib.parse import urlparse, urlunparse

from alembic import context
from sqlalchemy import pool
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from windcurtail.config.settings import Settings
from windcurtail.infrastructure.database.models import curtailment as _curtailment  # noqa: F401
from windcurtail.infrastructure.database.models import mining as _mining  # noqa: F401
from windcurtail.infrastructure.database.models import summaries as _summaries  # noqa: F401
from windcurtail.infrastructure.database.models.base import metadata as BaseMetadata

config = context.config

if config.config_file_name is not None:
    logging.config.fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

_VERSION_TABLE = "alembic_version"


def _xargs() -> Mapping[str, str]:
    """Return Alembic -x key=value arguments as a mapping."""
    return dict(getattr(config, "x", {}) or {})


def _mask_url(url: str) -> str:
    """Return a masked representation of a database URL for safe logging."""
    try:
        parts = urlparse(url)
        user = parts.username or ""
        host = parts.hostname or ""
        port = f":{parts.port}" if parts.port else ""
        auth = f"{user}:****@" if user else ""
        netloc_masked = f"{auth}{host}{port}"
        return urlunparse((parts.scheme, netloc_masked, parts.path or "", "", "", ""))
    except ValueError as exc:  # pragma: no cover
        logger.debug("url_mask_failed", extra={"reason": str(exc)})
        return "<masked>"


def _get_db_url() -> str:
    """Resolve the database URL.

    Resolution order:
        1) ``DATABASE_URL``
        2) alembic.ini -> sqlalchemy.url
        3) ``Settings().database_url``
    """
    env_url = os.getenv("DATABASE_URL")
    if env_url:
        return env_url

    ini_url = config.get_main_option("sqlalchemy.url")
    if ini_url:
        return ini_url

    return Settings().database_url


def _maybe_log_url(url: str) -> None:
    x = _xargs()
    if x.get("show_url") == "1" or os.getenv("ALEMBIC_SHOW_URL") == "1":
        logger.info("Using DATABASE_URL (masked): %s", _mask_url(url))


# Alembic's target metadata used for autogenerate.
target_metadata = BaseMetadata


def run_migrations_offline() -> None:
    """Run migrations in 'offline' mode (SQL script output)."""
    url = _get_db_url()
    _maybe_log_url(url)

    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=True,
        version_table=_VERSION_TABLE,
    )

    with context.begin_transaction():
        context.run_migrations()


def _online_engine_kwargs() -> dict[str, Any]:
    """Return keyword arguments for creating an async engine."""
    echo_sql = (os.getenv("ECHO_SQL") == "1") or (
        (config.get_main_option("echo_sql") or "").strip().lower() == "true"
    )
    return {
        "echo": echo_sql,
        "poolclass": pool.NullPool,
    }


def _configure_and_run(connection: Connection) -> None:
    """Configure Alembic context with a live connection and run migrations."""
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        compare_type=True,
        compare_server_default=True,
        version_table=_VERSION_TABLE,
    )

    with context.begin_transaction():
        context.run_migrations()


async def _run_migrations_async() -> None:
    """Run migrations in 'online' mode using an async engine."""
    url = _get_db_url()
    _maybe_log_url(url)

    connectable: AsyncEngine = create_async_engine(url, **_online_engine_kwargs())

    async with connectable.connect() as connection:
        await connection.run_sync(_configure_and_run)

    await connectable.dispose()


def run_migrations_online() -> None:
    """Entry point used by Alembic for online migrations (async safe)."""
    asyncio.run(_run_migrations_async())


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
