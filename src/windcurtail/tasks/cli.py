# Copyright (c)
# SPDX-License-Identifier: MIT
"""windcurtail CLI: operational commands (status, reconcile, repair).

Commands:
    status                       Dataset-wide reconciliation status.
    reconcile [BATCH_SIZE]       Reprocess every incomplete date.
    date DATE [--full] [--verify]
                                 Process one date (optionally drift-checked first).
    range START END [BATCH_SIZE] Process every date in an inclusive range.
    critical DATE                Repair a stubborn date one triple at a time.
    spot-fix DATE PERIOD UNIT    Recompute one (period, unit) combination.
    rollup DATE                  Recompute the summaries touched by a date.
    resume                       Continue the last checkpointed batch run.

Every command prints a JSON result. Exit code is 0 on success and 1 on an
unrecoverable error; dates that fail inside a batch only show up in the
printed summary.

Environment:
    DATABASE_URL        Async SQLAlchemy URL.
    UNIT_MAPPING_PATH   JSON unit mapping file.
    ELEXON_*            Upstream transport settings.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from datetime import date
from typing import TypeVar

import typer
from pydantic import BaseModel

from windcurtail.application.schemas.dto.pipeline import (
    BatchSummaryDTO,
    DateProcessingResultDTO,
    ReconciliationStatusDTO,
)
from windcurtail.config.settings import get_settings
from windcurtail.dependencies.pipeline import Pipeline, open_pipeline
from windcurtail.domain.enums.pipeline import IngestMode
from windcurtail.domain.services.settlement_calendar import date_range, parse_settlement_date
from windcurtail.infrastructure.logging.logger import configure_root_logging, get_json_logger

log = get_json_logger(__name__)

app = typer.Typer(add_completion=False, no_args_is_help=True)

T = TypeVar("T")


def _parse_date(value: str) -> date:
    try:
        return parse_settlement_date(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _echo(result: BaseModel | None) -> None:
    if result is None:
        typer.echo("{}")
        return
    typer.echo(result.model_dump_json(indent=2))


def _run(command: str, body: Callable[[Pipeline], Awaitable[T]]) -> T:
    """Run ``body`` against a freshly wired pipeline; exit 1 on any error."""
    try:
        settings = get_settings()
    except RuntimeError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    configure_root_logging(settings.log_level)

    async def _main() -> T:
        async with open_pipeline(settings) as pipeline:
            return await body(pipeline)

    try:
        return asyncio.run(_main())
    except Exception as exc:  # noqa: BLE001
        log.exception(
            "cli.command_failed",
            extra={"extra": {"command": command, "reason": str(exc)}},
        )
        typer.echo(f"{command} failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc


@app.command("status")
def status() -> None:
    """Print overall coverage and the incomplete dates, largest gap first."""
    _echo(_run("status", lambda p: p.status.execute()))


@app.command("reconcile")
def reconcile(
    batch_size: int | None = typer.Argument(None, min=1, help="Dates per batch."),  # noqa: B008
) -> None:
    """Reprocess every date whose coverage is incomplete."""

    async def _body(p: Pipeline) -> BatchSummaryDTO | None:
        current: ReconciliationStatusDTO = await p.status.execute()
        dates = [c.settlement_date for c in current.incomplete_dates]
        if not dates:
            log.info("reconcile.nothing_to_do")
            return None
        return await p.batch(batch_size).execute(dates)

    _echo(_run("reconcile", _body))


@app.command("date")
def process_date(
    day: str = typer.Argument(..., metavar="YYYY-MM-DD"),  # noqa: B008
    full: bool = typer.Option(False, "--full", help="Delete and re-ingest the date."),  # noqa: B008
    verify: bool = typer.Option(  # noqa: B008
        False, "--verify", help="Sample upstream first; re-ingest fully on drift."
    ),
) -> None:
    """Ingest, calculate and roll up a single date."""
    settlement_date = _parse_date(day)

    async def _body(p: Pipeline) -> DateProcessingResultDTO:
        mode = IngestMode.FULL_REINGEST if full else IngestMode.UPSERT
        if verify and not full:
            report = await p.verify.execute(settlement_date)
            if report.needs_reingest:
                mode = IngestMode.FULL_REINGEST
        return await p.process_date.execute(settlement_date, mode=mode)

    _echo(_run("date", _body))


@app.command("range")
def process_range(
    start: str = typer.Argument(..., metavar="START"),  # noqa: B008
    end: str = typer.Argument(..., metavar="END"),  # noqa: B008
    batch_size: int | None = typer.Argument(None, min=1, help="Dates per batch."),  # noqa: B008
) -> None:
    """Process every date from START to END inclusive."""
    first, last = _parse_date(start), _parse_date(end)
    if last < first:
        raise typer.BadParameter("END must not be before START")
    dates = list(date_range(first, last))
    _echo(_run("range", lambda p: p.batch(batch_size).execute(dates)))


@app.command("critical")
def critical(day: str = typer.Argument(..., metavar="YYYY-MM-DD")) -> None:  # noqa: B008
    """Repair a date's missing calculations one row at a time."""
    settlement_date = _parse_date(day)
    _echo(_run("critical", lambda p: p.critical.execute(settlement_date)))


@app.command("spot-fix")
def spot_fix(
    day: str = typer.Argument(..., metavar="YYYY-MM-DD"),  # noqa: B008
    period: int = typer.Argument(..., min=1, max=48),  # noqa: B008
    unit: str = typer.Argument(...),  # noqa: B008
) -> None:
    """Recompute one (date, period, unit) combination for every device profile."""
    settlement_date = _parse_date(day)
    _echo(_run("spot-fix", lambda p: p.spot_fix.execute(settlement_date, period, unit)))


@app.command("rollup")
def rollup(day: str = typer.Argument(..., metavar="YYYY-MM-DD")) -> None:  # noqa: B008
    """Recompute daily, monthly and yearly summaries for a date."""
    settlement_date = _parse_date(day)
    _echo(_run("rollup", lambda p: p.rollup.for_date(settlement_date)))


@app.command("resume")
def resume() -> None:
    """Continue the last checkpointed run with its pending dates."""
    _echo(_run("resume", lambda p: p.batch().resume()))


if __name__ == "__main__":
    app()
