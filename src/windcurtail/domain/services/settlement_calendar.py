# Copyright (c)
# SPDX-License-Identifier: MIT
"""Settlement calendar helpers.

GB settlement days are split into 48 half-hour periods numbered 1..48.
Clock-change days are treated as ordinary 48-period days.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, date, datetime, timedelta

PERIODS_PER_DAY = 48
SETTLEMENT_PERIOD_MINUTES = 30


def all_periods() -> range:
    """Return the settlement periods of a day (1..48)."""
    return range(1, PERIODS_PER_DAY + 1)


def validate_period(period: int) -> int:
    """Return ``period`` when it lies in 1..48.

    Raises:
        ValueError: If the period is out of range.
    """
    if not 1 <= int(period) <= PERIODS_PER_DAY:
        raise ValueError(f"settlement period must be in 1..{PERIODS_PER_DAY}, got {period}")
    return int(period)


def parse_settlement_date(value: str | date, *, today: date | None = None) -> date:
    """Parse an ISO ``YYYY-MM-DD`` string and reject future dates.

    Args:
        value: ISO date string or a ``date``.
        today: Reference "today" (defaults to the current UTC date).

    Returns:
        The parsed date.

    Raises:
        ValueError: If the string is not an ISO date or the date is in the future.
    """
    if isinstance(value, date):
        parsed = value
    else:
        try:
            parsed = date.fromisoformat(value.strip())
        except ValueError as exc:
            raise ValueError(f"invalid settlement date {value!r}; expected YYYY-MM-DD") from exc
    ref = today or datetime.now(tz=UTC).date()
    if parsed > ref:
        raise ValueError(f"settlement date {parsed.isoformat()} is in the future")
    return parsed


def date_range(start: date, end: date) -> Iterator[date]:
    """Yield every date in ``[start, end]`` inclusive.

    Raises:
        ValueError: If ``end`` precedes ``start``.
    """
    if end < start:
        raise ValueError("end date precedes start date")
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def year_month_of(day: date) -> str:
    """Return the ``YYYY-MM`` key of ``day``."""
    return f"{day.year:04d}-{day.month:02d}"


def year_of(day: date) -> str:
    """Return the ``YYYY`` key of ``day``."""
    return f"{day.year:04d}"
