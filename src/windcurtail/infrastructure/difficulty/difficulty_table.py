# Copyright (c)
# SPDX-License-Identifier: MIT
"""File-backed network difficulty lookup.

The optional table is a JSON object ``{"YYYY-MM-DD": difficulty, ...}``.
For a date without an exact entry the latest earlier entry applies; with no
usable entry at all the configured default is returned. Failures to read
the table are logged and never propagate.
"""

from __future__ import annotations

import bisect
import json
from datetime import date
from pathlib import Path

from windcurtail.domain.services.mining_calculator import DEFAULT_DIFFICULTY
from windcurtail.infrastructure.logging.logger import get_json_logger

log = get_json_logger(__name__)


class FileDifficultyGateway:
    """Difficulty lookup backed by an optional JSON file."""

    def __init__(
        self, path: str | Path | None, *, default: float = float(DEFAULT_DIFFICULTY)
    ) -> None:
        self._path = Path(path) if path else None
        self._default = float(default)
        self._table: tuple[list[date], list[float]] | None = None

    @property
    def default(self) -> float:
        """Return the fallback difficulty."""
        return self._default

    async def lookup(self, settlement_date: date) -> float:
        """Return the difficulty in effect on ``settlement_date``."""
        if self._table is None:
            self._table = self._load()
        dates, values = self._table
        idx = bisect.bisect_right(dates, settlement_date) - 1
        if idx < 0:
            log.info(
                "difficulty.default_used",
                extra={
                    "extra": {
                        "settlement_date": settlement_date.isoformat(),
                        "difficulty": self._default,
                    }
                },
            )
            return self._default
        return values[idx]

    def _load(self) -> tuple[list[date], list[float]]:
        if self._path is None:
            return [], []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict):
                raise ValueError("difficulty table must be a JSON object")
            pairs = sorted(
                (date.fromisoformat(k), float(v)) for k, v in raw.items() if float(v) > 0
            )
        except (OSError, ValueError, TypeError) as exc:
            log.warning(
                "difficulty.table_unavailable",
                extra={"extra": {"path": str(self._path), "error": str(exc)}},
            )
            return [], []
        return [d for d, _ in pairs], [v for _, v in pairs]
