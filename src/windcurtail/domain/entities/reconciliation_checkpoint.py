# Copyright (c)
# SPDX-License-Identifier: MIT
"""Reconciliation checkpoint (Domain Entities).

Synopsis:
    Durable progress record of a batch run. Unlike the other entities it is
    mutable: the batch processor updates it after every date and hands it to
    a checkpoint store to persist.

Layer:
    domain/entities
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from windcurtail.domain.enums.pipeline import CheckpointStatus


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ReconciliationCheckpoint:
    """Progress of one reconciliation run.

    Dates are ISO strings so the struct serialises without custom encoders.
    """

    run_id: str
    pending_dates: list[str] = field(default_factory=list)
    completed_dates: list[str] = field(default_factory=list)
    failed_dates: dict[str, str] = field(default_factory=dict)
    stats: dict[str, int] = field(default_factory=dict)
    status: CheckpointStatus = CheckpointStatus.RUNNING
    created_at: datetime = field(default_factory=_utc_now)
    updated_at: datetime = field(default_factory=_utc_now)

    @classmethod
    def start(cls, dates: list[str]) -> ReconciliationCheckpoint:
        """Create a fresh checkpoint covering ``dates`` (deduplicated, ordered)."""
        pending = sorted(dict.fromkeys(dates))
        return cls(
            run_id=uuid.uuid4().hex,
            pending_dates=pending,
            stats={"records": 0, "calculations": 0, "timeouts": 0},
        )

    def mark_completed(self, day: str, *, records: int = 0, calculations: int = 0) -> None:
        """Move ``day`` from pending to completed and accumulate its stats."""
        if day in self.pending_dates:
            self.pending_dates.remove(day)
        self.failed_dates.pop(day, None)
        if day not in self.completed_dates:
            self.completed_dates.append(day)
        self.stats["records"] = self.stats.get("records", 0) + records
        self.stats["calculations"] = self.stats.get("calculations", 0) + calculations
        self.updated_at = _utc_now()

    def mark_failed(self, day: str, reason: str, *, timeout: bool = False) -> None:
        """Move ``day`` from pending to failed with ``reason``."""
        if day in self.pending_dates:
            self.pending_dates.remove(day)
        self.failed_dates[day] = reason
        if timeout:
            self.stats["timeouts"] = self.stats.get("timeouts", 0) + 1
        self.updated_at = _utc_now()

    def finish(self) -> None:
        """Close the run; it is FAILED when any date failed."""
        self.status = CheckpointStatus.FAILED if self.failed_dates else CheckpointStatus.COMPLETED
        self.updated_at = _utc_now()

    @property
    def is_finished(self) -> bool:
        """Return True when no dates remain pending."""
        return not self.pending_dates

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable representation."""
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "pending_dates": list(self.pending_dates),
            "completed_dates": list(self.completed_dates),
            "failed_dates": [{"date": d, "reason": r} for d, r in self.failed_dates.items()],
            "stats": dict(self.stats),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ReconciliationCheckpoint:
        """Rebuild a checkpoint from :meth:`to_dict` output.

        Raises:
            KeyError | ValueError: If the payload does not have the expected shape.
        """
        return cls(
            run_id=str(raw["run_id"]),
            pending_dates=[str(d) for d in raw.get("pending_dates", [])],
            completed_dates=[str(d) for d in raw.get("completed_dates", [])],
            failed_dates={str(f["date"]): str(f["reason"]) for f in raw.get("failed_dates", [])},
            stats={str(k): int(v) for k, v in raw.get("stats", {}).items()},
            status=CheckpointStatus(raw.get("status", CheckpointStatus.RUNNING.value)),
            created_at=datetime.fromisoformat(raw["created_at"]),
            updated_at=datetime.fromisoformat(raw["updated_at"]),
        )
