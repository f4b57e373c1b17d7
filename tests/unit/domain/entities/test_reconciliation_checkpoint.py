# tests/unit/domain/entities/test_reconciliation_checkpoint.py
from __future__ import annotations

from windcurtail.domain.entities.reconciliation_checkpoint import ReconciliationCheckpoint
from windcurtail.domain.enums.pipeline import CheckpointStatus


def test_start_sorts_and_deduplicates_pending_dates() -> None:
    cp = ReconciliationCheckpoint.start(["2025-03-02", "2025-03-01", "2025-03-02"])

    assert cp.pending_dates == ["2025-03-01", "2025-03-02"]
    assert cp.status is CheckpointStatus.RUNNING
    assert len(cp.run_id) == 32


def test_marking_moves_dates_and_accumulates_stats() -> None:
    cp = ReconciliationCheckpoint.start(["2025-03-01", "2025-03-02"])

    cp.mark_completed("2025-03-01", records=4, calculations=12)
    cp.mark_failed("2025-03-02", "statement timeout", timeout=True)
    cp.finish()

    assert cp.pending_dates == []
    assert cp.completed_dates == ["2025-03-01"]
    assert cp.failed_dates == {"2025-03-02": "statement timeout"}
    assert cp.stats["records"] == 4
    assert cp.stats["calculations"] == 12
    assert cp.stats["timeouts"] == 1
    assert cp.status is CheckpointStatus.FAILED
    assert cp.is_finished


def test_dict_round_trip_preserves_progress() -> None:
    cp = ReconciliationCheckpoint.start(["2025-03-01", "2025-03-02"])
    cp.mark_failed("2025-03-01", "boom")

    restored = ReconciliationCheckpoint.from_dict(cp.to_dict())

    assert restored.run_id == cp.run_id
    assert restored.pending_dates == ["2025-03-02"]
    assert restored.failed_dates == {"2025-03-01": "boom"}
    assert cp.to_dict()["failed_dates"] == [{"date": "2025-03-01", "reason": "boom"}]
