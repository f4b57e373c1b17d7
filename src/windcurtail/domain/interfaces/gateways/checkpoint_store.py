# Copyright (c)
# SPDX-License-Identifier: MIT
"""Checkpoint persistence Protocol.

Layer:
    domain/interfaces/gateways
"""

from __future__ import annotations

from typing import Protocol

from windcurtail.domain.entities.reconciliation_checkpoint import ReconciliationCheckpoint


class CheckpointStore(Protocol):
    """Durable single-writer storage for a reconciliation checkpoint."""

    def load(self) -> ReconciliationCheckpoint | None:
        """Return the persisted checkpoint, or ``None`` when there is none."""
        ...

    def save(self, checkpoint: ReconciliationCheckpoint) -> None:
        """Persist ``checkpoint`` atomically."""
        ...

    def clear(self) -> None:
        """Remove any persisted checkpoint."""
        ...
