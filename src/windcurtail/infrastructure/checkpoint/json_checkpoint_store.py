# Copyright (c)
# SPDX-License-Identifier: MIT
"""JSON-file checkpoint store.

Writes go to a sibling temp file that is fsync'ed and then moved over the
target with :func:`os.replace`, so a crash leaves either the previous or the
new checkpoint on disk, never a torn one.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path

from windcurtail.domain.entities.reconciliation_checkpoint import ReconciliationCheckpoint
from windcurtail.domain.exceptions.pipeline import DataIntegrityError


class JsonCheckpointStore:
    """Single-writer checkpoint persistence on the local filesystem."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        """Return the checkpoint file path."""
        return self._path

    def load(self) -> ReconciliationCheckpoint | None:
        """Return the stored checkpoint or ``None`` when the file is absent.

        Raises:
            DataIntegrityError: If the file exists but cannot be decoded.
        """
        if not self._path.exists():
            return None
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return ReconciliationCheckpoint.from_dict(raw)
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise DataIntegrityError(
                "checkpoint_corrupt", details={"path": str(self._path), "error": str(exc)}
            ) from exc

    def save(self, checkpoint: ReconciliationCheckpoint) -> None:
        """Atomically replace the checkpoint file."""
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".checkpoint-", suffix=".json", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(checkpoint.to_dict(), fh, indent=2)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def clear(self) -> None:
        """Remove the checkpoint file if present."""
        self._path.unlink(missing_ok=True)
