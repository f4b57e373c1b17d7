# Copyright (c)
# SPDX-License-Identifier: MIT
"""Unit identity resolver.

Loads the BM unit mapping file once and serves the in-scope unit set and the
unit → lead-party map to ingestion. The mapping is a JSON array of objects::

    {"elexonBmUnit": "T_WHILW-1", "leadPartyName": "Whitelee", "fuelType": "WIND"}

Only ``WIND`` units are kept when ``fuelType`` is present. Any problem with
the file is a :class:`DataIntegrityError`; ingestion cannot run without it.
"""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from windcurtail.domain.exceptions.pipeline import DataIntegrityError
from windcurtail.infrastructure.logging.logger import get_json_logger

log = get_json_logger(__name__)

_WIND = "WIND"


@dataclass(frozen=True)
class UnitRegistry:
    """Resolved set of in-scope units."""

    valid_ids: frozenset[str]
    lead_party_of: Mapping[str, str] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.valid_ids)


def parse_unit_mapping(raw: Any, *, source: str = "<memory>") -> UnitRegistry:
    """Build a :class:`UnitRegistry` from decoded mapping JSON.

    Raises:
        DataIntegrityError: If the payload is not a list of unit objects or
            yields no in-scope units.
    """
    if not isinstance(raw, list):
        raise DataIntegrityError("unit_mapping_bad_shape", details={"source": source})

    lead_party_of: dict[str, str] = {}
    for item in raw:
        if not isinstance(item, Mapping):
            raise DataIntegrityError("unit_mapping_bad_shape", details={"source": source})
        unit_id = item.get("elexonBmUnit")
        if not isinstance(unit_id, str) or not unit_id.strip():
            continue
        fuel = item.get("fuelType")
        if fuel is not None and str(fuel).upper() != _WIND:
            continue
        lead_party_of[unit_id.strip()] = str(item.get("leadPartyName") or "Unknown")

    if not lead_party_of:
        raise DataIntegrityError("unit_mapping_empty", details={"source": source})
    return UnitRegistry(valid_ids=frozenset(lead_party_of), lead_party_of=lead_party_of)


class UnitRegistryLoader:
    """Lazy, cached loader for the unit mapping file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._cached: UnitRegistry | None = None
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        """Return the mapping file path."""
        return self._path

    def resolve(self) -> UnitRegistry:
        """Return the cached registry, loading it on first use."""
        cached = self._cached
        if cached is not None:
            return cached
        with self._lock:
            if self._cached is None:
                self._cached = self._load()
            return self._cached

    def reload(self) -> UnitRegistry:
        """Re-read the mapping file and replace the cache."""
        with self._lock:
            self._cached = self._load()
            return self._cached

    def _load(self) -> UnitRegistry:
        source = str(self._path)
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise DataIntegrityError("unit_mapping_missing", details={"source": source}) from exc
        except OSError as exc:
            raise DataIntegrityError(
                "unit_mapping_unreadable", details={"source": source, "error": str(exc)}
            ) from exc
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as exc:
            raise DataIntegrityError(
                "unit_mapping_invalid_json", details={"source": source, "error": str(exc)}
            ) from exc

        registry = parse_unit_mapping(raw, source=source)
        log.info(
            "unit_registry.loaded",
            extra={"extra": {"source": source, "units": len(registry)}},
        )
        return registry
