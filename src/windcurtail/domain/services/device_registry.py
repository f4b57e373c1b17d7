# Copyright (c)
# SPDX-License-Identifier: MIT
"""Device profile registry (Domain Service).

Synopsis:
    Immutable, name-keyed set of device profiles. Calculation rows reference
    profiles by name, so lookups of an unknown name are configuration errors
    rather than silent skips.

Layer:
    domain/services
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

from windcurtail.domain.entities.device_profile import DeviceProfile
from windcurtail.domain.exceptions.pipeline import ConfigurationError

DEFAULT_DEVICE_PROFILES: tuple[DeviceProfile, ...] = (
    DeviceProfile(name="S19J_PRO", hashrate_th=100.0, power_w=3050.0),
    DeviceProfile(name="S9", hashrate_th=13.5, power_w=1350.0),
    DeviceProfile(name="M20S", hashrate_th=68.0, power_w=3360.0),
)


class DeviceRegistry:
    """Ordered registry of device profiles."""

    def __init__(self, profiles: tuple[DeviceProfile, ...] = DEFAULT_DEVICE_PROFILES) -> None:
        if not profiles:
            raise ConfigurationError("at least one device profile is required")
        by_name: dict[str, DeviceProfile] = {}
        for p in profiles:
            if p.name in by_name:
                raise ConfigurationError(
                    "duplicate device profile", details={"device_model": p.name}
                )
            by_name[p.name] = p
        self._by_name = by_name

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Mapping[str, Any]]) -> DeviceRegistry:
        """Build a registry from ``{name: {"hashrate_th": .., "power_w": ..}}``.

        Raises:
            ConfigurationError: If an entry is missing a field or is not numeric.
        """
        profiles: list[DeviceProfile] = []
        for name, spec in raw.items():
            try:
                profiles.append(
                    DeviceProfile(
                        name=str(name),
                        hashrate_th=float(spec["hashrate_th"]),
                        power_w=float(spec["power_w"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise ConfigurationError(
                    "invalid device profile", details={"device_model": name, "error": str(exc)}
                ) from exc
        return cls(tuple(profiles))

    def get(self, name: str) -> DeviceProfile:
        """Return the profile called ``name``.

        Raises:
            ConfigurationError: If the name is not configured.
        """
        try:
            return self._by_name[name]
        except KeyError as exc:
            raise ConfigurationError(
                "unknown device model", details={"device_model": name}
            ) from exc

    @property
    def names(self) -> tuple[str, ...]:
        """Return configured model names in registration order."""
        return tuple(self._by_name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[DeviceProfile]:
        return iter(self._by_name.values())

    def __len__(self) -> int:
        return len(self._by_name)
