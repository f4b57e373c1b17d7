# tests/unit/domain/services/test_device_registry.py
from __future__ import annotations

import pytest

from windcurtail.domain.entities.device_profile import DeviceProfile
from windcurtail.domain.exceptions.pipeline import ConfigurationError
from windcurtail.domain.services.device_registry import DeviceRegistry


def test_default_registry_has_three_profiles() -> None:
    registry = DeviceRegistry()
    assert set(registry.names) == {"S19J_PRO", "S9", "M20S"}
    assert len(registry) == 3
    assert "S9" in registry
    assert registry.get("S9").hashrate_th == 13.5


def test_unknown_model_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        DeviceRegistry().get("NOPE")


def test_from_mapping_builds_profiles() -> None:
    registry = DeviceRegistry.from_mapping({"A1": {"hashrate_th": 50, "power_w": 1000}})
    assert registry.names == ("A1",)
    assert [p.power_w for p in registry] == [1000]


def test_empty_or_duplicate_profiles_rejected() -> None:
    with pytest.raises(ConfigurationError):
        DeviceRegistry(())
    dup = DeviceProfile(name="A", hashrate_th=1.0, power_w=1.0)
    with pytest.raises(ConfigurationError):
        DeviceRegistry((dup, dup))


def test_profile_rejects_non_positive_values() -> None:
    with pytest.raises(ValueError):
        DeviceProfile(name="A", hashrate_th=0.0, power_w=1.0)
