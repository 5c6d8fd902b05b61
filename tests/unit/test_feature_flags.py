from types import SimpleNamespace

import pytest

from registry.core.feature_flags import FEDERATED_AUTH, FeatureFlags


def test_defaults_apply_when_unset():
    assert FeatureFlags().federated_auth() is False
    assert FeatureFlags({FEDERATED_AUTH: True}).federated_auth() is True


def test_from_config_uses_configured_mode():
    flags = FeatureFlags.from_config(SimpleNamespace(federated_auth_enabled=True))
    assert flags.federated_auth() is True


@pytest.mark.parametrize("raw,expected", [("true", True), ("ON", True), ("0", False), ("no", False)])
def test_environment_overrides_default(monkeypatch, raw, expected):
    monkeypatch.setenv("FEATURE_FEDERATED_AUTH", raw)
    assert FeatureFlags({FEDERATED_AUTH: not expected}).federated_auth() is expected


def test_unparsable_value_falls_back_to_default(monkeypatch):
    monkeypatch.setenv("FEATURE_FEDERATED_AUTH", "maybe")
    assert FeatureFlags({FEDERATED_AUTH: True}).federated_auth() is True


def test_flag_is_reread_on_every_call(monkeypatch):
    flags = FeatureFlags()
    assert flags.federated_auth() is False

    monkeypatch.setenv("FEATURE_FEDERATED_AUTH", "true")
    assert flags.federated_auth() is True
