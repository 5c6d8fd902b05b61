"""Runtime feature flags read from the environment on every check."""
from __future__ import annotations
import os

FEDERATED_AUTH = "FEDERATED_AUTH"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


class FeatureFlags:
    """Flag source backed by FEATURE_<NAME> environment variables.

    Values are never cached so a flag can be toggled without restarting
    workers. Unset or unparsable values fall back to the configured default.
    """

    def __init__(self, defaults: dict[str, bool] | None = None):
        self.defaults = dict(defaults or {})

    @classmethod
    def from_config(cls, cfg) -> "FeatureFlags":
        return cls({FEDERATED_AUTH: bool(getattr(cfg, "federated_auth_enabled", False))})

    def is_enabled(self, name: str) -> bool:
        raw = os.environ.get(f"FEATURE_{name}")
        if raw is not None:
            value = raw.strip().lower()
            if value in _TRUE_VALUES:
                return True
            if value in _FALSE_VALUES:
                return False
        return self.defaults.get(name, False)

    def federated_auth(self) -> bool:
        return self.is_enabled(FEDERATED_AUTH)
