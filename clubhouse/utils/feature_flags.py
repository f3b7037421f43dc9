"""Feature flag helpers for runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, TypedDict, cast


FeatureFlagKey = Literal[
    "llm_features_enabled",
    "feature_inventory_enabled",
    "feature_refunds_enabled",
]


class FeatureFlagValues(TypedDict):
    llm_features_enabled: bool
    feature_inventory_enabled: bool
    feature_refunds_enabled: bool


@dataclass(frozen=True)
class FeatureFlagDefinition:
    env_var: str
    default: bool


_DEFINITIONS: Dict[FeatureFlagKey, FeatureFlagDefinition] = {
    "llm_features_enabled": FeatureFlagDefinition("LLM_FEATURES_ENABLED", True),
    "feature_inventory_enabled": FeatureFlagDefinition("FEATURE_INVENTORY_ENABLED", True),
    "feature_refunds_enabled": FeatureFlagDefinition("FEATURE_REFUNDS_ENABLED", True),
}


def _normalize_bool(value: str | None, default: bool = True) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"", "0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> FeatureFlagValues:
    """Return the cached feature flag state sourced from the environment."""
    values: Dict[FeatureFlagKey, bool] = {
        key: _normalize_bool(os.getenv(definition.env_var), default=definition.default)
        for key, definition in _DEFINITIONS.items()
    }
    return cast(FeatureFlagValues, values)


def is_feature_enabled(flag: FeatureFlagKey) -> bool:
    return get_feature_flags()[flag]


def llm_features_enabled() -> bool:
    """Global toggle for workshop generation."""
    return is_feature_enabled("llm_features_enabled")


def inventory_feature_enabled() -> bool:
    return is_feature_enabled("feature_inventory_enabled")


def refunds_feature_enabled() -> bool:
    return is_feature_enabled("feature_refunds_enabled")


def refresh_feature_flag_cache() -> None:
    """Invalidate cached feature flag values (useful for tests)."""
    get_feature_flags.cache_clear()
