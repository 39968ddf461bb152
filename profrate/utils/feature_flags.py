"""Feature flag helpers for runtime configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Literal, TypedDict, cast


FeatureFlagKey = Literal[
    "csrf_protection_enabled",
    "require_email_verification",
    "seed_sample_data",
    "registration_enabled",
]


class FeatureFlagValues(TypedDict):
    csrf_protection_enabled: bool
    require_email_verification: bool
    seed_sample_data: bool
    registration_enabled: bool


@dataclass(frozen=True)
class FeatureFlagDefinition:
    env_var: str
    default: bool


_FEATURE_FLAG_DEFINITIONS: Dict[FeatureFlagKey, FeatureFlagDefinition] = {
    "csrf_protection_enabled": FeatureFlagDefinition("CSRF_PROTECTION_ENABLED", True),
    "require_email_verification": FeatureFlagDefinition("REQUIRE_EMAIL_VERIFICATION", False),
    "seed_sample_data": FeatureFlagDefinition("SEED_SAMPLE_DATA", True),
    "registration_enabled": FeatureFlagDefinition("REGISTRATION_ENABLED", True),
}


def _normalize_bool(value: str | None, default: bool = True) -> bool:
    """Return normalized boolean from environment-style value."""
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"0", "false", "no", "off"}:
        return False
    if normalized in {"1", "true", "yes", "on"}:
        return True
    return default


@lru_cache(maxsize=None)
def get_feature_flags() -> FeatureFlagValues:
    """Return the cached feature flag state sourced from the environment."""
    values: Dict[FeatureFlagKey, bool] = {}
    for key, definition in _FEATURE_FLAG_DEFINITIONS.items():
        values[key] = _normalize_bool(os.getenv(definition.env_var), default=definition.default)
    return cast(FeatureFlagValues, values)


def is_feature_enabled(flag: FeatureFlagKey) -> bool:
    """Return whether the supplied feature flag evaluates to true."""
    return get_feature_flags()[flag]


def csrf_protection_enabled() -> bool:
    """Require X-CSRF-Token on state-changing API requests."""
    return is_feature_enabled("csrf_protection_enabled")


def email_verification_required() -> bool:
    """Block password login for accounts whose email is still unverified."""
    return is_feature_enabled("require_email_verification")


def seed_sample_data_enabled() -> bool:
    return is_feature_enabled("seed_sample_data")


def registration_enabled() -> bool:
    return is_feature_enabled("registration_enabled")


def refresh_feature_flag_cache() -> None:
    """Invalidate cached feature flag values (useful for tests)."""
    get_feature_flags.cache_clear()
