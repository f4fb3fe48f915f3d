from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from billing_mcp.domain.exceptions import ConfigurationError
from billing_mcp.infrastructure.cache import DEFAULT_TTL, SWEEP_INTERVAL

DEFAULT_API_BASE = "https://www.zohoapis.com"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, read once from the environment at startup."""

    zoho_access_token: str
    zoho_organization_id: str
    zoho_api_base: str = DEFAULT_API_BASE
    cache_default_ttl: float = DEFAULT_TTL
    cache_sweep_interval: float | None = SWEEP_INTERVAL  # None disables the sweep
    cache_single_flight: bool = True


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build Settings from environment variables.

    Raises ConfigurationError when Zoho credentials are missing or a numeric
    value cannot be parsed.
    """
    env = os.environ if environ is None else environ

    missing = [
        name for name in ("ZOHO_ACCESS_TOKEN", "ZOHO_ORGANIZATION_ID") if not env.get(name, "").strip()
    ]
    if missing:
        raise ConfigurationError(f"Missing required Zoho environment variables: {', '.join(missing)}")

    sweep_interval = _positive_float(env, "CACHE_SWEEP_INTERVAL", SWEEP_INTERVAL, allow_zero=True)

    return Settings(
        zoho_access_token=env["ZOHO_ACCESS_TOKEN"].strip(),
        zoho_organization_id=env["ZOHO_ORGANIZATION_ID"].strip(),
        zoho_api_base=env.get("ZOHO_API_BASE", DEFAULT_API_BASE).rstrip("/"),
        cache_default_ttl=_positive_float(env, "CACHE_DEFAULT_TTL", DEFAULT_TTL),
        # 0 turns the background sweep off
        cache_sweep_interval=sweep_interval or None,
        cache_single_flight=_flag(env, "CACHE_SINGLE_FLIGHT", True),
    )


def _positive_float(
    env: Mapping[str, str], name: str, default: float, allow_zero: bool = False
) -> float:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def _flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = env.get(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")
