"""
Runtime configuration.

Values come from environment variables, optionally loaded from a .env file at
the project root. Services take explicit arguments and only fall back to the
module-level settings when none are given.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
load_dotenv(dotenv_path=ROOT_DIR / ".env")

PROVIDER_MEMORY = "memory"
PROVIDER_JSON = "json"


def _get_env(*keys: str, default: str | None = None) -> str | None:
    for k in keys:
        v = os.getenv(k)
        if v is not None and str(v).strip() != "":
            return v.strip()
    return default


def _get_float(*keys: str, default: float) -> float:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return float(v)


def _get_int(*keys: str, default: int) -> int:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return int(v)


def _get_bool(*keys: str, default: bool) -> bool:
    v = _get_env(*keys, default=None)
    if v is None:
        return default
    return v.lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    provider: str = PROVIDER_MEMORY
    data_dir: str = str(ROOT_DIR / "data")
    toast_ttl_seconds: float = 5.5
    strict_transitions: bool = True
    provider_latency: float = 0.0
    log_level: str = "INFO"
    signal_log_size: int = 1000


def load_settings() -> Settings:
    provider = (_get_env("BAKERY_PROVIDER", default=PROVIDER_MEMORY) or PROVIDER_MEMORY).lower()
    if provider not in (PROVIDER_MEMORY, PROVIDER_JSON):
        raise RuntimeError(f"BAKERY_PROVIDER must be '{PROVIDER_MEMORY}' or '{PROVIDER_JSON}', got '{provider}'")

    return Settings(
        provider=provider,
        data_dir=_get_env("BAKERY_DATA_DIR", "DATA_DIR", default=str(ROOT_DIR / "data")) or str(ROOT_DIR / "data"),
        toast_ttl_seconds=_get_float("TOAST_TTL_SECONDS", default=5.5),
        strict_transitions=_get_bool("STRICT_TRANSITIONS", default=True),
        provider_latency=_get_float("PROVIDER_LATENCY", default=0.0),
        log_level=(_get_env("LOG_LEVEL", default="INFO") or "INFO").upper(),
        signal_log_size=_get_int("SIGNAL_LOG_SIZE", default=1000),
    )


settings = load_settings()
