from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_ENDPOINT_ENV = "OHS_ENDPOINT"
_USERNAME_ENV = "OHS_USERNAME"
_PASSWORD_ENV = "OHS_PASSWORD"
_POLL_INTERVAL_ENV = "OHS_POLL_INTERVAL"
_MAX_RETRIES_ENV = "OHS_MAX_RETRIES"
_BACKOFF_UNIT_ENV = "OHS_BACKOFF_UNIT_MS"
_HTTP_TIMEOUT_ENV = "OHS_HTTP_TIMEOUT"
_DEVICE_CACHE_ENV = "OHS_DEVICE_CACHE_PATH"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    endpoint: str
    username: str
    password: str
    poll_interval: float
    max_retries: int
    backoff_unit_ms: int
    http_timeout: float
    device_cache_path: Optional[str]
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str]) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_int_env(name: str, default: int, minimum: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = int(candidate)
    except ValueError:
        return default
    return parsed if parsed >= minimum else default


def _read_positive_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    try:
        parsed = float(candidate)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _read_log_level(default: str) -> str:
    value = os.getenv(_LOG_LEVEL_ENV)
    if value is None:
        return default
    candidate = value.strip()
    if not candidate:
        return default
    return candidate.upper()


@lru_cache
def get_settings() -> Settings:
    return Settings(
        endpoint=_read_str_env(_ENDPOINT_ENV, "http://localhost").rstrip("/"),
        username=_read_str_env(_USERNAME_ENV, "admin"),
        # Passwords are taken verbatim; an empty password is valid.
        password=os.getenv(_PASSWORD_ENV, ""),
        poll_interval=_read_positive_float_env(_POLL_INTERVAL_ENV, 10.0),
        max_retries=_read_int_env(_MAX_RETRIES_ENV, 3, minimum=0),
        backoff_unit_ms=_read_int_env(_BACKOFF_UNIT_ENV, 2000, minimum=1),
        http_timeout=_read_positive_float_env(_HTTP_TIMEOUT_ENV, 10.0),
        device_cache_path=_read_optional_env(_DEVICE_CACHE_ENV, "./tmp/ohs_devices.json"),
        log_level=_read_log_level("INFO"),
    )
