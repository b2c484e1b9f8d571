from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_URL_ENV = "INFLUXDB_URL"
_DATABASE_ENV = "INFLUXDB_DATABASE"
_RETENTION_POLICY_ENV = "INFLUXDB_RETENTION_POLICY"
_USERNAME_ENV = "INFLUXDB_USERNAME"
_PASSWORD_ENV = "INFLUXDB_PASSWORD"
_TIMEOUT_ENV = "INFLUXDB_TIMEOUT"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    influx_url: str
    database: Optional[str]
    retention_policy: Optional[str]
    username: Optional[str]
    password: Optional[str]
    timeout: float
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


def _read_optional_env(name: str, default: Optional[str] = None) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or None


def _read_timeout(default: float) -> float:
    value = os.getenv(_TIMEOUT_ENV)
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
        influx_url=_read_str_env(_URL_ENV, "http://localhost:8086"),
        database=_read_optional_env(_DATABASE_ENV),
        retention_policy=_read_optional_env(_RETENTION_POLICY_ENV),
        username=_read_optional_env(_USERNAME_ENV),
        password=_read_optional_env(_PASSWORD_ENV),
        timeout=_read_timeout(30.0),
        log_level=_read_log_level("INFO"),
    )
