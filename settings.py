from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_REMOTE_DIR_ENV = "REMOTE_LOGS_DIR"
_PREFIX_ENV = "LOG_FILE_PREFIX"
_STORE_BACKEND_ENV = "RESULT_STORE_BACKEND"
_STORE_PATH_ENV = "RESULT_STORE_PATH"
_REDIS_HOST_ENV = "REDIS_HOST"
_REDIS_PORT_ENV = "REDIS_PORT"
_POLL_INTERVAL_ENV = "POLL_INTERVAL_SECONDS"
_FETCH_TIMEOUT_ENV = "FETCH_TIMEOUT_SECONDS"
_POLL_IN_APP_ENV = "SENSOR_POLL_IN_APP"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_STORE_BACKENDS = ("local", "redis")
_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class Settings:
    remote_logs_dir: Optional[str]
    log_file_prefix: str
    store_backend: str
    store_persistence_path: Optional[str]
    redis_host: str
    redis_port: int
    poll_interval: float
    fetch_timeout: float
    poll_in_app: bool
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


def _read_positive_int(name: str, default: int) -> int:
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
    return parsed if parsed > 0 else default


def _read_positive_float(name: str, default: float) -> float:
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


def _read_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip().lower()
    if not candidate:
        return default
    return candidate in {"1", "true", "yes", "on"}


def _read_store_backend(default: str) -> str:
    candidate = _read_str_env(_STORE_BACKEND_ENV, default).lower()
    return candidate if candidate in _STORE_BACKENDS else default


def _read_log_level(default: str) -> str:
    candidate = _read_str_env(_LOG_LEVEL_ENV, default).upper()
    return candidate if candidate in _LOG_LEVELS else default


@lru_cache
def get_settings() -> Settings:
    return Settings(
        remote_logs_dir=_read_optional_env(_REMOTE_DIR_ENV, None),
        log_file_prefix=_read_str_env(_PREFIX_ENV, "log-"),
        store_backend=_read_store_backend("local"),
        store_persistence_path=_read_optional_env(
            _STORE_PATH_ENV, "./tmp/sensor_results.json"
        ),
        redis_host=_read_str_env(_REDIS_HOST_ENV, "localhost"),
        redis_port=_read_positive_int(_REDIS_PORT_ENV, 6379),
        poll_interval=_read_positive_float(_POLL_INTERVAL_ENV, 10.0),
        fetch_timeout=_read_positive_float(_FETCH_TIMEOUT_ENV, 30.0),
        poll_in_app=_read_flag(_POLL_IN_APP_ENV, False),
        log_level=_read_log_level("INFO"),
    )
