from __future__ import annotations

import math
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Tuple


_HISTORY_LIMIT_ENV = "RELAY_HISTORY_LIMIT"
_CONNECTIVITY_WINDOW_ENV = "RELAY_CONNECTIVITY_WINDOW_SECONDS"
_ABNORMAL_TEMPERATURE_ENV = "RELAY_ABNORMAL_TEMPERATURE"
_DEFAULT_DEVICE_ID_ENV = "RELAY_DEFAULT_DEVICE_ID"
_CORS_ORIGINS_ENV = "RELAY_CORS_ORIGINS"
_HOST_ENV = "RELAY_HOST"
_PORT_ENV = "RELAY_PORT"
_LOG_LEVEL_ENV = "LOG_LEVEL"

_DEFAULT_CORS_ORIGINS = (
    "http://localhost:5173",
    "http://localhost:3000",
    "http://127.0.0.1:5173",
)


@dataclass(frozen=True)
class Settings:
    history_limit: int
    connectivity_window_seconds: float
    abnormal_temperature: float
    default_device_id: str
    cors_origins: Tuple[str, ...]
    host: str
    port: int
    log_level: str


def _read_str_env(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None:
        return default
    candidate = value.strip()
    return candidate or default


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


def _read_float(name: str, default: float, positive: bool = True) -> float:
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
    if not math.isfinite(parsed):
        return default
    if positive and parsed <= 0:
        return default
    return parsed


def _read_origins(default: Tuple[str, ...]) -> Tuple[str, ...]:
    value = os.getenv(_CORS_ORIGINS_ENV)
    if value is None:
        return default
    origins = tuple(part.strip() for part in value.split(",") if part.strip())
    return origins or default


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
        history_limit=_read_positive_int(_HISTORY_LIMIT_ENV, 1000),
        connectivity_window_seconds=_read_float(_CONNECTIVITY_WINDOW_ENV, 60.0),
        abnormal_temperature=_read_float(_ABNORMAL_TEMPERATURE_ENV, 30.0, positive=False),
        default_device_id=_read_str_env(_DEFAULT_DEVICE_ID_ENV, "ESP8266_DHT11"),
        cors_origins=_read_origins(_DEFAULT_CORS_ORIGINS),
        host=_read_str_env(_HOST_ENV, "0.0.0.0"),
        port=_read_positive_int(_PORT_ENV, 3001),
        log_level=_read_log_level("INFO"),
    )
