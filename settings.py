from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_DEVICE_TABLE_PATH_ENV = "DEVICE_TABLE_PATH"
_HISTORY_LOG_PATH_ENV = "HISTORY_LOG_PATH"
_WARMUP_DURATION_ENV = "WARMUP_DURATION_MS"
_STUCK_SAMPLES_ENV = "STUCK_SENSOR_SAMPLES"
_MOVING_AVERAGE_ENV = "MOVING_AVERAGE_WINDOW"
_LOG_LEVEL_ENV = "LOG_LEVEL"
_GAS_RETENTION_ENV = "GAS_HISTORY_RETENTION_DAYS"


@dataclass(frozen=True)
class Settings:
    device_table_path: Optional[str]
    history_log_path: Optional[str]
    warmup_duration_ms: int
    stuck_sensor_samples: int
    moving_average_window: int
    log_level: str
    gas_history_retention_days: int


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
        device_table_path=_read_optional_env(_DEVICE_TABLE_PATH_ENV, "./tmp/devices.json"),
        history_log_path=_read_optional_env(_HISTORY_LOG_PATH_ENV, "./tmp/history.json"),
        warmup_duration_ms=_read_positive_int(_WARMUP_DURATION_ENV, 180_000),
        stuck_sensor_samples=_read_positive_int(_STUCK_SAMPLES_ENV, 60),
        moving_average_window=_read_positive_int(_MOVING_AVERAGE_ENV, 10),
        log_level=_read_log_level("INFO"),
        gas_history_retention_days=_read_positive_int(_GAS_RETENTION_ENV, 30),
    )
