from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional


_READINGS_PATH_ENV = "TELEMETRY_READINGS_PATH"
_DEVICES_PATH_ENV = "TELEMETRY_DEVICES_PATH"
_DEFAULT_LIMIT_ENV = "TELEMETRY_DEFAULT_LIMIT"
_MAX_LIMIT_ENV = "TELEMETRY_MAX_LIMIT"
_DEFAULT_POINTS_ENV = "TELEMETRY_DEFAULT_POINTS"
_MAX_POINTS_ENV = "TELEMETRY_MAX_POINTS"
_TIME_LABEL_FORMAT_ENV = "TIME_LABEL_FORMAT"
_DISPLAY_TIMEZONE_ENV = "TELEMETRY_DISPLAY_TIMEZONE"
_LOG_LEVEL_ENV = "LOG_LEVEL"


@dataclass(frozen=True)
class Settings:
    readings_path: Optional[str]
    devices_path: Optional[str]
    default_limit: int
    max_limit: int
    default_points: int
    max_points: int
    time_label_format: str
    display_timezone: str
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
    max_limit = _read_positive_int(_MAX_LIMIT_ENV, 1000)
    max_points = _read_positive_int(_MAX_POINTS_ENV, 1000)
    return Settings(
        readings_path=_read_optional_env(_READINGS_PATH_ENV, "./tmp/readings.json"),
        devices_path=_read_optional_env(_DEVICES_PATH_ENV, "./tmp/devices.json"),
        default_limit=min(_read_positive_int(_DEFAULT_LIMIT_ENV, 24), max_limit),
        max_limit=max_limit,
        default_points=min(_read_positive_int(_DEFAULT_POINTS_ENV, 24), max_points),
        max_points=max_points,
        time_label_format=_read_str_env(_TIME_LABEL_FORMAT_ENV, "%H:%M"),
        display_timezone=_read_str_env(_DISPLAY_TIMEZONE_ENV, "UTC"),
        log_level=_read_log_level("INFO"),
    )
