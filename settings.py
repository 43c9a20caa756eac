from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

_LOG_LEVEL_ENV = "LOG_LEVEL"
_REQUEST_TIMEOUT_ENV = "REQUEST_TIMEOUT_SECONDS"
_RETRY_FIRST_DELAY_ENV = "RETRY_FIRST_DELAY_SECONDS"
_RETRY_FACTOR_ENV = "RETRY_FACTOR"
_RETRY_MAX_RETRIES_ENV = "RETRY_MAX_RETRIES"


@dataclass(frozen=True)
class Settings:
    log_level: str
    request_timeout: float
    retry_first_delay: int
    retry_factor: float
    retry_max_retries: int


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
        log_level=_read_log_level("INFO"),
        request_timeout=_read_positive_float(_REQUEST_TIMEOUT_ENV, 10.0),
        retry_first_delay=_read_positive_int(_RETRY_FIRST_DELAY_ENV, 1),
        retry_factor=_read_positive_float(_RETRY_FACTOR_ENV, 2.0),
        retry_max_retries=_read_positive_int(_RETRY_MAX_RETRIES_ENV, 3),
    )
