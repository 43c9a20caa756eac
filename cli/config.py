from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from models.timestamps import parse_timestamp

DEFAULT_BASE_URL = "https://api.krakenflex.systems/interview-tests-mock-api/v1"
DEFAULT_SITE_ID = "norwich-pear-tree"
DEFAULT_CUTOFF = "2022-01-01T00:00:00.000Z"

_BASE_URL_ENV = "API_BASE_URL"
_API_KEY_ENV = "OUTAGE_API_KEY"
_SITE_ID_ENV = "OUTAGE_SITE_ID"
_CUTOFF_ENV = "OUTAGE_CUTOFF"


@dataclass(frozen=True)
class CLIConfig:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    site_id: str = DEFAULT_SITE_ID
    cutoff: datetime = parse_timestamp(DEFAULT_CUTOFF)


def _read_str(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    candidate = value.strip()
    return candidate or None


def load_config(
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    site_id: Optional[str] = None,
    cutoff: Optional[datetime] = None,
) -> CLIConfig:
    """Merge explicit values with environment overrides and defaults.

    Raises ``ValueError`` when no API key is available or the cutoff from the
    environment cannot be parsed.
    """
    key = _read_str(api_key) or _read_str(os.getenv(_API_KEY_ENV))
    if key is None:
        raise ValueError("An API key is required.")
    url = _read_str(base_url) or _read_str(os.getenv(_BASE_URL_ENV)) or DEFAULT_BASE_URL
    site = _read_str(site_id) or _read_str(os.getenv(_SITE_ID_ENV)) or DEFAULT_SITE_ID
    if cutoff is None:
        cutoff = parse_timestamp(_read_str(os.getenv(_CUTOFF_ENV)) or DEFAULT_CUTOFF)
    return CLIConfig(
        api_key=key,
        base_url=url.rstrip("/"),
        site_id=site,
        cutoff=cutoff,
    )
