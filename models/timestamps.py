"""Timestamp parsing and formatting for the outage API wire format.

The remote service requires exactly three fractional-second digits on every
timestamp it receives, even when they are zero.
"""

from __future__ import annotations

import re
from datetime import datetime

_TIMESTAMP_PATTERN = re.compile(
    r"^\d{4}-\d{2}-\d{2}T(?:[01]\d|2[0-3]):[0-5]\d(?::[0-5]\d(?:\.\d{3})?)?"
    r"(?:Z|[+-]\d{2}:\d{2})$",
    re.IGNORECASE,
)


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 date-time that carries a UTC offset."""
    candidate = value.strip()
    if not candidate:
        raise ValueError("Timestamp is empty.")
    if not _TIMESTAMP_PATTERN.match(candidate):
        raise ValueError(f"Invalid timestamp format: {value!r}")

    if candidate[-1] in "zZ":
        candidate = candidate[:-1] + "+00:00"
    candidate = candidate[:10] + "T" + candidate[11:]

    try:
        return datetime.fromisoformat(candidate)
    except ValueError as exc:
        raise ValueError(f"Invalid timestamp value: {value!r}") from exc


def format_timestamp(value: datetime) -> str:
    """Render ``value`` with millisecond precision and a numeric offset or ``Z``."""
    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError("Timestamp must carry a UTC offset.")
    text = value.isoformat(timespec="milliseconds")
    if text.endswith("+00:00"):
        text = text[:-6] + "Z"
    return text
