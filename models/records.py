"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Hashable, Iterable, Mapping, Optional, Tuple

from models.errors import ErrorKind, SyncError

DeviceId = Hashable
SiteDirectory = Mapping[DeviceId, str]


@dataclass(frozen=True, slots=True)
class OutageRecord:
    """One device's downtime window; ``end`` is ``None`` while it is ongoing."""

    device_id: DeviceId
    begin: datetime
    end: Optional[datetime] = None
    device_name: Optional[str] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if self.device_id is None:
            raise SyncError(ErrorKind.invalid_argument, "An outage device id is required.")
        if not _is_aware(self.begin):
            raise SyncError(
                ErrorKind.invalid_argument,
                "The beginning of an outage must be a timestamp with an offset.",
            )
        if self.end is not None and not _is_aware(self.end):
            raise SyncError(
                ErrorKind.invalid_argument,
                "The end of an outage must be a timestamp with an offset.",
            )
        if self.device_name is not None:
            _require_name(self.device_name)

    def with_device_name(self, name: Optional[str]) -> OutageRecord:
        """Return a copy of the record carrying the resolved device name."""
        _require_name(name)
        return replace(self, device_name=name)


def build_site_directory(devices: Iterable[Tuple[DeviceId, str]]) -> SiteDirectory:
    """Build a read-only id to name mapping, rejecting duplicate ids."""
    directory: dict[DeviceId, str] = {}
    for device_id, name in devices:
        if device_id in directory:
            raise SyncError(
                ErrorKind.remote_failure,
                f"Duplicate device id {device_id!r} in site information.",
            )
        directory[device_id] = name
    return MappingProxyType(directory)


def _require_name(name: Optional[str]) -> None:
    if name is None or not name.strip():
        raise SyncError(ErrorKind.invalid_argument, "A meaningful device name is required.")


def _is_aware(value: object) -> bool:
    return isinstance(value, datetime) and value.utcoffset() is not None
