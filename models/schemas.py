"""Pydantic schemas for the outage API payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional, Union

from pydantic import (
    AwareDatetime,
    BaseModel,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_serializer,
    field_validator,
)

from models.records import OutageRecord, SiteDirectory, build_site_directory
from models.timestamps import format_timestamp, parse_timestamp

JsonDeviceId = Union[StrictInt, StrictStr, StrictFloat]


def _parse_wire_timestamp(value: Any) -> Any:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError("timestamp must be an ISO-8601 string")
    return parse_timestamp(value)


class OutagePayload(BaseModel):
    """Entry of the ``GET /outages`` response."""

    id: JsonDeviceId
    begin: AwareDatetime
    end: Optional[AwareDatetime] = None

    @field_validator("begin", "end", mode="before")
    @classmethod
    def parse_timestamps(cls, value: Any) -> Any:
        return _parse_wire_timestamp(value)

    def to_record(self) -> OutageRecord:
        return OutageRecord(device_id=self.id, begin=self.begin, end=self.end)


class DevicePayload(BaseModel):
    id: JsonDeviceId
    name: str


class SiteInfoPayload(BaseModel):
    """Body of ``GET /site-info/{siteId}``; site-level fields are ignored."""

    devices: List[DevicePayload]

    def to_directory(self) -> SiteDirectory:
        return build_site_directory((device.id, device.name) for device in self.devices)


class OutageUpdatePayload(BaseModel):
    """Entry of the ``POST /site-outages/{siteId}`` body."""

    id: str
    name: str
    begin: AwareDatetime
    end: Optional[AwareDatetime] = None

    @field_validator("begin", "end", mode="before")
    @classmethod
    def parse_timestamps(cls, value: Any) -> Any:
        return _parse_wire_timestamp(value)

    @field_serializer("begin")
    def serialize_begin(self, value: datetime) -> str:
        return format_timestamp(value)

    @field_serializer("end")
    def serialize_end(self, value: Optional[datetime]) -> Optional[str]:
        return format_timestamp(value) if value is not None else None

    @classmethod
    def from_record(cls, record: OutageRecord) -> OutageUpdatePayload:
        if record.device_name is None:
            raise ValueError(f"Outage for device {record.device_id!r} has no device name.")
        return cls(
            id=str(record.device_id),
            name=record.device_name,
            begin=record.begin,
            end=record.end,
        )

    def to_record(self) -> OutageRecord:
        return OutageRecord(device_id=self.id, begin=self.begin, end=self.end, device_name=self.name)
