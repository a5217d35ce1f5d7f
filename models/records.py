"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Reading:
    """A single sensor observation emitted by a device."""

    id: int
    device_id: int
    created_at: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    location: Optional[Location] = None


@dataclass(slots=True)
class Device:
    """A physical sensor unit, optionally linked to a user account."""

    id: int
    name: str
    password: str
    created_at: datetime
    user_id: Optional[str] = None

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id is not None and self.user_id == user_id


@dataclass(frozen=True, slots=True)
class TimeWindow:
    """Half-open ``[start, end)`` range resolved for a single query."""

    start: datetime
    end: datetime
    duration: str
    points: Optional[int] = None

    @property
    def width_ms(self) -> int:
        return to_epoch_ms(self.end) - to_epoch_ms(self.start)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


@dataclass(frozen=True, slots=True)
class ById:
    device_id: int


@dataclass(frozen=True, slots=True)
class ByName:
    name: str


DeviceRef = Union[ById, ByName]


def parse_device_ref(raw: str) -> DeviceRef:
    """Interpret a path identifier as a numeric id or a device name."""
    candidate = raw.strip()
    if candidate.isdigit():
        return ById(int(candidate))
    return ByName(candidate)


def to_epoch_ms(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (moment - _EPOCH) // _ONE_MS


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
