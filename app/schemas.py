"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base schema serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SeriesFormat(str, Enum):
    """Encodings supported by the timeseries endpoint."""

    simple = "simple"
    chart = "chart"


class DeviceInfo(ApiModel):
    id: int
    device_name: str


class DeviceListItem(DeviceInfo):
    created_at: datetime


class DeviceListResponse(ApiModel):
    devices: List[DeviceListItem] = Field(default_factory=list)


class LinkDeviceRequest(ApiModel):
    """Credentials printed on the physical unit."""

    device_name: str = Field(..., min_length=1)
    device_password: str = Field(..., min_length=1)


class LinkDeviceResponse(ApiModel):
    message: str
    device: DeviceInfo


class MessageResponse(ApiModel):
    message: str


class LocationOut(ApiModel):
    latitude: float
    longitude: float


class ReadingOut(ApiModel):
    """A raw reading with its device reference expanded."""

    id: int
    device: DeviceInfo
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    location: Optional[LocationOut] = None
    created_at: datetime


class AnalyticsResponse(ApiModel):
    """Summary statistics over a resolved duration window."""

    duration: str
    start: datetime
    end: datetime
    reading_count: int = Field(..., ge=0)
    avg_temperature: Optional[float] = None
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    avg_humidity: Optional[float] = None
    min_humidity: Optional[float] = None
    max_humidity: Optional[float] = None


class TrendPoint(ApiModel):
    temperature: Optional[float] = None
    humidity: Optional[float] = None
    created_at: datetime


class GraphPoint(ApiModel):
    timestamp: datetime
    temperature: Optional[float] = None
    humidity: Optional[float] = None


class GraphResponse(ApiModel):
    """Bucketed averages spanning the requested duration."""

    duration: str
    start: datetime
    end: datetime
    points: int = Field(..., ge=1, description="Requested number of buckets.")
    interval_ms: int = Field(..., ge=1)
    data: List[GraphPoint] = Field(default_factory=list)


class SeriesStatistics(ApiModel):
    avg_temperature: Optional[float] = None
    avg_humidity: Optional[float] = None
    min_temperature: Optional[float] = None
    max_temperature: Optional[float] = None
    min_humidity: Optional[float] = None
    max_humidity: Optional[float] = None


class SeriesRecord(ApiModel):
    timestamp: datetime
    time: str = Field(..., description="Short time-of-day label.")
    temperature: Optional[float] = None
    humidity: Optional[float] = None


class TabularSeries(ApiModel):
    data: List[SeriesRecord] = Field(default_factory=list)
    statistics: SeriesStatistics


class ChartDatasets(ApiModel):
    temperature: List[Optional[float]] = Field(default_factory=list)
    humidity: List[Optional[float]] = Field(default_factory=list)


class ChartSeries(ApiModel):
    labels: List[str] = Field(default_factory=list)
    datasets: ChartDatasets
    statistics: SeriesStatistics
