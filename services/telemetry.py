"""Read-side orchestration of device telemetry queries."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import lru_cache
from typing import Optional, Union

from app.schemas import (
    AnalyticsResponse,
    ChartSeries,
    DeviceInfo,
    GraphPoint,
    GraphResponse,
    LocationOut,
    ReadingOut,
    SeriesFormat,
    TabularSeries,
    TrendPoint,
)
from datastore.device_registry import DeviceRegistry, build_default_registry
from datastore.reading_store import ReadingStore, build_default_store
from models.records import Device, parse_device_ref
from services.aggregator import Aggregator, SeriesPoint
from services.errors import DataNotFoundError, DeviceAccessError
from services.shaper import TimeLabelFormatter, shape_series
from services.windows import resolve_strict_window, resolve_window
from settings import get_settings

logger = logging.getLogger(__name__)


def _trend_points(points: list[SeriesPoint]) -> list[TrendPoint]:
    return [
        TrendPoint(
            temperature=point.temperature,
            humidity=point.humidity,
            created_at=point.created_at,
        )
        for point in points
    ]


class TelemetryService:
    """Answers per-device reading queries on behalf of an authenticated user."""

    def __init__(
        self,
        store: ReadingStore,
        registry: DeviceRegistry,
        aggregator: Aggregator,
        formatter: TimeLabelFormatter,
        default_limit: int = 24,
        max_limit: int = 1000,
        default_points: int = 24,
        max_points: int = 1000,
    ) -> None:
        self.store = store
        self.registry = registry
        self.aggregator = aggregator
        self.formatter = formatter
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.default_points = default_points
        self.max_points = max_points

    def authorize(self, raw_device: str, user_id: str) -> Device:
        """Resolve a path identifier to a device owned by ``user_id``."""
        device = self.registry.resolve(parse_device_ref(raw_device))
        if device is None or not device.is_owned_by(user_id):
            logger.info(
                "Device lookup rejected",
                extra={"device_id": raw_device, "user_id": user_id, "reason": "missing or not owned"},
            )
            raise DeviceAccessError("Device not found or unauthorized")
        return device

    def _limit(self, limit: Optional[int]) -> int:
        return min(limit or self.default_limit, self.max_limit)

    def list_readings(self, raw_device: str, user_id: str) -> list[ReadingOut]:
        device = self.authorize(raw_device, user_id)
        readings = self.aggregator.fetch_all(device.id)
        if not readings:
            raise DataNotFoundError("No data found for this device")

        info = DeviceInfo(id=device.id, device_name=device.name)
        return [
            ReadingOut(
                id=reading.id,
                device=info,
                temperature=reading.temperature,
                humidity=reading.humidity,
                location=(
                    LocationOut(
                        latitude=reading.location.latitude,
                        longitude=reading.location.longitude,
                    )
                    if reading.location is not None
                    else None
                ),
                created_at=reading.created_at,
            )
            for reading in readings
        ]

    def analytics(
        self,
        raw_device: str,
        user_id: str,
        duration: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> AnalyticsResponse:
        device = self.authorize(raw_device, user_id)
        window = resolve_window(duration, now=now)
        summary = self.aggregator.summarize(device.id, window)
        if summary is None:
            raise DataNotFoundError("No data found for the specified duration")

        logger.info(
            "Computed analytics",
            extra={
                "device_id": device.id,
                "duration": window.duration,
                "reading_count": summary.reading_count,
            },
        )
        return AnalyticsResponse(
            duration=window.duration,
            start=window.start,
            end=window.end,
            reading_count=summary.reading_count,
            avg_temperature=summary.avg_temperature,
            min_temperature=summary.min_temperature,
            max_temperature=summary.max_temperature,
            avg_humidity=summary.avg_humidity,
            min_humidity=summary.min_humidity,
            max_humidity=summary.max_humidity,
        )

    def trends(self, raw_device: str, user_id: str, limit: Optional[int] = None) -> list[TrendPoint]:
        device = self.authorize(raw_device, user_id)
        points = self.aggregator.trend(device.id, self._limit(limit))
        if not points:
            raise DataNotFoundError("No trend data found for this device")
        return _trend_points(points)

    def batch(self, raw_device: str, user_id: str, limit: Optional[int] = None) -> list[TrendPoint]:
        device = self.authorize(raw_device, user_id)
        points = self.aggregator.batch(device.id, self._limit(limit))
        if not points:
            raise DataNotFoundError("No batch data found for this device")
        return _trend_points(points)

    def graph(
        self,
        raw_device: str,
        user_id: str,
        duration: Optional[str] = None,
        points: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> GraphResponse:
        points = points or self.default_points
        window = resolve_strict_window(duration, now=now, points=points)
        device = self.authorize(raw_device, user_id)
        requested = min(points, self.max_points, window.width_ms)

        interval_ms, buckets = self.aggregator.graph(device.id, window, requested)
        if not buckets:
            raise DataNotFoundError("No data found for the specified duration")

        logger.info(
            "Built graph buckets",
            extra={
                "device_id": device.id,
                "duration": window.duration,
                "points": requested,
                "interval_ms": interval_ms,
                "bucket_count": len(buckets),
            },
        )
        return GraphResponse(
            duration=window.duration,
            start=window.start,
            end=window.end,
            points=requested,
            interval_ms=interval_ms,
            data=[
                GraphPoint(
                    timestamp=bucket.timestamp,
                    temperature=bucket.temperature,
                    humidity=bucket.humidity,
                )
                for bucket in buckets
            ],
        )

    def timeseries(
        self,
        raw_device: str,
        user_id: str,
        limit: Optional[int] = None,
        series_format: SeriesFormat = SeriesFormat.simple,
    ) -> Union[TabularSeries, ChartSeries]:
        device = self.authorize(raw_device, user_id)
        points = self.aggregator.trend(device.id, self._limit(limit))
        if not points:
            raise DataNotFoundError("No data found for this device")
        return shape_series(points, series_format, self.formatter)


@lru_cache
def build_default_service() -> TelemetryService:
    """Factory that wires the telemetry service with the default stores."""
    settings = get_settings()
    store = build_default_store()
    return TelemetryService(
        store=store,
        registry=build_default_registry(),
        aggregator=Aggregator(store),
        formatter=TimeLabelFormatter.from_settings(settings),
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
        default_points=settings.default_points,
        max_points=settings.max_points,
    )
