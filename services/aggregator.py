"""Aggregation logic for sensor readings."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from datastore.queries import Aggregation, GroupSpec, Reducer
from datastore.reading_store import ReadingStore
from models.records import Reading, TimeWindow, to_epoch_ms


@dataclass
class AggregationSummary:
    """Scalar statistics over every reading in a window."""

    reading_count: int = 0
    avg_temperature: float | None = None
    min_temperature: float | None = None
    max_temperature: float | None = None
    avg_humidity: float | None = None
    min_humidity: float | None = None
    max_humidity: float | None = None


@dataclass(frozen=True)
class SeriesPoint:
    created_at: datetime
    temperature: float | None
    humidity: float | None


@dataclass(frozen=True)
class GraphBucket:
    index: int
    timestamp: datetime
    temperature: float | None
    humidity: float | None
    reading_count: int


def round_one(value: float | None) -> float | None:
    return None if value is None else round(value, 1)


def bucket_interval_ms(window: TimeWindow, points: int) -> int:
    if points < 1:
        raise ValueError("Point count must be positive.")
    interval = window.width_ms // points
    if interval < 1:
        raise ValueError(f"Window of {window.width_ms} ms cannot hold {points} points.")
    return interval


def bucket_index(moment: datetime, window: TimeWindow, interval_ms: int, points: int) -> int:
    """Bucket for ``moment``; the remainder left by flooring joins the last bucket."""
    offset = to_epoch_ms(moment) - to_epoch_ms(window.start)
    return min(offset // interval_ms, points - 1)


_SUMMARY_AGGREGATIONS = (
    Aggregation("avg_temperature", "temperature", Reducer.avg),
    Aggregation("min_temperature", "temperature", Reducer.min),
    Aggregation("max_temperature", "temperature", Reducer.max),
    Aggregation("avg_humidity", "humidity", Reducer.avg),
    Aggregation("min_humidity", "humidity", Reducer.min),
    Aggregation("max_humidity", "humidity", Reducer.max),
    Aggregation("reading_count", "id", Reducer.count),
)

_GRAPH_AGGREGATIONS = (
    Aggregation("temperature", "temperature", Reducer.avg),
    Aggregation("humidity", "humidity", Reducer.avg),
    Aggregation("timestamp", "created_at", Reducer.first),
    Aggregation("reading_count", "id", Reducer.count),
)


class Aggregator:
    """Builds the read-side views over a device's reading stream."""

    def __init__(self, store: ReadingStore) -> None:
        self.store = store

    def fetch_all(self, device_id: int) -> list[Reading]:
        """Every reading for the device, newest first."""
        return self.store.query(device_id, descending=True)

    def summarize(self, device_id: int, window: TimeWindow) -> Optional[AggregationSummary]:
        spec = GroupSpec(aggregations=_SUMMARY_AGGREGATIONS, match_range=window)
        rows = self.store.aggregate(device_id, spec)
        if not rows:
            return None
        row = rows[0]
        return AggregationSummary(
            reading_count=row["reading_count"],
            avg_temperature=row["avg_temperature"],
            min_temperature=row["min_temperature"],
            max_temperature=row["max_temperature"],
            avg_humidity=row["avg_humidity"],
            min_humidity=row["min_humidity"],
            max_humidity=row["max_humidity"],
        )

    def batch(self, device_id: int, limit: int) -> list[SeriesPoint]:
        """The latest ``limit`` readings in store order (newest first)."""
        readings = self.store.query(device_id, descending=True, limit=limit)
        return [
            SeriesPoint(
                created_at=reading.created_at,
                temperature=reading.temperature,
                humidity=reading.humidity,
            )
            for reading in readings
        ]

    def trend(self, device_id: int, limit: int) -> list[SeriesPoint]:
        """The latest ``limit`` readings, oldest first."""
        return list(reversed(self.batch(device_id, limit)))

    def graph(self, device_id: int, window: TimeWindow, points: int) -> tuple[int, list[GraphBucket]]:
        """Average readings into at most ``points`` equal-width buckets.

        Returns the bucket width in milliseconds together with the nonempty
        buckets ordered by their earliest reading.
        """
        interval_ms = bucket_interval_ms(window, points)
        spec = GroupSpec(
            aggregations=_GRAPH_AGGREGATIONS,
            match_range=window,
            group_key=lambda reading: bucket_index(
                reading.created_at, window, interval_ms, points
            ),
        )
        rows = self.store.aggregate(device_id, spec)
        buckets = [
            GraphBucket(
                index=row["_id"],
                timestamp=row["timestamp"],
                temperature=round_one(row["temperature"]),
                humidity=round_one(row["humidity"]),
                reading_count=row["reading_count"],
            )
            for row in rows
        ]
        buckets.sort(key=lambda bucket: bucket.timestamp)
        return interval_ms, buckets
