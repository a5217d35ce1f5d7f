"""Reshaping of reading series into tabular and chart encodings."""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from statistics import fmean
from typing import Iterable, Optional, Sequence, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from app.schemas import (
    ChartDatasets,
    ChartSeries,
    SeriesFormat,
    SeriesRecord,
    SeriesStatistics,
    TabularSeries,
)
from services.aggregator import SeriesPoint, round_one
from settings import Settings

logger = logging.getLogger(__name__)


class TimeLabelFormatter:
    """Renders short time-of-day labels in a fixed zone and pattern."""

    def __init__(self, pattern: str = "%H:%M", tz: tzinfo = timezone.utc) -> None:
        self.pattern = pattern
        self.tz = tz

    @classmethod
    def from_settings(cls, settings: Settings) -> "TimeLabelFormatter":
        try:
            zone: tzinfo = ZoneInfo(settings.display_timezone)
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning(
                "Unknown display timezone, falling back to UTC",
                extra={"reason": settings.display_timezone},
            )
            zone = timezone.utc
        return cls(pattern=settings.time_label_format, tz=zone)

    def __call__(self, moment: datetime) -> str:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz).strftime(self.pattern)


def _present(values: Iterable[Optional[float]]) -> list[float]:
    return [value for value in values if value is not None]


def _mean(values: Sequence[float]) -> Optional[float]:
    return round_one(fmean(values)) if values else None


def build_statistics(points: Sequence[SeriesPoint]) -> SeriesStatistics:
    """Describe an already-rounded series."""
    temperatures = _present(point.temperature for point in points)
    humidities = _present(point.humidity for point in points)
    return SeriesStatistics(
        avg_temperature=_mean(temperatures),
        avg_humidity=_mean(humidities),
        min_temperature=min(temperatures, default=None),
        max_temperature=max(temperatures, default=None),
        min_humidity=min(humidities, default=None),
        max_humidity=max(humidities, default=None),
    )


def _rounded(points: Iterable[SeriesPoint]) -> list[SeriesPoint]:
    return [
        SeriesPoint(
            created_at=point.created_at,
            temperature=round_one(point.temperature),
            humidity=round_one(point.humidity),
        )
        for point in points
    ]


def shape_tabular(points: Iterable[SeriesPoint], formatter: TimeLabelFormatter) -> TabularSeries:
    rounded = _rounded(points)
    return TabularSeries(
        data=[
            SeriesRecord(
                timestamp=point.created_at,
                time=formatter(point.created_at),
                temperature=point.temperature,
                humidity=point.humidity,
            )
            for point in rounded
        ],
        statistics=build_statistics(rounded),
    )


def shape_chart(points: Iterable[SeriesPoint], formatter: TimeLabelFormatter) -> ChartSeries:
    rounded = _rounded(points)
    return ChartSeries(
        labels=[formatter(point.created_at) for point in rounded],
        datasets=ChartDatasets(
            temperature=[point.temperature for point in rounded],
            humidity=[point.humidity for point in rounded],
        ),
        statistics=build_statistics(rounded),
    )


def shape_series(
    points: Iterable[SeriesPoint],
    series_format: SeriesFormat,
    formatter: TimeLabelFormatter,
) -> Union[TabularSeries, ChartSeries]:
    if series_format is SeriesFormat.chart:
        return shape_chart(points, formatter)
    return shape_tabular(points, formatter)
