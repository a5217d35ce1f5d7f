"""Unit tests for the aggregation logic."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from datastore.reading_store import ReadingStore
from services.aggregator import Aggregator, bucket_index, bucket_interval_ms
from services.windows import resolve_window

NOW = datetime(2024, 1, 2, 0, 0, tzinfo=timezone.utc)
DEVICE = 1


def _store_with(*readings: tuple[timedelta, float | None, float | None]) -> ReadingStore:
    """Build a store whose readings are offsets before ``NOW``."""

    store = ReadingStore(name="test")
    for offset, temperature, humidity in readings:
        store.append(DEVICE, temperature=temperature, humidity=humidity, created_at=NOW - offset)
    return store


def test_summarize_returns_none_without_readings_in_window() -> None:
    store = _store_with((timedelta(days=3), 20.0, 50.0))
    aggregator = Aggregator(store)

    assert aggregator.summarize(DEVICE, resolve_window("24h", now=NOW)) is None


def test_summarize_computes_statistics() -> None:
    store = _store_with(
        (timedelta(minutes=30), 20.0, 40.0),
        (timedelta(minutes=20), 22.0, 50.0),
        (timedelta(minutes=10), 24.0, 60.0),
        (timedelta(days=2), 99.0, 99.0),
    )
    aggregator = Aggregator(store)

    summary = aggregator.summarize(DEVICE, resolve_window("24h", now=NOW))

    assert summary is not None
    assert summary.reading_count == 3
    assert summary.avg_temperature == pytest.approx(22.0)
    assert summary.min_temperature == 20.0
    assert summary.max_temperature == 24.0
    assert summary.avg_humidity == pytest.approx(50.0)
    assert summary.min_humidity == 40.0
    assert summary.max_humidity == 60.0


def test_summarize_ignores_missing_values() -> None:
    store = _store_with(
        (timedelta(minutes=5), None, 40.0),
        (timedelta(minutes=4), 21.0, None),
    )

    summary = Aggregator(store).summarize(DEVICE, resolve_window("1h", now=NOW))

    assert summary is not None
    assert summary.avg_temperature == 21.0
    assert summary.avg_humidity == 40.0


def test_trend_is_reverse_of_batch() -> None:
    store = _store_with(*[(timedelta(minutes=minutes), float(minutes), 50.0) for minutes in range(10)])
    aggregator = Aggregator(store)

    batch = aggregator.batch(DEVICE, 4)
    trend = aggregator.trend(DEVICE, 4)

    assert trend == list(reversed(batch))
    assert [point.temperature for point in batch] == [0.0, 1.0, 2.0, 3.0]
    assert [point.temperature for point in trend] == [3.0, 2.0, 1.0, 0.0]


def test_fetch_all_is_newest_first_and_scoped_to_device() -> None:
    store = _store_with((timedelta(hours=2), 1.0, 1.0), (timedelta(hours=1), 2.0, 2.0))
    store.append(2, temperature=50.0, created_at=NOW)

    readings = Aggregator(store).fetch_all(DEVICE)

    assert [reading.temperature for reading in readings] == [2.0, 1.0]


def test_bucket_interval_is_floored() -> None:
    window = resolve_window("24h", now=NOW)

    assert bucket_interval_ms(window, 24) == 3_600_000
    assert bucket_interval_ms(window, 7) == 86_400_000 // 7


def test_bucket_interval_rejects_degenerate_requests() -> None:
    window = resolve_window("1h", now=NOW)

    with pytest.raises(ValueError):
        bucket_interval_ms(window, 0)
    with pytest.raises(ValueError):
        bucket_interval_ms(window, window.width_ms + 1)


def test_bucket_index_stays_below_point_count() -> None:
    window = resolve_window("24h", now=NOW)
    interval = bucket_interval_ms(window, 7)
    last_ms = NOW - timedelta(milliseconds=1)

    assert bucket_index(window.start, window, interval, 7) == 0
    assert bucket_index(last_ms, window, interval, 7) == 6


def test_graph_averages_and_rounds_per_bucket() -> None:
    store = _store_with(
        (timedelta(minutes=50), 20.04, 50.0),
        (timedelta(minutes=40), 20.22, 51.0),
        (timedelta(minutes=10), 25.0, 60.0),
    )
    window = resolve_window("1h", now=NOW)

    interval_ms, buckets = Aggregator(store).graph(DEVICE, window, 2)

    assert interval_ms == 1_800_000
    assert [bucket.index for bucket in buckets] == [0, 1]
    assert buckets[0].temperature == 20.1
    assert buckets[0].humidity == 50.5
    assert buckets[0].timestamp == NOW - timedelta(minutes=50)
    assert buckets[0].reading_count == 2
    assert buckets[1].temperature == 25.0


def test_graph_omits_empty_buckets_and_excludes_window_end() -> None:
    store = _store_with(
        (timedelta(minutes=58), 10.0, 10.0),
        (timedelta(minutes=5), 30.0, 30.0),
        (timedelta(0), 99.0, 99.0),
    )
    window = resolve_window("1h", now=NOW)

    _, buckets = Aggregator(store).graph(DEVICE, window, 12)

    assert len(buckets) == 2
    assert [bucket.index for bucket in buckets] == [0, 11]
    assert all(bucket.temperature != 99.0 for bucket in buckets)


def test_graph_is_idempotent() -> None:
    store = _store_with(*[(timedelta(minutes=minutes * 7), 20.0 + minutes / 3, 45.0) for minutes in range(30)])
    aggregator = Aggregator(store)
    window = resolve_window("7d", now=NOW)

    assert aggregator.graph(DEVICE, window, 24) == aggregator.graph(DEVICE, window, 24)


def test_graph_without_readings_returns_no_buckets() -> None:
    store = ReadingStore(name="test")

    _, buckets = Aggregator(store).graph(DEVICE, resolve_window("1h", now=NOW), 24)

    assert buckets == []
