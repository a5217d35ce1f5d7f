"""Unit tests for the in-memory reading store."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

from datastore.queries import Aggregation, GroupSpec, Reducer
from datastore.reading_store import ReadingStore
from models.records import Location, TimeWindow

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_query_orders_by_creation_time_regardless_of_insert_order() -> None:
    store = ReadingStore(name="readings")
    store.append(1, temperature=2.0, created_at=T0 + timedelta(minutes=2))
    store.append(1, temperature=0.0, created_at=T0)
    store.append(1, temperature=1.0, created_at=T0 + timedelta(minutes=1))

    descending = store.query(1)
    ascending = store.query(1, descending=False)

    assert [reading.temperature for reading in descending] == [2.0, 1.0, 0.0]
    assert [reading.temperature for reading in ascending] == [0.0, 1.0, 2.0]


def test_query_applies_half_open_window_and_limit() -> None:
    store = ReadingStore(name="readings")
    for minute in range(5):
        store.append(1, temperature=float(minute), created_at=T0 + timedelta(minutes=minute))
    window = TimeWindow(start=T0 + timedelta(minutes=1), end=T0 + timedelta(minutes=4), duration="test")

    in_window = store.query(1, window=window)
    limited = store.query(1, limit=2)

    assert [reading.temperature for reading in in_window] == [3.0, 2.0, 1.0]
    assert [reading.temperature for reading in limited] == [4.0, 3.0]


def test_query_unknown_device_is_empty() -> None:
    assert ReadingStore(name="readings").query(42) == []


def test_naive_timestamps_are_stored_as_utc() -> None:
    store = ReadingStore(name="readings")

    reading = store.append(1, temperature=1.0, created_at=datetime(2024, 1, 1, 12, 0))

    assert reading.created_at == T0
    assert reading.created_at.tzinfo is not None


def test_aggregate_without_group_key_yields_single_row() -> None:
    store = ReadingStore(name="readings")
    store.append(1, temperature=10.0, humidity=None, created_at=T0)
    store.append(1, temperature=30.0, humidity=40.0, created_at=T0 + timedelta(minutes=1))
    spec = GroupSpec(
        aggregations=(
            Aggregation("avg", "temperature", Reducer.avg),
            Aggregation("low", "humidity", Reducer.min),
            Aggregation("first", "created_at", Reducer.first),
            Aggregation("n", "id", Reducer.count),
        )
    )

    rows = store.aggregate(1, spec)

    assert rows == [{"_id": None, "avg": 20.0, "low": 40.0, "first": T0, "n": 2}]


def test_aggregate_groups_by_key_in_chronological_order() -> None:
    store = ReadingStore(name="readings")
    store.append(1, temperature=5.0, created_at=T0 + timedelta(hours=1))
    store.append(1, temperature=1.0, created_at=T0)
    store.append(1, temperature=3.0, created_at=T0 + timedelta(minutes=30))
    spec = GroupSpec(
        aggregations=(Aggregation("total", "temperature", Reducer.max),),
        group_key=lambda reading: reading.created_at.hour,
    )

    rows = store.aggregate(1, spec)

    assert rows == [{"_id": 12, "total": 3.0}, {"_id": 13, "total": 5.0}]


def test_aggregate_with_empty_range_returns_no_rows() -> None:
    store = ReadingStore(name="readings")
    store.append(1, temperature=5.0, created_at=T0)
    window = TimeWindow(start=T0 + timedelta(days=1), end=T0 + timedelta(days=2), duration="test")
    spec = GroupSpec(aggregations=(Aggregation("n", "id", Reducer.count),), match_range=window)

    assert store.aggregate(1, spec) == []


def test_append_persists_to_disk_and_reloads(tmp_path) -> None:
    path = tmp_path / "readings.json"
    store = ReadingStore(name="readings", persistence_path=path)
    store.append(
        3,
        temperature=21.5,
        humidity=55.0,
        location=Location(latitude=52.5, longitude=13.4),
        created_at=T0,
    )

    payload = json.loads(path.read_text())
    assert payload[0]["device_id"] == 3
    assert payload[0]["location"] == {"latitude": 52.5, "longitude": 13.4}

    reloaded = ReadingStore(name="readings", persistence_path=path)
    readings = reloaded.query(3)
    assert len(readings) == 1
    assert readings[0].created_at == T0
    assert readings[0].location == Location(latitude=52.5, longitude=13.4)

    next_reading = reloaded.append(3, temperature=1.0)
    assert next_reading.id == readings[0].id + 1


def test_corrupt_persistence_file_is_moved_aside(tmp_path) -> None:
    path = tmp_path / "readings.json"
    path.write_text("{not json")

    store = ReadingStore(name="readings", persistence_path=path)

    assert store.count() == 0
    assert not path.exists()
    assert [item.read_text() for item in tmp_path.glob("readings.json.*.corrupt")] == ["{not json"]


def test_truncated_history_survives_restart(tmp_path) -> None:
    path = tmp_path / "readings.json"
    store = ReadingStore(name="readings", persistence_path=path)
    for minute in range(3):
        store.append(1, temperature=float(minute), created_at=T0 + timedelta(minutes=minute))
    history = path.read_text()
    truncated = history[: len(history) // 2]
    path.write_text(truncated)

    reopened = ReadingStore(name="readings", persistence_path=path)
    reopened.append(1, temperature=9.0, created_at=T0 + timedelta(hours=1))

    (quarantined,) = tmp_path.glob("readings.json.*.corrupt")
    assert quarantined.read_text() == truncated
    assert len(json.loads(path.read_text())) == 1


def test_persist_leaves_no_temporary_files(tmp_path) -> None:
    path = tmp_path / "readings.json"
    store = ReadingStore(name="readings", persistence_path=path)
    store.append(1, temperature=1.0, created_at=T0)
    store.append(1, temperature=2.0, created_at=T0 + timedelta(minutes=1))

    assert sorted(item.name for item in tmp_path.iterdir()) == ["readings.json"]
    assert len(json.loads(path.read_text())) == 2
