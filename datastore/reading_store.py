from __future__ import annotations

import bisect
import json
from dataclasses import replace
from datetime import datetime, timezone
from functools import lru_cache
from pathlib import Path
from statistics import fmean
from threading import Lock
from typing import Any, Callable, Dict, Hashable, List, Optional

from pydantic import TypeAdapter, ValidationError

from datastore.persistence import quarantine, write_atomic
from datastore.queries import GroupSpec, Reducer
from models.records import Location, Reading, TimeWindow
from settings import get_settings

_READINGS_ADAPTER = TypeAdapter(List[Reading])


def _sort_key(reading: Reading) -> tuple[datetime, int]:
    return (reading.created_at, reading.id)


def _created_at(reading: Reading) -> datetime:
    return reading.created_at


def _present(values: list[Any]) -> list[Any]:
    return [value for value in values if value is not None]


def _reduce_avg(values: list[Any]) -> Optional[float]:
    present = _present(values)
    return fmean(present) if present else None


def _reduce_min(values: list[Any]) -> Any:
    present = _present(values)
    return min(present) if present else None


def _reduce_max(values: list[Any]) -> Any:
    present = _present(values)
    return max(present) if present else None


_REDUCERS: Dict[Reducer, Callable[[list[Any]], Any]] = {
    Reducer.avg: _reduce_avg,
    Reducer.min: _reduce_min,
    Reducer.max: _reduce_max,
    Reducer.first: lambda values: values[0] if values else None,
    Reducer.count: len,
}


class ReadingStore:
    """Append-only collection of readings indexed by device and creation time.

    Each append rewrites the whole persistence file, so ingestion cost grows
    with the size of the history. That is acceptable for the single-process
    deployments this store backs; a real database takes over beyond that.
    """

    def __init__(self, name: str, persistence_path: Optional[Path] = None) -> None:
        self.name = name
        self._by_device: Dict[int, List[Reading]] = {}
        self._last_id = 0
        self.persistence_path = persistence_path
        self._lock = Lock()
        if persistence_path:
            persistence_path.parent.mkdir(parents=True, exist_ok=True)
            self._load_from_disk()

    def append(
        self,
        device_id: int,
        temperature: Optional[float] = None,
        humidity: Optional[float] = None,
        location: Optional[Location] = None,
        created_at: Optional[datetime] = None,
    ) -> Reading:
        """Insert a reading; ``created_at`` defaults to the insertion instant."""
        with self._lock:
            self._last_id += 1
            reading = Reading(
                id=self._last_id,
                device_id=device_id,
                created_at=_as_utc(created_at or datetime.now(timezone.utc)),
                temperature=temperature,
                humidity=humidity,
                location=location,
            )
            self._insert(reading)
            self._persist()
        return reading

    def query(
        self,
        device_id: int,
        window: Optional[TimeWindow] = None,
        descending: bool = True,
        limit: Optional[int] = None,
    ) -> list[Reading]:
        """Return a device's readings ordered by ``created_at``."""
        with self._lock:
            indexed = self._by_device.get(device_id, [])
            lo, hi = 0, len(indexed)
            if window is not None:
                lo = bisect.bisect_left(indexed, window.start, key=_created_at)
                hi = bisect.bisect_left(indexed, window.end, lo=lo, key=_created_at)
            readings = indexed[lo:hi]

        if descending:
            readings.reverse()
        if limit is not None:
            readings = readings[:limit]
        return readings

    def aggregate(self, device_id: int, spec: GroupSpec) -> list[dict[str, Any]]:
        """Group a device's in-range readings and reduce each group to one row.

        Rows come back in order of each group's earliest reading, and carry
        their group key under ``"_id"``.
        """
        readings = self.query(device_id, window=spec.match_range, descending=False)

        groups: Dict[Hashable, list[Reading]] = {}
        for reading in readings:
            key = spec.group_key(reading) if spec.group_key is not None else None
            groups.setdefault(key, []).append(reading)

        rows: list[dict[str, Any]] = []
        for key, members in groups.items():
            row: dict[str, Any] = {"_id": key}
            for aggregation in spec.aggregations:
                values = [getattr(member, aggregation.field) for member in members]
                row[aggregation.output] = _REDUCERS[aggregation.reducer](values)
            rows.append(row)
        return rows

    def count(self) -> int:
        with self._lock:
            return sum(len(readings) for readings in self._by_device.values())

    def _insert(self, reading: Reading) -> None:
        bisect.insort(self._by_device.setdefault(reading.device_id, []), reading, key=_sort_key)

    def _persist(self) -> None:
        if not self.persistence_path:
            return
        readings = [reading for bucket in self._by_device.values() for reading in bucket]
        readings.sort(key=lambda reading: reading.id)
        payload = _READINGS_ADAPTER.dump_python(readings, mode="json")
        write_atomic(self.persistence_path, json.dumps(payload, indent=2))

    def _load_from_disk(self) -> None:
        if not self.persistence_path or not self.persistence_path.exists():
            return

        raw = self.persistence_path.read_text() or "[]"
        try:
            readings = _READINGS_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            quarantine(self.persistence_path, reason=f"invalid reading store file: {exc.error_count()} errors")
            readings = []

        for reading in readings:
            self._insert(replace(reading, created_at=_as_utc(reading.created_at)))
            self._last_id = max(self._last_id, reading.id)


def _as_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    path: Optional[str] = None,
) -> ReadingStore:
    settings = get_settings()
    store_path = settings.readings_path if path is None else path
    persistence = Path(store_path) if store_path else None
    return ReadingStore(name=name or "readings", persistence_path=persistence)
