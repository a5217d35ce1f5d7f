"""Query value objects understood by the reading store."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Hashable, Optional

from models.records import Reading, TimeWindow


class Reducer(str, Enum):
    """Per-group reductions; ``avg``/``min``/``max`` skip missing values."""

    avg = "avg"
    min = "min"
    max = "max"
    first = "first"
    count = "count"


@dataclass(frozen=True)
class Aggregation:
    output: str
    field: str
    reducer: Reducer


@dataclass(frozen=True)
class GroupSpec:
    """Describes one grouping pass over a device's readings.

    ``match_range`` bounds the readings considered, ``group_key`` maps each
    reading to its group (``None`` collapses everything into a single row) and
    ``aggregations`` lists the output columns computed for every group.
    Groups are formed over readings in ascending ``created_at`` order, so
    ``Reducer.first`` picks the earliest member.
    """

    aggregations: tuple[Aggregation, ...]
    match_range: Optional[TimeWindow] = None
    group_key: Optional[Callable[[Reading], Hashable]] = None
