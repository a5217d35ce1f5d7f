"""Resolution of duration tokens into concrete query windows."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from models.records import TimeWindow
from services.errors import InvalidDurationError

DEFAULT_DURATION = "24h"

DURATIONS: dict[str, timedelta] = {
    "1h": timedelta(hours=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
}


def _now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now


def resolve_window(
    duration: Optional[str],
    now: Optional[datetime] = None,
    points: Optional[int] = None,
) -> TimeWindow:
    """Resolve ``duration`` ending at ``now``; unknown tokens mean ``24h``."""
    token = duration if duration in DURATIONS else DEFAULT_DURATION
    end = _now(now)
    return TimeWindow(start=end - DURATIONS[token], end=end, duration=token, points=points)


def resolve_strict_window(
    duration: Optional[str],
    now: Optional[datetime] = None,
    points: Optional[int] = None,
) -> TimeWindow:
    """Like :func:`resolve_window` but rejects unknown tokens."""
    if duration not in DURATIONS:
        allowed = ", ".join(DURATIONS)
        raise InvalidDurationError(
            f"Invalid duration {duration!r}. Must be one of: {allowed}"
        )
    return resolve_window(duration, now=now, points=points)
