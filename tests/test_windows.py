"""Unit tests for duration token resolution."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from services.errors import InvalidDurationError
from services.windows import resolve_strict_window, resolve_window

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize(
    ("token", "width_ms"),
    [
        ("1h", 3_600_000),
        ("24h", 86_400_000),
        ("7d", 604_800_000),
        ("30d", 2_592_000_000),
    ],
)
def test_recognised_tokens_resolve_to_canonical_width(token: str, width_ms: int) -> None:
    window = resolve_window(token, now=NOW)

    assert window.end == NOW
    assert window.width_ms == width_ms
    assert window.duration == token


@pytest.mark.parametrize("token", ["2h", "", None, "24H", "week"])
def test_unknown_token_falls_back_to_one_day(token) -> None:
    window = resolve_window(token, now=NOW)

    assert window.duration == "24h"
    assert window.width_ms == 86_400_000


def test_strict_resolution_rejects_unknown_token() -> None:
    with pytest.raises(InvalidDurationError) as excinfo:
        resolve_strict_window("90d", now=NOW)

    assert "90d" in str(excinfo.value)
    assert isinstance(excinfo.value, ValueError)


def test_strict_resolution_keeps_requested_points() -> None:
    window = resolve_strict_window("7d", now=NOW, points=12)

    assert window.points == 12
    assert window.width_ms == 604_800_000


def test_naive_now_is_treated_as_utc() -> None:
    window = resolve_window("1h", now=datetime(2024, 3, 1, 12, 0))

    assert window.end == NOW
    assert window.contains(datetime(2024, 3, 1, 11, 0, tzinfo=timezone.utc))
    assert not window.contains(NOW)
