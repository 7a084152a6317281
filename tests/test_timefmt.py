from __future__ import annotations

import math

import pytest

from src.mvtb.render.errors import InvalidDuration
from src.mvtb.timefmt import format_timestamp, split_seconds


@pytest.mark.parametrize(
    ("seconds", "expected"),
    [
        (0, "00:00:00"),
        (59.999, "00:00:59"),
        (61.5, "00:01:01"),
        (3661, "01:01:01"),
        (100 * 3600 + 5, "100:00:05"),
    ],
)
def test_format_timestamp_truncates_to_whole_seconds(seconds: float, expected: str) -> None:
    assert format_timestamp(seconds) == expected


def test_format_timestamp_with_millis() -> None:
    assert format_timestamp(59.999, show_millis=True) == "00:00:59.999"
    assert format_timestamp(3661.25, show_millis=True) == "01:01:01.250"
    assert format_timestamp(0, show_millis=True) == "00:00:00.000"


def test_split_seconds_carries_rounding_into_seconds() -> None:
    assert split_seconds(1.9999999) == (0, 0, 2, 0)
    assert split_seconds(7325.5) == (2, 2, 5, 500)


@pytest.mark.parametrize("bad", [-1, -0.001, math.nan, math.inf, "soon"])
def test_invalid_durations_are_rejected(bad: object) -> None:
    with pytest.raises(InvalidDuration):
        format_timestamp(bad)  # type: ignore[arg-type]
