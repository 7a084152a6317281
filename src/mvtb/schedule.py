"""Sample instant planning for evenly spaced thumbnails."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Tuple

from src.mvtb.render.errors import InvalidDuration, InvalidShape

SampleSchedule = Tuple[float, ...]

__all__ = ["GridShape", "SampleSchedule", "build_schedule", "sampling_rate"]


@dataclass(frozen=True)
class GridShape:
    """Rows and columns of a thumbnail sheet."""

    rows: int
    columns: int

    def __post_init__(self) -> None:
        if int(self.rows) < 1 or int(self.columns) < 1:
            raise InvalidShape(
                f"Grid must have at least one row and column (rows={self.rows}, columns={self.columns})"
            )

    @property
    def tile_count(self) -> int:
        return self.rows * self.columns


def _checked_duration(duration: float) -> float:
    try:
        value = float(duration)
    except (TypeError, ValueError) as exc:
        raise InvalidDuration(f"Duration must be a number, got {duration!r}") from exc
    if not math.isfinite(value) or value < 0:
        raise InvalidDuration(f"Duration must be finite and >= 0, got {duration!r}")
    return value


def build_schedule(duration: float, shape: GridShape) -> SampleSchedule:
    """
    Return ``shape.tile_count`` sample instants spaced ``duration / tile_count`` apart.

    The first instant is always ``0`` and the last lies strictly before
    *duration*. A zero duration yields all-zero instants.
    """

    value = _checked_duration(duration)
    count = shape.tile_count
    interval = value / count
    return tuple(index * interval for index in range(count))


def sampling_rate(duration: float, tile_count: int) -> float:
    """Frames per second that yield *tile_count* samples across *duration*."""

    value = _checked_duration(duration)
    if tile_count < 1:
        raise InvalidShape(f"tile_count must be >= 1, got {tile_count}")
    if value == 0:
        raise InvalidDuration("Cannot derive a sampling rate for a zero-length video")
    return tile_count / value
