from __future__ import annotations

import math

import pytest

from src.mvtb.render.errors import ConfigurationError, InvalidDuration, InvalidShape
from src.mvtb.schedule import GridShape, build_schedule, sampling_rate


def test_schedule_covers_every_tile_with_even_spacing() -> None:
    shape = GridShape(4, 4)
    schedule = build_schedule(100.0, shape)

    assert len(schedule) == 16
    assert schedule[0] == 0
    assert schedule[1] == pytest.approx(6.25)
    assert schedule[-1] == pytest.approx(93.75)
    assert schedule[-1] < 100.0
    assert all(b >= a for a, b in zip(schedule, schedule[1:]))


def test_single_tile_samples_the_start() -> None:
    assert build_schedule(42.0, GridShape(1, 1)) == (0.0,)


def test_zero_duration_yields_all_zero_instants() -> None:
    schedule = build_schedule(0.0, GridShape(2, 3))
    assert schedule == (0.0,) * 6


@pytest.mark.parametrize("bad", [-5.0, math.nan, math.inf])
def test_schedule_rejects_invalid_duration(bad: float) -> None:
    with pytest.raises(InvalidDuration):
        build_schedule(bad, GridShape(2, 2))


@pytest.mark.parametrize(("rows", "columns"), [(0, 4), (4, 0), (-1, 2)])
def test_grid_shape_rejects_empty_grids(rows: int, columns: int) -> None:
    with pytest.raises(InvalidShape):
        GridShape(rows, columns)


def test_invalid_shape_is_a_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        GridShape(0, 0)


def test_sampling_rate_matches_tile_density() -> None:
    assert sampling_rate(100.0, 16) == pytest.approx(0.16)
    with pytest.raises(InvalidDuration):
        sampling_rate(0.0, 16)
    with pytest.raises(InvalidShape):
        sampling_rate(10.0, 0)
