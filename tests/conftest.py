from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from src.datatypes import AppConfig, GridConfig
from tests.helpers.synthetic import SyntheticFrameSource


@pytest.fixture
def runner() -> CliRunner:
    """Provide a Click runner configured for CLI smoke tests."""

    return CliRunner()


@pytest.fixture
def synthetic_source() -> SyntheticFrameSource:
    """Frame source that paints solid tiles instead of calling ffmpeg."""

    return SyntheticFrameSource()


@pytest.fixture
def small_config() -> AppConfig:
    """2x2 grid with narrow tiles so composed sheets stay tiny."""

    return AppConfig(grid=GridConfig(rows=2, columns=2, width=64))


@pytest.fixture
def scratch_parent(tmp_path: Path) -> Path:
    """Dedicated parent for scratch directories so leftovers are easy to spot."""

    path = tmp_path / "scratch"
    path.mkdir()
    return path
