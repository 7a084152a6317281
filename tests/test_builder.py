from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import List

import pytest
from PIL import Image

from src.datatypes import AppConfig, ExtractConfig, ExtractMode, HeaderConfig, LabelConfig, OutputConfig
from src.mvtb import builder
from src.mvtb.builder import SheetStage, build_sheet, scratch_workspace
from src.mvtb.render.errors import DecodeError
from tests.helpers.synthetic import SyntheticFrameSource, make_inputs, tile_color


def _leftovers(parent: Path) -> List[Path]:
    return list(parent.iterdir())


def test_build_sheet_writes_sheet_beside_source(
    tmp_path: Path,
    small_config: AppConfig,
    synthetic_source: SyntheticFrameSource,
    scratch_parent: Path,
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    ticks: List[int] = []

    outcome = build_sheet(
        video, small_config, synthetic_source, progress=ticks.append, scratch_parent=scratch_parent
    )

    assert outcome.ok
    assert outcome.stage is SheetStage.DONE
    assert outcome.output == tmp_path / "movie.jpg"
    assert outcome.duration == 100.0
    assert outcome.frames_requested == 4
    assert outcome.frames_extracted == 4
    assert outcome.warnings == []
    assert sum(ticks) == 4
    with Image.open(outcome.output) as sheet:
        # 320x180 frames at width 64 -> 36px tiles
        assert sheet.size == (128, 72)
    assert synthetic_source.extract_calls[0]["instants"] == (0.0, 25.0, 50.0, 75.0)
    assert synthetic_source.extract_calls[0]["rate"] is None
    assert _leftovers(scratch_parent) == []


def test_build_sheet_without_labels_keeps_frame_pixels(
    tmp_path: Path, small_config: AppConfig, synthetic_source: SyntheticFrameSource
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mov"])
    config = replace(
        small_config,
        labels=LabelConfig(timestamps=False),
        output=OutputConfig(extension=".png"),
    )

    outcome = build_sheet(video, config, synthetic_source)

    assert outcome.ok
    with Image.open(outcome.output) as sheet:
        assert sheet.getpixel((127, 71)) == tile_color(3)


def test_build_sheet_with_header_grows_canvas(
    tmp_path: Path, small_config: AppConfig, synthetic_source: SyntheticFrameSource
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    config = replace(small_config, header=HeaderConfig(enabled=True, line_height=20))

    outcome = build_sheet(video, config, synthetic_source)

    assert outcome.ok
    with Image.open(outcome.output) as sheet:
        assert sheet.size == (128, 3 * 20 + 72)


@pytest.mark.parametrize(
    ("source_kwargs", "stage"),
    [
        ({"probe_failures": ["movie.mp4"]}, SheetStage.PROBING),
        ({"decode_failures": ["movie.mp4"]}, SheetStage.EXTRACTING),
        ({"frame_limit": 0}, SheetStage.EXTRACTING),
    ],
)
def test_failures_keep_stage_and_clean_scratch(
    tmp_path: Path,
    small_config: AppConfig,
    scratch_parent: Path,
    source_kwargs: dict,
    stage: SheetStage,
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    source = SyntheticFrameSource(**source_kwargs)

    outcome = build_sheet(video, small_config, source, scratch_parent=scratch_parent)

    assert outcome.failed
    assert outcome.stage is stage
    assert outcome.error
    assert outcome.output is None
    assert not (tmp_path / "movie.jpg").exists()
    assert _leftovers(scratch_parent) == []


def test_composition_failure_cleans_scratch(
    tmp_path: Path,
    small_config: AppConfig,
    synthetic_source: SyntheticFrameSource,
    scratch_parent: Path,
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    config = replace(small_config, labels=LabelConfig(font_path=str(tmp_path / "nope.ttf")))

    outcome = build_sheet(video, config, synthetic_source, scratch_parent=scratch_parent)

    assert outcome.stage is SheetStage.COMPOSING
    assert "nope.ttf" in (outcome.error or "")
    assert _leftovers(scratch_parent) == []


def test_encode_failure_cleans_scratch(
    tmp_path: Path,
    small_config: AppConfig,
    synthetic_source: SyntheticFrameSource,
    scratch_parent: Path,
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    (tmp_path / "movie.jpg").mkdir()

    outcome = build_sheet(video, small_config, synthetic_source, scratch_parent=scratch_parent)

    assert outcome.stage is SheetStage.ENCODING
    assert outcome.failed
    assert _leftovers(scratch_parent) == []


def test_output_matching_input_is_refused(
    tmp_path: Path, small_config: AppConfig, synthetic_source: SyntheticFrameSource
) -> None:
    (video,) = make_inputs(tmp_path, ["still.jpg"])

    outcome = build_sheet(video, small_config, synthetic_source)

    assert outcome.stage is SheetStage.ENCODING
    assert "overwrite" in (outcome.error or "")
    assert video.read_bytes() == b"not really a video\n"


def test_missing_input_is_probe_failure(
    tmp_path: Path, small_config: AppConfig, synthetic_source: SyntheticFrameSource
) -> None:
    outcome = build_sheet(tmp_path / "ghost.mp4", small_config, synthetic_source)

    assert outcome.stage is SheetStage.PROBING
    assert synthetic_source.probed == []


def test_unusable_duration_is_probe_failure(tmp_path: Path, small_config: AppConfig) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    source = SyntheticFrameSource(duration=float("nan"))

    outcome = build_sheet(video, small_config, source)

    assert outcome.stage is SheetStage.PROBING
    assert source.extract_calls == []


def test_undershoot_is_a_warning_and_leaves_cells_blank(
    tmp_path: Path,
    small_config: AppConfig,
    caplog: pytest.LogCaptureFixture,
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    source = SyntheticFrameSource(frame_limit=3)
    config = replace(
        small_config,
        labels=LabelConfig(timestamps=False),
        output=OutputConfig(extension=".png"),
    )

    with caplog.at_level(logging.WARNING, logger="src.mvtb"):
        outcome = build_sheet(video, config, source)

    assert outcome.ok
    assert outcome.frames_extracted == 3
    assert outcome.warnings and "3 of 4" in outcome.warnings[0]
    assert any("3 of 4" in record.getMessage() for record in caplog.records)
    with Image.open(outcome.output) as sheet:
        assert sheet.getpixel((127, 71)) == (0, 0, 0)


def test_rate_mode_passes_sampling_rate(
    tmp_path: Path, small_config: AppConfig, synthetic_source: SyntheticFrameSource
) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])
    config = replace(small_config, extract=ExtractConfig(mode=ExtractMode.RATE))

    outcome = build_sheet(video, config, synthetic_source)

    assert outcome.ok
    assert synthetic_source.extract_calls[0]["rate"] == pytest.approx(0.04)


def test_rate_mode_falls_back_for_zero_duration(tmp_path: Path, small_config: AppConfig) -> None:
    (video,) = make_inputs(tmp_path, ["blip.mp4"])
    source = SyntheticFrameSource(duration=0.0)
    config = replace(small_config, extract=ExtractConfig(mode=ExtractMode.RATE))

    outcome = build_sheet(video, config, source)

    assert outcome.ok
    assert source.extract_calls[0]["rate"] is None
    assert source.extract_calls[0]["instants"] == (0.0, 0.0, 0.0, 0.0)


def test_unexpected_source_errors_are_wrapped(tmp_path: Path, small_config: AppConfig) -> None:
    (video,) = make_inputs(tmp_path, ["movie.mp4"])

    class Exploding(SyntheticFrameSource):
        def extract_frames(self, *args, **kwargs):  # type: ignore[override]
            raise RuntimeError("boom")

    outcome = build_sheet(video, small_config, Exploding())

    assert outcome.stage is SheetStage.EXTRACTING
    assert "boom" in (outcome.error or "")


def test_scratch_workspace_is_unique_and_removed(scratch_parent: Path) -> None:
    with scratch_workspace(scratch_parent) as first, scratch_workspace(scratch_parent) as second:
        assert first != second
        assert first.name.startswith("mvtb-")
        (first / "01.png").write_bytes(b"x")
    assert _leftovers(scratch_parent) == []


def test_scratch_workspace_removes_on_error(scratch_parent: Path) -> None:
    with pytest.raises(DecodeError):
        with scratch_workspace(scratch_parent):
            raise DecodeError("mid-extraction")
    assert _leftovers(scratch_parent) == []


def test_cleanup_failure_is_recorded_as_warning(
    monkeypatch: pytest.MonkeyPatch, scratch_parent: Path
) -> None:
    def _refuse(path: Path) -> None:
        raise PermissionError("locked")

    monkeypatch.setattr(builder.shutil, "rmtree", _refuse)
    sink: List[str] = []
    with scratch_workspace(scratch_parent, warnings_sink=sink) as path:
        created = path

    assert sink and "locked" in sink[0]
    assert created.exists()
