"""Per-file sheet pipeline: probe, extract, compose, encode."""

from __future__ import annotations

import logging
import shutil
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from PIL import Image

from src.datatypes import AppConfig, ExtractMode
from src.mvtb.render.encoders import save_sheet
from src.mvtb.render.errors import (
    CompositionError,
    DecodeError,
    InvalidDuration,
    ProbeError,
    SheetError,
    WriteError,
)
from src.mvtb.render.grid import compose_grid
from src.mvtb.render.labels import (
    LabelOverlay,
    header_lines_for,
    load_font,
    parse_color,
    render_header_line,
    render_label,
)
from src.mvtb.render.naming import SCRATCH_PREFIX, output_path_for
from src.mvtb.schedule import GridShape, build_schedule, sampling_rate
from src.mvtb.source import Frame, FrameProgress, FrameSource
from src.mvtb.timefmt import format_timestamp

logger = logging.getLogger(__name__)

__all__ = ["SheetOutcome", "SheetStage", "build_sheet", "scratch_workspace"]


class SheetStage(str, Enum):
    """Pipeline states; a failed outcome keeps the stage it failed in."""

    PROBING = "probing"
    EXTRACTING = "extracting"
    COMPOSING = "composing"
    ENCODING = "encoding"
    DONE = "done"


@dataclass
class SheetOutcome:
    """
    Result of one file's run.

    Attributes:
        source (Path): Input video.
        stage (SheetStage): ``DONE`` on success, otherwise the stage that failed.
        output (Optional[Path]): Written sheet on success.
        error (Optional[str]): Failure reason.
        duration (Optional[float]): Probed duration in seconds.
        frames_requested (int): Grid cell count.
        frames_extracted (int): Frames actually returned by the source.
        warnings (List[str]): Non-fatal conditions (undershoot, cleanup failures).
        scratch_dir (Optional[Path]): Scratch directory used by the run, already removed.
    """

    source: Path
    stage: SheetStage = SheetStage.PROBING
    output: Optional[Path] = None
    error: Optional[str] = None
    duration: Optional[float] = None
    frames_requested: int = 0
    frames_extracted: int = 0
    warnings: List[str] = field(default_factory=list)
    scratch_dir: Optional[Path] = None

    @property
    def ok(self) -> bool:
        return self.stage is SheetStage.DONE and self.error is None

    @property
    def failed(self) -> bool:
        return not self.ok


@contextmanager
def scratch_workspace(
    parent: Optional[Path] = None,
    *,
    warnings_sink: Optional[List[str]] = None,
) -> Iterator[Path]:
    """
    Allocate a uniquely named scratch directory and remove it on exit.

    Removal failures are logged and recorded in *warnings_sink*; they never
    replace an exception raised inside the block.
    """

    try:
        path = Path(tempfile.mkdtemp(prefix=SCRATCH_PREFIX, dir=str(parent) if parent else None))
    except OSError as exc:
        raise DecodeError(f"Unable to allocate scratch directory: {exc}") from exc
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as exc:
            message = f"Failed to remove scratch directory {path}: {exc}"
            logger.warning("Cleanup warning: %s", message)
            if warnings_sink is not None:
                warnings_sink.append(message)


def _probe(source: Path, frame_source: FrameSource) -> float:
    if not source.is_file():
        raise ProbeError(f"Input file not found: {source}")
    try:
        duration = frame_source.probe_duration(source)
    except SheetError:
        raise
    except Exception as exc:
        raise ProbeError(f"Duration probe failed: {exc}") from exc
    try:
        format_timestamp(duration)
    except InvalidDuration as exc:
        raise ProbeError(f"Probe returned an unusable duration: {exc}") from exc
    return float(duration)


def _extract(
    source: Path,
    duration: float,
    shape: GridShape,
    config: AppConfig,
    frame_source: FrameSource,
    workdir: Path,
    progress: Optional[FrameProgress],
) -> List[Frame]:
    schedule = build_schedule(duration, shape)
    rate: Optional[float] = None
    if config.extract.mode is ExtractMode.RATE:
        if duration > 0:
            rate = sampling_rate(duration, shape.tile_count)
        else:
            logger.debug("%s has zero duration; extracting per instant instead", source.name)
    try:
        frames = frame_source.extract_frames(source, schedule, workdir, rate=rate, progress=progress)
    except SheetError:
        raise
    except Exception as exc:
        raise DecodeError(f"Frame extraction failed: {exc}") from exc
    if not frames:
        raise DecodeError("No frames could be extracted")
    return list(frames)


def _render_labels(frames: Sequence[Frame], config: AppConfig) -> Optional[List[Optional[LabelOverlay]]]:
    label_cfg = config.labels
    if not label_cfg.timestamps:
        return None
    font = load_font(label_cfg.font_path or None, label_cfg.font_size)
    background = parse_color(label_cfg.background)
    return [
        render_label(
            format_timestamp(frame.timestamp, show_millis=label_cfg.show_millis),
            config.grid.width,
            label_cfg.font_size,
            font=font,
            stroke_width=label_cfg.stroke_width,
            background=background,
        )
        for frame in frames
    ]


def _render_header(
    source: Path,
    duration: float,
    first_frame: Image.Image,
    config: AppConfig,
) -> List[LabelOverlay]:
    header_cfg = config.header
    if not header_cfg.enabled:
        return []
    font = load_font(config.labels.font_path or None, header_cfg.font_size)
    background = parse_color(header_cfg.background)
    width = config.grid.width * config.grid.columns
    return [
        render_header_line(text, width, header_cfg.line_height, font=font, background=background)
        for text in header_lines_for(source, duration, first_frame.size)
    ]


def _compose(
    source: Path,
    duration: float,
    frames: List[Frame],
    shape: GridShape,
    config: AppConfig,
) -> Image.Image:
    try:
        placed = frames[: shape.tile_count]
        labels = _render_labels(placed, config)
        header: List[LabelOverlay] = []
        if config.header.enabled:
            header = _render_header(source, duration, frames[0].open(), config)
        return compose_grid(placed, labels, shape, config.grid.width, header)
    except SheetError:
        raise
    except Exception as exc:
        raise CompositionError(f"Sheet composition failed: {exc}") from exc


def _encode(source: Path, canvas: Image.Image, config: AppConfig) -> Path:
    output = output_path_for(source, config.output.extension)
    try:
        if output.resolve() == source.resolve():
            raise WriteError(f"Refusing to overwrite the input file {source}")
        return save_sheet(canvas, output, quality=config.output.quality)
    except SheetError:
        raise
    except OSError as exc:
        raise WriteError(f"Failed to write {output}: {exc}") from exc


def build_sheet(
    source: Path | str,
    config: AppConfig,
    frame_source: FrameSource,
    *,
    progress: Optional[FrameProgress] = None,
    scratch_parent: Optional[Path] = None,
) -> SheetOutcome:
    """
    Produce one thumbnail sheet for *source* and report how far the run got.

    Per-file errors never escape: they become a failed outcome that keeps the
    stage and reason. The scratch directory allocated for extraction is
    removed on every exit path.
    """

    source = Path(source)
    shape = GridShape(config.grid.rows, config.grid.columns)
    outcome = SheetOutcome(source=source, frames_requested=shape.tile_count)

    def _advance(stage: SheetStage) -> None:
        logger.debug("%s: %s -> %s", source.name, outcome.stage.value, stage.value)
        outcome.stage = stage

    try:
        duration = _probe(source, frame_source)
        outcome.duration = duration

        _advance(SheetStage.EXTRACTING)
        with scratch_workspace(scratch_parent, warnings_sink=outcome.warnings) as workdir:
            outcome.scratch_dir = workdir
            frames = _extract(source, duration, shape, config, frame_source, workdir, progress)
            outcome.frames_extracted = min(len(frames), shape.tile_count)
            if len(frames) < shape.tile_count:
                message = (
                    f"Only {len(frames)} of {shape.tile_count} frames extracted; "
                    "remaining cells left blank"
                )
                logger.warning("%s: %s", source.name, message)
                outcome.warnings.append(message)

            _advance(SheetStage.COMPOSING)
            canvas = _compose(source, duration, frames, shape, config)

            _advance(SheetStage.ENCODING)
            outcome.output = _encode(source, canvas, config)
        _advance(SheetStage.DONE)
    except SheetError as exc:
        outcome.error = str(exc)
        outcome.output = None
        logger.error("FAIL: %s (%s): %s", source.name, outcome.stage.value, exc)
        return outcome

    logger.info("Wrote %s", outcome.output)
    return outcome
