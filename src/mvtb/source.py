"""Frame sources: probing durations and pulling raster frames out of videos."""

from __future__ import annotations

import logging
import math
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

from PIL import Image

from src.datatypes import ExtractConfig
from src.mvtb.render.errors import DecodeError, ProbeError
from src.mvtb.render.naming import prepare_frame_filename
from src.mvtb.subproc import resolve_executable, run_checked
from src.mvtb.timefmt import format_timestamp

logger = logging.getLogger(__name__)

FrameProgress = Callable[[int], None]

__all__ = ["FFmpegFrameSource", "Frame", "FrameProgress", "FrameSource"]


@dataclass
class Frame:
    """
    One sampled frame and the instant it was requested for.

    Frames are backed either by a file in the run's scratch directory or by an
    in-memory image (synthetic sources used by tests).
    """

    timestamp: float
    path: Optional[Path] = None
    image: Optional[Image.Image] = None

    def open(self) -> Image.Image:
        """Return the frame as a fresh RGBA image."""

        if self.image is not None:
            return self.image.convert("RGBA")
        if self.path is None:
            raise ValueError(f"Frame at {self.timestamp:.3f}s has neither a path nor an image")
        with Image.open(self.path) as handle:
            handle.load()
            return handle.convert("RGBA")


class FrameSource(Protocol):
    def probe_duration(self, source: Path) -> float:
        ...

    def extract_frames(
        self,
        source: Path,
        instants: Sequence[float],
        workdir: Path,
        *,
        rate: float | None = None,
        progress: FrameProgress | None = None,
    ) -> List[Frame]:
        ...


def _stderr_excerpt(stderr: object, limit: int = 300) -> str:
    if isinstance(stderr, bytes):
        text = stderr.decode("utf-8", "ignore")
    else:
        text = str(stderr or "")
    text = text.strip()
    return text[:limit] if text else "unknown error"


class FFmpegFrameSource:
    """
    `FrameSource` backed by the ``ffprobe`` and ``ffmpeg`` executables.

    Per-instant extraction (``rate=None``) seeks once per sample, so each
    decoded frame matches its label. Rate-based extraction decodes the whole
    file once through the ``fps`` filter; it is faster on long inputs but the
    decoded frames only approximate the scheduled instants.
    """

    def __init__(self, config: ExtractConfig | None = None) -> None:
        self.config = config or ExtractConfig()

    def _tool(self, name: str, error_cls: type[ProbeError] | type[DecodeError]) -> str:
        executable = resolve_executable(name)
        if executable is None:
            raise error_cls(f"{name} executable not found; install FFmpeg or adjust [extract] paths")
        return executable

    def probe_duration(self, source: Path) -> float:
        ffprobe = self._tool(self.config.ffprobe_path, ProbeError)
        cmd = [
            ffprobe,
            "-v",
            "error",
            "-show_entries",
            "format=duration",
            "-of",
            "default=nokey=1:noprint_wrappers=1",
            str(source),
        ]
        timeout = self.config.ffprobe_timeout_seconds
        try:
            process = run_checked(cmd, timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            raise ProbeError(f"ffprobe timed out after {float(timeout):.1f}s") from exc
        except OSError as exc:
            raise ProbeError(f"ffprobe could not be started: {exc}") from exc
        if process.returncode != 0:
            raise ProbeError(f"ffprobe failed: {_stderr_excerpt(process.stderr)}")

        lines = [line.strip() for line in str(process.stdout or "").splitlines() if line.strip()]
        raw = lines[0] if lines else ""
        try:
            duration = float(raw)
        except ValueError as exc:
            raise ProbeError(f"ffprobe returned a non-numeric duration: {raw or '(empty)'!r}") from exc
        if not math.isfinite(duration) or duration < 0:
            raise ProbeError(f"ffprobe returned an invalid duration: {raw!r}")
        logger.debug("Probed %s: %.3fs", source.name, duration)
        return duration

    def extract_frames(
        self,
        source: Path,
        instants: Sequence[float],
        workdir: Path,
        *,
        rate: float | None = None,
        progress: FrameProgress | None = None,
    ) -> List[Frame]:
        ffmpeg = self._tool(self.config.ffmpeg_path, DecodeError)
        if rate is not None:
            return self._extract_at_rate(ffmpeg, source, instants, workdir, rate, progress)
        return self._extract_each(ffmpeg, source, instants, workdir, progress)

    def _run_ffmpeg(self, cmd: List[str], what: str) -> None:
        timeout = self.config.ffmpeg_timeout_seconds
        try:
            process = run_checked(cmd, timeout=timeout, text=False)
        except subprocess.TimeoutExpired as exc:
            raise DecodeError(f"ffmpeg timed out after {float(timeout):.1f}s for {what}") from exc
        except OSError as exc:
            raise DecodeError(f"ffmpeg could not be started: {exc}") from exc
        if process.returncode != 0:
            raise DecodeError(f"ffmpeg failed for {what}: {_stderr_excerpt(process.stderr)}")

    def _extract_each(
        self,
        ffmpeg: str,
        source: Path,
        instants: Sequence[float],
        workdir: Path,
        progress: FrameProgress | None,
    ) -> List[Frame]:
        total = len(instants)
        frames: List[Frame] = []
        for index, instant in enumerate(instants, start=1):
            target = workdir / prepare_frame_filename(index, total)
            position = format_timestamp(instant, show_millis=True)
            cmd = [
                ffmpeg,
                "-nostdin",
                "-loglevel",
                "error",
                "-y",
                "-ss",
                position,
                "-i",
                str(source),
                "-frames:v",
                "1",
                "-f",
                "image2",
                str(target),
            ]
            self._run_ffmpeg(cmd, f"instant {position}")
            if target.is_file() and target.stat().st_size > 0:
                frames.append(Frame(timestamp=float(instant), path=target))
            else:
                logger.debug("ffmpeg produced no frame at %s for %s", position, source.name)
            if progress is not None:
                progress(1)
        return frames

    def _extract_at_rate(
        self,
        ffmpeg: str,
        source: Path,
        instants: Sequence[float],
        workdir: Path,
        rate: float,
        progress: FrameProgress | None,
    ) -> List[Frame]:
        total = len(instants)
        width = len(str(max(1, total)))
        cmd = [
            ffmpeg,
            "-nostdin",
            "-loglevel",
            "error",
            "-y",
            "-i",
            str(source),
            "-vf",
            f"fps={rate:.6f}",
            "-frames:v",
            str(total),
            "-f",
            "image2",
            str(workdir / f"%0{width}d.png"),
        ]
        self._run_ffmpeg(cmd, f"fps={rate:.6f}")
        frames: List[Frame] = []
        for index, instant in enumerate(instants, start=1):
            target = workdir / prepare_frame_filename(index, total)
            if not target.is_file():
                break
            frames.append(Frame(timestamp=float(instant), path=target))
        if progress is not None and frames:
            progress(len(frames))
        return frames
