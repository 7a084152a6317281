"""Configuration dataclasses for the thumbnail sheet generator."""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple


class ExtractMode(str, Enum):
    """Strategies for pulling frames out of a video."""

    SEEK = "seek"
    RATE = "rate"


DEFAULT_EXTENSIONS: Tuple[str, ...] = ("avi", "wmv", "mp4", "mov", "rmvb")


@dataclass(frozen=True)
class GridConfig:
    """Sheet shape and tile width; tile height is derived from the first frame."""

    rows: int = 4
    columns: int = 4
    width: int = 250


@dataclass(frozen=True)
class LabelConfig:
    """Per-tile timestamp label appearance."""

    timestamps: bool = True
    show_millis: bool = False
    font_path: str = ""
    font_size: int = 20
    stroke_width: int = 1
    background: str = ""


@dataclass(frozen=True)
class HeaderConfig:
    """Optional text band above the grid (file name, duration, resolution)."""

    enabled: bool = False
    font_size: int = 18
    line_height: int = 26
    background: str = "#1a1a1a"


@dataclass(frozen=True)
class ExtractConfig:
    """Frame extraction backend selection and subprocess safeguards."""

    mode: ExtractMode = ExtractMode.SEEK
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"
    ffmpeg_timeout_seconds: float = 120.0
    ffprobe_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class OutputConfig:
    """Encoded sheet format."""

    extension: str = ".jpg"
    quality: int = 90


@dataclass(frozen=True)
class InputConfig:
    """Directory-mode discovery filters."""

    extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS


@dataclass(frozen=True)
class AppConfig:
    """Aggregated configuration built once per run and passed explicitly."""

    grid: GridConfig = field(default_factory=GridConfig)
    labels: LabelConfig = field(default_factory=LabelConfig)
    header: HeaderConfig = field(default_factory=HeaderConfig)
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    inputs: InputConfig = field(default_factory=InputConfig)
    config_path: Optional[str] = None
