from __future__ import annotations

import re
from pathlib import Path

SCRATCH_PREFIX = "mvtb-"

__all__ = [
    "INVALID_LABEL_PATTERN",
    "SCRATCH_PREFIX",
    "display_name",
    "output_path_for",
    "prepare_frame_filename",
]


INVALID_LABEL_PATTERN = re.compile(r"[\x00-\x1f\x7f]")


def display_name(source: Path) -> str:
    """Return the file name with control characters replaced, for headers and console lines."""

    cleaned = INVALID_LABEL_PATTERN.sub("?", source.name).strip()
    return cleaned or str(source)


def output_path_for(source: Path, extension: str) -> Path:
    """Return the sheet path beside *source*: same stem, *extension* swapped in."""

    suffix = extension if extension.startswith(".") else f".{extension}"
    return source.with_name(source.stem + suffix)


def prepare_frame_filename(index: int, total: int) -> str:
    """
    Return the scratch filename for the 1-based frame *index*.

    Indices are zero-padded to the width of *total* so lexical order equals
    extraction order (``07.png`` of ``16``).
    """

    width = len(str(max(1, total)))
    return f"{index:0{width}d}.png"
