from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from PIL import Image

from src.mvtb.render.errors import WriteError

__all__ = ["image_format_for", "save_sheet"]

_QUALITY_FORMATS = {"JPEG", "WEBP"}


def image_format_for(path: Path) -> str:
    """Return the Pillow format name registered for *path*'s extension."""

    suffix = path.suffix.lower()
    fmt = Image.registered_extensions().get(suffix)
    if fmt is None:
        raise WriteError(f"Unsupported output extension '{suffix or path.name}'")
    return fmt


def save_sheet(canvas: Image.Image, path: Path, *, quality: int = 90) -> Path:
    """
    Encode *canvas* to *path*, replacing any existing file.

    The image is written to a temporary sibling first and moved into place so
    a failed encode never leaves a truncated sheet behind.

    Raises:
        WriteError: on unsupported formats or any I/O failure.
    """

    fmt = image_format_for(path)
    options: Dict[str, Any] = {}
    if fmt in _QUALITY_FORMATS:
        options["quality"] = int(quality)
    if fmt == "JPEG":
        options["optimize"] = True

    if path.is_dir():
        raise WriteError(f"Output path {path} is a directory")

    temp_path: Path | None = None
    try:
        with tempfile.NamedTemporaryFile(
            delete=False,
            dir=str(path.parent),
            prefix=f".{path.stem}.",
            suffix=path.suffix,
        ) as handle:
            temp_path = Path(handle.name)
            canvas.convert("RGB").save(handle, format=fmt, **options)
            handle.flush()
            os.fsync(handle.fileno())
        os.replace(temp_path, path)
        temp_path = None
    except (OSError, ValueError) as exc:
        raise WriteError(f"Failed to write {path}: {exc}") from exc
    finally:
        if temp_path is not None and temp_path.exists():
            try:
                temp_path.unlink()
            except OSError:
                pass
    return path
