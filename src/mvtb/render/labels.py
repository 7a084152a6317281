"""Text overlays for tile timestamps and the sheet header."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from PIL import Image, ImageColor, ImageDraw, ImageFont

from src.mvtb.render.errors import FontUnavailable
from src.mvtb.render.naming import display_name
from src.mvtb.timefmt import format_timestamp

logger = logging.getLogger(__name__)

FontLike = Union[ImageFont.FreeTypeFont, ImageFont.ImageFont]
RGBA = Tuple[int, int, int, int]

FALLBACK_FONTS: Tuple[str, ...] = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "/usr/share/fonts/TTF/DejaVuSans.ttf",
    "/usr/share/fonts/dejavu/DejaVuSans.ttf",
    "/Library/Fonts/Arial Unicode.ttf",
    "C:\\Windows\\Fonts\\arial.ttf",
)

LABEL_FILL: RGBA = (255, 255, 255, 255)
LABEL_STROKE: RGBA = (0, 0, 0, 255)
TRANSPARENT: RGBA = (0, 0, 0, 0)

__all__ = [
    "FALLBACK_FONTS",
    "LabelOverlay",
    "header_lines_for",
    "load_font",
    "parse_color",
    "render_header_line",
    "render_label",
]


@dataclass(frozen=True)
class LabelOverlay:
    """A rendered RGBA text overlay; carries its own size for positioning."""

    image: Image.Image

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def load_font(font_path: Optional[str], size: int) -> FontLike:
    """
    Load a font for *size* points.

    An explicit *font_path* must load. Without one, the well-known system fonts
    are tried before Pillow's bundled default.

    Raises:
        FontUnavailable: when no usable glyph source is found.
    """

    if font_path:
        try:
            return ImageFont.truetype(font_path, size)
        except OSError as exc:
            raise FontUnavailable(f"Cannot load font '{font_path}': {exc}") from exc

    for candidate in FALLBACK_FONTS:
        if not os.path.exists(candidate):
            continue
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            logger.debug("Skipping unreadable font %s", candidate)
    try:
        return ImageFont.load_default(size=size)
    except OSError as exc:
        raise FontUnavailable(f"No usable font found: {exc}") from exc


def parse_color(value: Optional[str]) -> Optional[RGBA]:
    """Return an RGBA tuple for ``#RRGGBB`` strings, or ``None`` for blank values."""

    if not value or not value.strip():
        return None
    red, green, blue = ImageColor.getrgb(value.strip())[:3]
    return red, green, blue, 255


def render_label(
    text: str,
    max_width: int,
    font_size: int,
    *,
    font: Optional[FontLike] = None,
    font_path: Optional[str] = None,
    stroke_width: int = 1,
    background: Optional[RGBA] = None,
    padding: int = 2,
) -> LabelOverlay:
    """
    Render *text* into a standalone overlay no wider than *max_width*.

    The overlay is sized to the text's bounding box plus *padding*. Wider
    overlays are downscaled to exactly *max_width*, preserving aspect ratio;
    height is never corrected, so callers pick font sizes that fit a tile.
    """

    if max_width < 1:
        raise ValueError(f"max_width must be >= 1, got {max_width}")
    if font_size < 1:
        raise ValueError(f"font_size must be >= 1, got {font_size}")
    if font is None:
        font = load_font(font_path, font_size)

    probe = ImageDraw.Draw(Image.new("RGBA", (1, 1)))
    left, top, right, bottom = probe.textbbox((0, 0), text, font=font, stroke_width=stroke_width)
    width = max(1, int(right - left) + 2 * padding)
    height = max(1, int(bottom - top) + 2 * padding)

    image = Image.new("RGBA", (width, height), background or TRANSPARENT)
    ImageDraw.Draw(image).text(
        (padding - left, padding - top),
        text,
        font=font,
        fill=LABEL_FILL,
        stroke_width=stroke_width,
        stroke_fill=LABEL_STROKE,
    )
    if width > max_width:
        scaled_height = max(1, round(height * max_width / width))
        image = image.resize((max_width, scaled_height), Image.Resampling.LANCZOS)
    return LabelOverlay(image=image)


def _fit_text(draw: ImageDraw.ImageDraw, text: str, font: FontLike, max_width: int) -> str:
    """Trim *text* with an ellipsis until it fits *max_width* pixels."""

    if draw.textlength(text, font=font) <= max_width:
        return text
    ellipsis = "\u2026"
    trimmed = text
    while trimmed and draw.textlength(trimmed + ellipsis, font=font) > max_width:
        trimmed = trimmed[:-1]
    return trimmed + ellipsis if trimmed else ""


def render_header_line(
    text: str,
    width: int,
    line_height: int,
    *,
    font: FontLike,
    background: Optional[RGBA] = None,
    margin: int = 8,
) -> LabelOverlay:
    """Render one full-width header band of fixed *line_height* with left-aligned text."""

    fill = background or (0, 0, 0, 255)
    image = Image.new("RGBA", (max(1, width), max(1, line_height)), fill)
    draw = ImageDraw.Draw(image)
    fitted = _fit_text(draw, text, font, max(1, width - 2 * margin))
    if fitted:
        left, top, _right, bottom = draw.textbbox((0, 0), fitted, font=font)
        y = (line_height - int(bottom - top)) // 2 - int(top)
        draw.text((margin - left, y), fitted, font=font, fill=LABEL_FILL)
    return LabelOverlay(image=image)


def header_lines_for(
    source: Path,
    duration: float,
    frame_size: Optional[Tuple[int, int]] = None,
) -> List[str]:
    """Default header text: file name, duration and native resolution when known."""

    lines = [display_name(source), f"Duration: {format_timestamp(duration)}"]
    if frame_size is not None:
        lines.append(f"Resolution: {int(frame_size[0])}x{int(frame_size[1])}")
    return lines
