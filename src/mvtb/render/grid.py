"""Grid layout and compositing for thumbnail sheets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from PIL import Image

from src.mvtb.render.errors import CompositionError
from src.mvtb.render.labels import LabelOverlay
from src.mvtb.schedule import GridShape

if TYPE_CHECKING:  # pragma: no cover
    from src.mvtb.source import Frame

logger = logging.getLogger(__name__)

BACKGROUND = (0, 0, 0, 255)

__all__ = ["BACKGROUND", "SheetLayout", "compose_grid", "compute_tile_height", "plan_layout"]


@dataclass(frozen=True)
class SheetLayout:
    """
    Pixel geometry of one sheet.

    Every tile shares ``tile_width`` x ``tile_height``; tiles fill row-major
    below a header band of ``header_height`` pixels.
    """

    tile_width: int
    tile_height: int
    rows: int
    columns: int
    header_height: int = 0

    @property
    def tile_count(self) -> int:
        return self.rows * self.columns

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (
            self.tile_width * self.columns,
            self.tile_height * self.rows + self.header_height,
        )

    def tile_origin(self, index: int) -> Tuple[int, int]:
        """Return the ``(left, top)`` corner of tile *index* (0-based)."""

        if not 0 <= index < self.tile_count:
            raise IndexError(f"tile index {index} outside 0..{self.tile_count - 1}")
        row, column = divmod(index, self.columns)
        return column * self.tile_width, self.header_height + row * self.tile_height


def compute_tile_height(target_width: int, frame_width: int, frame_height: int) -> int:
    """Return ``ceil(target_width * frame_height / frame_width)`` using exact integer math."""

    if frame_width <= 0 or frame_height <= 0:
        raise CompositionError(f"Frame has invalid dimensions {frame_width}x{frame_height}")
    return max(1, -(-target_width * frame_height // frame_width))


def plan_layout(
    shape: GridShape,
    target_width: int,
    frame_size: Tuple[int, int],
    header_lines: Sequence[LabelOverlay] = (),
) -> SheetLayout:
    """Derive the sheet geometry from the first frame's size and the header bands."""

    if target_width < 1:
        raise CompositionError(f"Tile width must be >= 1, got {target_width}")
    return SheetLayout(
        tile_width=target_width,
        tile_height=compute_tile_height(target_width, frame_size[0], frame_size[1]),
        rows=shape.rows,
        columns=shape.columns,
        header_height=sum(line.height for line in header_lines),
    )


def _anchor_label(tile: Image.Image, label: LabelOverlay) -> None:
    """Composite *label* onto the bottom-right of *tile*, clipping anything above the tile."""

    left = max(0, tile.width - label.width)
    top = tile.height - label.height
    source_top = 0
    if top < 0:
        source_top = -top
        top = 0
    tile.alpha_composite(label.image, (left, top), (0, source_top))


def _open_frame(frame: Frame, index: int) -> Image.Image:
    try:
        return frame.open()
    except (OSError, ValueError) as exc:
        raise CompositionError(
            f"Unable to read frame {index + 1} ({frame.timestamp:.3f}s): {exc}"
        ) from exc


def compose_grid(
    frames: Sequence[Frame],
    labels: Optional[Sequence[Optional[LabelOverlay]]],
    shape: GridShape,
    target_width: int,
    header_lines: Sequence[LabelOverlay] = (),
) -> Image.Image:
    """
    Composite *frames* (and optional per-tile *labels*) onto one opaque canvas.

    The first frame's aspect ratio sets the height of every tile; each frame is
    stretched to exactly that size. Header bands are stacked from the top-left,
    then tiles fill row-major in the given order. Cells without a frame stay
    background. Frames beyond ``shape.tile_count`` are ignored.

    Raises:
        CompositionError: when there are no frames or any frame cannot be read.
    """

    if not frames:
        raise CompositionError("No frames to compose")

    first = _open_frame(frames[0], 0)
    layout = plan_layout(shape, target_width, first.size, header_lines)
    canvas = Image.new("RGBA", layout.canvas_size, BACKGROUND)

    offset = 0
    for line in header_lines:
        canvas.alpha_composite(line.image, (0, offset))
        offset += line.height

    tile_size = (layout.tile_width, layout.tile_height)
    placed = frames[: layout.tile_count]
    for index, frame in enumerate(placed):
        image = first if index == 0 else _open_frame(frame, index)
        tile = image.resize(tile_size, Image.Resampling.LANCZOS)
        label = labels[index] if labels is not None and index < len(labels) else None
        if label is not None:
            _anchor_label(tile, label)
        canvas.alpha_composite(tile, layout.tile_origin(index))

    if len(frames) > layout.tile_count:
        logger.debug("Ignoring %d frame(s) beyond the grid", len(frames) - layout.tile_count)
    return canvas
