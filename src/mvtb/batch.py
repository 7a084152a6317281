"""Sequential batch orchestration over one file or a directory of videos."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from natsort import os_sorted

from src.config_loader import parse_extensions, validate_config
from src.datatypes import AppConfig
from src.mvtb.builder import SheetOutcome, build_sheet
from src.mvtb.render.errors import ConfigurationError
from src.mvtb.source import FrameProgress, FrameSource

logger = logging.getLogger(__name__)

StartCallback = Callable[[int, int, Path], None]
CompleteCallback = Callable[[int, int, SheetOutcome], None]

__all__ = ["BatchResult", "discover_inputs", "run_batch"]


@dataclass
class BatchResult:
    """Ordered per-file outcomes plus any inputs skipped by cancellation."""

    outcomes: List[SheetOutcome] = field(default_factory=list)
    skipped: List[Path] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.ok)

    @property
    def failed(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.failed)

    @property
    def exit_code(self) -> int:
        """``0`` only when every attempted input produced a sheet and none were skipped."""

        return 1 if self.failed or self.skipped else 0

    def summary(self) -> str:
        text = (
            f"{len(self.outcomes)} file(s) processed: "
            f"{self.succeeded} succeeded, {self.failed} failed"
        )
        if self.skipped:
            text += f", {len(self.skipped)} skipped"
        return text


def discover_inputs(directory: Path, extensions: Iterable[str]) -> List[Path]:
    """
    Return the videos directly inside *directory* whose extension is allowed.

    Matching is case-insensitive; dotfiles and subdirectories are skipped. The
    listing is naturally sorted so batch order does not depend on the
    filesystem.
    """

    if not directory.is_dir():
        raise ConfigurationError(f"Input directory not found: {directory}")
    allowed = {f".{name}" for name in parse_extensions(extensions)}
    return [
        entry
        for entry in os_sorted(directory.iterdir())
        if not entry.name.startswith(".") and entry.is_file() and entry.suffix.lower() in allowed
    ]


def run_batch(
    inputs: Sequence[Path],
    config: AppConfig,
    frame_source: FrameSource,
    *,
    on_start: Optional[StartCallback] = None,
    on_frame: Optional[FrameProgress] = None,
    on_complete: Optional[CompleteCallback] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    scratch_parent: Optional[Path] = None,
) -> BatchResult:
    """
    Build one sheet per input, in order, never aborting on a failed file.

    Configuration is validated before any input is touched. ``on_complete``
    receives a monotonically increasing completed count after every file,
    successful or not. ``should_cancel`` is polled between files; inputs left
    when it returns ``True`` are recorded as skipped.

    Raises:
        ConfigurationError: when *config* is invalid.
    """

    validate_config(config)
    result = BatchResult()
    total = len(inputs)
    if total == 0:
        logger.info("No matching input files; nothing to do")
        return result

    for index, path in enumerate(inputs):
        if should_cancel is not None and should_cancel():
            result.skipped.extend(Path(item) for item in inputs[index:])
            logger.warning("Cancelled; skipping %d remaining file(s)", total - index)
            break
        path = Path(path)
        if on_start is not None:
            on_start(index, total, path)
        outcome = build_sheet(
            path,
            config,
            frame_source,
            progress=on_frame,
            scratch_parent=scratch_parent,
        )
        result.outcomes.append(outcome)
        if outcome.failed and index + 1 < total:
            logger.info("Continuing after failure in %s", path.name)
        if on_complete is not None:
            on_complete(index + 1, total, outcome)

    logger.info(result.summary())
    return result
