"""Console reporting shared between the Click wiring and the runner."""

from __future__ import annotations

from pathlib import Path
from types import TracebackType
from typing import TYPE_CHECKING, Optional, Type

from rich.console import Console
from rich.markup import escape
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

if TYPE_CHECKING:  # pragma: no cover
    from src.mvtb.batch import BatchResult
    from src.mvtb.builder import SheetOutcome


class CLIAppError(RuntimeError):
    """Raised when the CLI cannot complete its work."""

    def __init__(self, message: str, *, code: int = 1, rich_message: Optional[str] = None) -> None:
        super().__init__(message)
        self.code = code
        self.rich_message = rich_message or message


def _color_text(text: str, style: Optional[str]) -> str:
    """Wrap *text* in Rich markup for *style*, or return it unchanged when no style is given."""
    if style:
        return f"[{style}]{text}[/]"
    return text


def _format_kv(
    label: str,
    value: object,
    *,
    label_style: Optional[str] = "dim",
    value_style: Optional[str] = "bright_white",
    sep: str = "=",
) -> str:
    """
    Format a label/value pair as a single string with optional Rich styling.

    Parameters:
        label (str): The left-side label text.
        value (object): The right-side value; converted to string.
        label_style (Optional[str]): Rich style name applied to the label, or ``None`` for no styling.
        value_style (Optional[str]): Rich style name applied to the value, or ``None`` for no styling.
        sep (str): Separator string placed between label and value.

    Returns:
        str: The styled (or plain) label, the separator, and the styled (or plain) value.
    """
    label_text = escape(str(label))
    value_text = escape(str(value))
    return f"{_color_text(label_text, label_style)}{sep}{_color_text(value_text, value_style)}"


class BatchReporter:
    """
    Progress bars and per-file console lines for a batch run.

    Two bars mirror the batch shape: an overall file counter (directory mode
    only) and a per-file frame counter that resets for every input.
    """

    def __init__(
        self,
        console: Console,
        *,
        frames_per_file: int,
        show_overall: bool = True,
        quiet: bool = False,
    ) -> None:
        self.console = console
        self.frames_per_file = max(1, frames_per_file)
        self.show_overall = show_overall
        self.quiet = quiet
        self.progress = Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.fields[filename]}"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            console=console,
            transient=False,
            disable=quiet,
        )
        self._overall_task: Optional[TaskID] = None
        self._frame_task: Optional[TaskID] = None

    def __enter__(self) -> "BatchReporter":
        self.progress.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.progress.stop()

    def on_start(self, index: int, total: int, path: Path) -> None:
        if self.show_overall and self._overall_task is None:
            self._overall_task = self.progress.add_task("Files", total=total, filename="ALL")
        if self._frame_task is None:
            self._frame_task = self.progress.add_task(
                "Frames", total=self.frames_per_file, filename=path.name
            )
        else:
            self.progress.reset(self._frame_task, total=self.frames_per_file, filename=path.name)

    def on_frame(self, count: int) -> None:
        if self._frame_task is not None:
            self.progress.advance(self._frame_task, count)

    def on_complete(self, completed: int, total: int, outcome: "SheetOutcome") -> None:
        if self._overall_task is not None:
            self.progress.update(self._overall_task, completed=completed)
        if outcome.ok and not self.quiet:
            self.progress.console.print(
                f"[green]OK[/green] {escape(outcome.source.name)} → {escape(str(outcome.output))}"
            )

    def print_summary(self, result: "BatchResult") -> None:
        style = "green" if result.exit_code == 0 else "red"
        parts = [
            _format_kv("succeeded", result.succeeded, value_style="green"),
            _format_kv("failed", result.failed, value_style="red" if result.failed else None),
        ]
        if result.skipped:
            parts.append(_format_kv("skipped", len(result.skipped), value_style="yellow"))
        self.console.print(f"[{style}]Done[/] " + "  ".join(parts))
        for outcome in result.outcomes:
            if outcome.failed:
                self.console.print(
                    f"  [red]FAIL:[/red] {escape(str(outcome.source))} "
                    f"({outcome.stage.value}): {escape(outcome.error or 'unknown error')}"
                )
