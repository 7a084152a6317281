"""Run orchestration behind the ``mvtb`` command."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from src.config_loader import apply_overrides, load_config
from src.datatypes import AppConfig
from src.mvtb.batch import BatchResult, discover_inputs, run_batch
from src.mvtb.cli_runtime import BatchReporter, CLIAppError
from src.mvtb.render.errors import ConfigurationError
from src.mvtb.source import FFmpegFrameSource, FrameSource

logger = logging.getLogger("src.mvtb")

__all__ = ["RunRequest", "RunResult", "configure_logging", "resolve_config", "resolve_inputs", "run"]


@dataclass
class RunRequest:
    """Everything the CLI collected for one invocation."""

    file: Optional[str] = None
    directory: Optional[str] = None
    config_path: Optional[str] = None
    overrides: Mapping[str, Any] = field(default_factory=dict)
    quiet: bool = False
    verbose: bool = False
    no_color: bool = False
    console: Optional[Console] = None
    frame_source: Optional[FrameSource] = None
    should_cancel: Optional[Callable[[], bool]] = None


@dataclass
class RunResult:
    config: AppConfig
    mode: str
    inputs: List[Path]
    batch: BatchResult

    @property
    def exit_code(self) -> int:
        return self.batch.exit_code


def configure_logging(console: Console, *, quiet: bool = False, verbose: bool = False) -> None:
    """Route package log records through a Rich handler on *console*."""

    level = logging.ERROR if quiet else logging.INFO if verbose else logging.WARNING
    for handler in list(logger.handlers):
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)
    handler = RichHandler(console=console, show_path=False, show_time=False, markup=False)
    handler.setLevel(level)
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


def resolve_config(config_path: Optional[str], overrides: Mapping[str, Any]) -> AppConfig:
    """Load the optional TOML file and apply command-line overrides on top."""

    base = load_config(config_path) if config_path else AppConfig()
    cleaned: Dict[str, Any] = {key: value for key, value in overrides.items() if value is not None}
    return apply_overrides(base, **cleaned)


def resolve_inputs(file: Optional[str], directory: Optional[str], config: AppConfig) -> Tuple[str, List[Path]]:
    """
    Pick single-file or directory mode; ``file`` wins when both are supplied.

    Raises:
        CLIAppError: when neither is given or the directory does not exist.
    """

    if file:
        if directory:
            logger.warning("Both --file and --directory given; processing --file only")
        return "file", [Path(file)]
    if directory:
        try:
            return "directory", discover_inputs(Path(directory), config.inputs.extensions)
        except ConfigurationError as exc:
            raise CLIAppError(
                str(exc),
                code=2,
                rich_message=f"[red]{escape(str(exc))}[/red]",
            ) from exc
    raise CLIAppError(
        "Please specify file or directory",
        code=2,
        rich_message="[red]Please specify --file or --directory[/red]",
    )


def run(request: RunRequest) -> RunResult:
    """
    Resolve configuration and inputs, then build every sheet.

    Raises:
        CLIAppError: for configuration or usage errors, before any file is touched.
    """

    try:
        config = resolve_config(request.config_path, request.overrides)
    except ConfigurationError as exc:
        raise CLIAppError(
            str(exc),
            code=2,
            rich_message=f"[red]Configuration error:[/red] {escape(str(exc))}",
        ) from exc

    console = request.console or Console(no_color=request.no_color, highlight=False)
    configure_logging(console, quiet=request.quiet, verbose=request.verbose)
    mode, inputs = resolve_inputs(request.file, request.directory, config)

    if not inputs:
        if not request.quiet:
            console.print(
                f"[yellow]No matching files[/yellow] in {escape(str(request.directory))} "
                f"(extensions: {'|'.join(config.inputs.extensions)})"
            )
        return RunResult(config=config, mode=mode, inputs=[], batch=BatchResult())

    frame_source = request.frame_source or FFmpegFrameSource(config.extract)
    reporter = BatchReporter(
        console,
        frames_per_file=config.grid.rows * config.grid.columns,
        show_overall=mode == "directory",
        quiet=request.quiet,
    )
    with reporter:
        batch = run_batch(
            inputs,
            config,
            frame_source,
            on_start=reporter.on_start,
            on_frame=reporter.on_frame,
            on_complete=reporter.on_complete,
            should_cancel=request.should_cancel,
        )
    reporter.print_summary(batch)
    return RunResult(config=config, mode=mode, inputs=list(inputs), batch=batch)
