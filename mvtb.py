"""CLI entry point for the movie thumbnail sheet generator."""

from __future__ import annotations

from typing import Optional

import click
from rich import print

from src.mvtb import runner
from src.mvtb.cli_runtime import CLIAppError
from src.mvtb.render.errors import (
    CompositionError,
    ConfigurationError,
    DecodeError,
    ProbeError,
    WriteError,
)

RunRequest = runner.RunRequest
RunResult = runner.RunResult

__all__ = (
    "main",
    "run_cli",
    "RunRequest",
    "RunResult",
    "CLIAppError",
    "ConfigurationError",
    "ProbeError",
    "DecodeError",
    "CompositionError",
    "WriteError",
)


def run_cli(request: RunRequest) -> RunResult:
    """Delegate to the shared runner module."""
    return runner.run(request)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-f", "--file", "file_path", default=None, help="Movie file to process.")
@click.option("-d", "--directory", "directory", default=None, help="Process every matching movie in this directory.")
@click.option(
    "-e",
    "--ext",
    "extensions",
    default=None,
    help="File extensions, split by | (default: avi|wmv|mp4|mov|rmvb).",
)
@click.option("-R", "--row", "rows", type=int, default=None, help="Thumbnail rows (default: 4).")
@click.option("-C", "--column", "columns", type=int, default=None, help="Thumbnail columns (default: 4).")
@click.option("-W", "--width", "width", type=int, default=None, help="Thumbnail width in pixels (default: 250).")
@click.option("--config", "config_path", default=None, help="Optional TOML config; flags override its values.")
@click.option(
    "--timestamps/--no-timestamps",
    "timestamps",
    default=None,
    help="Draw the sample time on each tile (default: on).",
)
@click.option(
    "--millis/--no-millis",
    "show_millis",
    default=None,
    help="Include milliseconds in tile labels (default: off).",
)
@click.option("--header/--no-header", "header", default=None, help="Add a file name/duration header band.")
@click.option("--font", "font_path", default=None, help="TrueType font used for labels and header.")
@click.option("--font-size", "font_size", type=int, default=None, help="Label font size (default: 20).")
@click.option(
    "--mode",
    "mode",
    type=click.Choice(["seek", "rate"], case_sensitive=False),
    default=None,
    help="Frame extraction: seek per sample (exact labels) or one fixed-rate pass.",
)
@click.option("--quality", "quality", type=int, default=None, help="JPEG quality 1-95 (default: 90).")
@click.option("--quiet", is_flag=True, help="Only print failures and the final summary.")
@click.option("--verbose", is_flag=True, help="Show per-stage diagnostic output.")
@click.option("--no-color", is_flag=True, help="Disable ANSI colour output.")
def main(
    file_path: Optional[str],
    directory: Optional[str],
    extensions: Optional[str],
    rows: Optional[int],
    columns: Optional[int],
    width: Optional[int],
    config_path: Optional[str],
    timestamps: Optional[bool],
    show_millis: Optional[bool],
    header: Optional[bool],
    font_path: Optional[str],
    font_size: Optional[int],
    mode: Optional[str],
    quality: Optional[int],
    quiet: bool,
    verbose: bool,
    no_color: bool,
) -> None:
    """MoVie ThumBnail generator: one contact sheet per video."""

    request = RunRequest(
        file=file_path,
        directory=directory,
        config_path=config_path,
        overrides={
            "rows": rows,
            "columns": columns,
            "width": width,
            "extensions": extensions,
            "timestamps": timestamps,
            "show_millis": show_millis,
            "header": header,
            "font_path": font_path,
            "font_size": font_size,
            "mode": mode,
            "quality": quality,
        },
        quiet=quiet,
        verbose=verbose,
        no_color=no_color,
    )
    try:
        result = run_cli(request)
    except CLIAppError as exc:
        print(exc.rich_message)
        raise click.exceptions.Exit(exc.code) from exc

    if result.exit_code:
        raise click.exceptions.Exit(result.exit_code)


if __name__ == "__main__":
    main()
