"""
Helpers for invoking the external ffmpeg/ffprobe tools.

`run_checked` wraps `subprocess.run` with predictable defaults: argv lists
only, `shell=False`, stdin closed, captured output and an optional timeout
where ``0``/``None`` means "wait forever".
"""

from __future__ import annotations

import os
import shutil
import subprocess
from collections.abc import Sequence
from typing import Any

Argv = Sequence[str]

__all__ = ["normalise_timeout", "resolve_executable", "run_checked"]


def resolve_executable(name: str) -> str | None:
    """Return an absolute path for *name*, accepting either a bare command or a path."""

    if os.path.sep in name or (os.path.altsep and os.path.altsep in name):
        return name if os.path.isfile(name) and os.access(name, os.X_OK) else None
    return shutil.which(name)


def normalise_timeout(value: float | None) -> float | None:
    """Map non-positive or missing timeouts to ``None`` (no limit)."""

    if value is None:
        return None
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


def run_checked(
    argv: Argv,
    *,
    timeout: float | None = None,
    text: bool = True,
    check: bool = False,
) -> subprocess.CompletedProcess[Any]:
    """
    Run *argv* via `subprocess.run` with consistent safe defaults.

    Raises:
        ValueError: if *argv* is empty.
        subprocess.TimeoutExpired: when the child outlives *timeout*.
        subprocess.CalledProcessError: when `check=True` and the child exits non-zero.
    """

    if not argv:
        raise ValueError("run_checked requires at least one argv entry.")
    if isinstance(argv, (str, bytes)):
        raise TypeError("run_checked expects a sequence of arguments, not a string.")

    command: list[str] = list(argv)
    completed: subprocess.CompletedProcess[Any] = subprocess.run(
        command,
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        timeout=normalise_timeout(timeout),
        text=text,
        shell=False,
        check=False,
    )
    if check and completed.returncode != 0:
        raise subprocess.CalledProcessError(
            completed.returncode,
            command,
            output=completed.stdout,
            stderr=completed.stderr,
        )
    return completed
