"""Timestamp formatting for tile labels and sheet headers."""

from __future__ import annotations

import math

from src.mvtb.render.errors import InvalidDuration

__all__ = ["format_timestamp", "split_seconds"]


def split_seconds(seconds: float) -> tuple[int, int, int, int]:
    """
    Break *seconds* into whole hours, minutes, seconds and truncated milliseconds.

    Raises:
        InvalidDuration: when *seconds* is negative, NaN or infinite.
    """

    try:
        value = float(seconds)
    except (TypeError, ValueError) as exc:
        raise InvalidDuration(f"Duration must be a number, got {seconds!r}") from exc
    if not math.isfinite(value) or value < 0:
        raise InvalidDuration(f"Duration must be finite and >= 0, got {seconds!r}")

    whole = int(value)
    # round to microseconds first so 59.999 does not come out as .998
    millis = int(round((value - whole) * 1_000_000)) // 1000
    if millis >= 1000:
        whole += 1
        millis -= 1000
    hours, remainder = divmod(whole, 3600)
    minutes, secs = divmod(remainder, 60)
    return hours, minutes, secs, millis


def format_timestamp(seconds: float, *, show_millis: bool = False) -> str:
    """Return ``HH:MM:SS`` (or ``HH:MM:SS.mmm``) for *seconds*; hours may exceed two digits."""

    hours, minutes, secs, millis = split_seconds(seconds)
    text = f"{hours:02d}:{minutes:02d}:{secs:02d}"
    if show_millis:
        text += f".{millis:03d}"
    return text
