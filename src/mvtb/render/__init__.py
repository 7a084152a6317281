"""Raster helpers for sheet composition: labels, grid layout and encoding."""

from __future__ import annotations

from . import encoders, errors, grid, labels, naming

__all__ = ["encoders", "errors", "grid", "labels", "naming"]
