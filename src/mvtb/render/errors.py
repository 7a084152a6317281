from __future__ import annotations

__all__ = [
    "CompositionError",
    "ConfigurationError",
    "DecodeError",
    "FontUnavailable",
    "InvalidDuration",
    "InvalidShape",
    "ProbeError",
    "SheetError",
    "WriteError",
]


class ConfigurationError(ValueError):
    """Raised when options are invalid before any file is touched."""


class InvalidShape(ConfigurationError):
    """Raised when a grid has fewer than one row or column."""


class InvalidDuration(ValueError):
    """Raised for negative or non-finite second values."""


class SheetError(RuntimeError):
    """Base class for failures that abort a single sheet run."""

    stage = "unknown"


class ProbeError(SheetError):
    """Raised when the duration query fails or returns garbage."""

    stage = "probing"


class DecodeError(SheetError):
    """Raised when frame extraction fails, times out or yields nothing."""

    stage = "extracting"


class CompositionError(SheetError):
    """Raised when labels or the grid cannot be rendered."""

    stage = "composing"


class FontUnavailable(CompositionError):
    """Raised when no usable font can be loaded for labels."""


class WriteError(SheetError):
    """Raised when the finished sheet cannot be written."""

    stage = "encoding"
