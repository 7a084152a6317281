"""Configuration loader that parses and validates user-provided TOML."""

from __future__ import annotations

import re
import tomllib
from dataclasses import fields, replace
from typing import Any, Dict, Iterable, Optional

from .datatypes import (
    AppConfig,
    ExtractConfig,
    ExtractMode,
    GridConfig,
    HeaderConfig,
    InputConfig,
    LabelConfig,
    OutputConfig,
)
from .mvtb.render.errors import ConfigurationError

__all__ = [
    "ConfigurationError",
    "apply_overrides",
    "load_config",
    "parse_extensions",
    "validate_config",
]

_COLOR_PATTERN = re.compile(r"^#[0-9a-fA-F]{6}$")
_SECTIONS = {
    "grid": GridConfig,
    "labels": LabelConfig,
    "header": HeaderConfig,
    "extract": ExtractConfig,
    "output": OutputConfig,
    "inputs": InputConfig,
}


def _coerce_bool(value: Any, dotted_key: str) -> bool:
    """Return a bool, coercing simple 0/1 representations when necessary."""

    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"0", "1"}:
            return normalized == "1"
        if normalized in {"true", "false"}:
            return normalized == "true"
    raise ConfigurationError(f"{dotted_key} must be a boolean (use true/false).")


def _coerce_int(value: Any, dotted_key: str) -> int:
    if isinstance(value, bool):
        raise ConfigurationError(f"{dotted_key} must be an integer")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise ConfigurationError(f"{dotted_key} must be an integer")


def _coerce_mode(value: Any, dotted_key: str) -> ExtractMode:
    try:
        return ExtractMode(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(mode.value for mode in ExtractMode)
        raise ConfigurationError(f"{dotted_key} must be one of: {choices}") from exc


def parse_extensions(raw: str | Iterable[str]) -> tuple[str, ...]:
    """
    Normalise an extension allow-list.

    Accepts the CLI's pipe-separated form (``"avi|MP4|.mov"``) or any iterable
    of names, and returns lowercase names without leading dots, de-duplicated
    in first-seen order.
    """

    items = raw.split("|") if isinstance(raw, str) else list(raw)
    cleaned: list[str] = []
    for item in items:
        name = str(item).strip().lower().lstrip(".")
        if name and name not in cleaned:
            cleaned.append(name)
    return tuple(cleaned)


def _sanitize_section(raw: Any, name: str, cls):
    """
    Coerce a raw TOML table into an instance of ``cls``.

    Raises:
        ConfigurationError: If the section is not a table or contains invalid keys or values.
    """
    if not isinstance(raw, dict):
        raise ConfigurationError(f"[{name}] must be a table")
    cleaned: Dict[str, Any] = {}
    cls_fields = {field.name: field for field in fields(cls)}
    for key, value in raw.items():
        field = cls_fields.get(key)
        if field is None:
            raise ConfigurationError(f"Unknown key '{key}' in [{name}]")
        dotted = f"{name}.{key}"
        if field.type is bool:
            cleaned[key] = _coerce_bool(value, dotted)
        elif field.type is int:
            cleaned[key] = _coerce_int(value, dotted)
        elif field.type is float:
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(f"{dotted} must be a number")
            cleaned[key] = float(value)
        elif field.type is ExtractMode:
            cleaned[key] = _coerce_mode(value, dotted)
        elif key == "extensions":
            if not isinstance(value, (list, str)):
                raise ConfigurationError(f"{dotted} must be a list of extensions")
            cleaned[key] = parse_extensions(value)
        else:
            cleaned[key] = str(value)
    return cls(**cleaned)


def validate_config(app: AppConfig) -> AppConfig:
    """
    Check cross-field rules and return *app* unchanged when valid.

    Raises:
        ConfigurationError: describing the first violated rule.
    """

    if app.grid.rows < 1:
        raise ConfigurationError(f"Invalid row count: {app.grid.rows} (must be >= 1)")
    if app.grid.columns < 1:
        raise ConfigurationError(f"Invalid column count: {app.grid.columns} (must be >= 1)")
    if app.grid.width < 1:
        raise ConfigurationError(f"Invalid tile width: {app.grid.width} (must be >= 1)")

    if app.labels.font_size < 1:
        raise ConfigurationError("labels.font_size must be >= 1")
    if app.labels.stroke_width < 0:
        raise ConfigurationError("labels.stroke_width must be >= 0")
    if app.labels.background and not _COLOR_PATTERN.match(app.labels.background):
        raise ConfigurationError("labels.background must be empty or a #RRGGBB colour")

    if app.header.font_size < 1:
        raise ConfigurationError("header.font_size must be >= 1")
    if app.header.line_height < 1:
        raise ConfigurationError("header.line_height must be >= 1")
    if not _COLOR_PATTERN.match(app.header.background):
        raise ConfigurationError("header.background must be a #RRGGBB colour")

    if app.extract.ffmpeg_timeout_seconds < 0:
        raise ConfigurationError("extract.ffmpeg_timeout_seconds must be >= 0")
    if app.extract.ffprobe_timeout_seconds < 0:
        raise ConfigurationError("extract.ffprobe_timeout_seconds must be >= 0")
    if not app.extract.ffmpeg_path.strip() or not app.extract.ffprobe_path.strip():
        raise ConfigurationError("extract.ffmpeg_path and extract.ffprobe_path must be set")

    extension = app.output.extension
    if not extension.startswith(".") or len(extension) < 2:
        raise ConfigurationError("output.extension must look like '.jpg'")
    if not 1 <= app.output.quality <= 95:
        raise ConfigurationError("output.quality must be between 1 and 95")

    if not app.inputs.extensions:
        raise ConfigurationError("inputs.extensions must not be empty")
    return app


def load_config(path: str) -> AppConfig:
    """
    Load and validate an application configuration from a TOML file.

    Reads the file at `path`, parses it as UTF-8 TOML (BOM is accepted),
    coerces each section and returns a frozen AppConfig.

    Raises:
        ConfigurationError: If the file cannot be read, is not UTF-8, TOML parsing fails,
            or any validation rule is violated.
    """

    try:
        with open(path, "rb") as handle:
            raw_bytes = handle.read()
    except OSError as exc:
        raise ConfigurationError(f"Unable to read configuration file '{path}': {exc}") from exc
    if raw_bytes.startswith(b"\xef\xbb\xbf"):
        raw_bytes = raw_bytes[3:]
    try:
        raw = tomllib.loads(raw_bytes.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise ConfigurationError("Configuration file must be UTF-8 encoded") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigurationError(f"Failed to parse TOML: {exc}") from exc

    unknown = sorted(set(raw) - set(_SECTIONS))
    if unknown:
        raise ConfigurationError(f"Unknown configuration section(s): {', '.join(unknown)}")

    sections = {
        name: _sanitize_section(raw.get(name, {}), name, cls) for name, cls in _SECTIONS.items()
    }
    return validate_config(AppConfig(**sections, config_path=str(path)))


def apply_overrides(
    app: AppConfig,
    *,
    rows: Optional[int] = None,
    columns: Optional[int] = None,
    width: Optional[int] = None,
    extensions: Optional[str] = None,
    timestamps: Optional[bool] = None,
    show_millis: Optional[bool] = None,
    header: Optional[bool] = None,
    font_path: Optional[str] = None,
    font_size: Optional[int] = None,
    mode: Optional[str] = None,
    quality: Optional[int] = None,
) -> AppConfig:
    """Return a validated copy of *app* with command-line overrides applied."""

    grid_changes: Dict[str, Any] = {}
    if rows is not None:
        grid_changes["rows"] = rows
    if columns is not None:
        grid_changes["columns"] = columns
    if width is not None:
        grid_changes["width"] = width

    label_changes: Dict[str, Any] = {}
    if timestamps is not None:
        label_changes["timestamps"] = timestamps
    if show_millis is not None:
        label_changes["show_millis"] = show_millis
    if font_path is not None:
        label_changes["font_path"] = font_path
    if font_size is not None:
        label_changes["font_size"] = font_size

    updated = replace(
        app,
        grid=replace(app.grid, **grid_changes),
        labels=replace(app.labels, **label_changes),
    )
    if header is not None:
        updated = replace(updated, header=replace(updated.header, enabled=header))
    if mode is not None:
        updated = replace(
            updated, extract=replace(updated.extract, mode=_coerce_mode(mode, "--mode"))
        )
    if quality is not None:
        updated = replace(updated, output=replace(updated.output, quality=quality))
    if extensions is not None:
        updated = replace(updated, inputs=InputConfig(extensions=parse_extensions(extensions)))
    return validate_config(updated)
