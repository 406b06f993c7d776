"""Structured terminal logging for Overseer.

Messages carry optional ``key=value`` fields so worker lifecycle events stay
greppable in captured output.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Mapping
from enum import IntEnum

from rich.console import Console
from rich.text import Text


class LogLevel(IntEnum):
    TRACE = 10
    DEBUG = 20
    INFO = 30
    SUCCESS = 35
    WARNING = 40
    ERROR = 50


LOG_LEVEL_NAMES = ("trace", "debug", "info", "success", "warning", "error")

_LEVEL_BY_NAME = {
    "trace": LogLevel.TRACE,
    "debug": LogLevel.DEBUG,
    "info": LogLevel.INFO,
    "success": LogLevel.SUCCESS,
    "warning": LogLevel.WARNING,
    "warn": LogLevel.WARNING,
    "error": LogLevel.ERROR,
}
_DEFAULT_LEVEL = LogLevel.INFO
_configured_level = None
_no_color_override = None


def _normalize_level(value: str | None) -> LogLevel:
    if value is None:
        return _DEFAULT_LEVEL
    normalized = value.strip().lower()
    if not normalized:
        return _DEFAULT_LEVEL
    return _LEVEL_BY_NAME.get(normalized, _DEFAULT_LEVEL)


def is_level_name(value: str) -> bool:
    """Return whether ``value`` names a known log level."""
    return value.strip().lower() in _LEVEL_BY_NAME


def configured_level() -> LogLevel:
    global _configured_level
    if _configured_level is None:
        _configured_level = _normalize_level(os.environ.get("OVERSEER_LOG_LEVEL"))
    return _configured_level


def set_level(value: str | None) -> None:
    """Set the active log level."""
    global _configured_level
    _configured_level = _normalize_level(value)


def set_no_color(value: bool) -> None:
    """Force colorless output regardless of the environment."""
    global _no_color_override
    _no_color_override = value


def reset() -> None:
    """Drop runtime overrides so the environment is consulted again."""
    global _configured_level, _no_color_override
    _configured_level = None
    _no_color_override = None


def is_enabled(level: LogLevel) -> bool:
    return level >= configured_level()


def color_disabled() -> bool:
    """Return whether output should be rendered without color."""
    if _no_color_override is not None:
        return _no_color_override
    return bool(os.environ.get("NO_COLOR") or os.environ.get("OVERSEER_NO_COLOR"))


def _console(*, stderr: bool) -> Console:
    return Console(
        file=sys.stderr if stderr else sys.stdout,
        soft_wrap=True,
        highlight=False,
        no_color=color_disabled(),
    )


def _default_style(level: LogLevel) -> str:
    if level is LogLevel.TRACE:
        return "dim"
    if level is LogLevel.DEBUG:
        return "cyan"
    if level is LogLevel.SUCCESS:
        return "green"
    if level is LogLevel.WARNING:
        return "yellow"
    if level is LogLevel.ERROR:
        return "bold red"
    return ""


def format_fields(fields: Mapping[str, object]) -> str:
    """Render ``key=value`` pairs in insertion order, skipping ``None`` values.

    Example:
        >>> format_fields({"worker": "auth", "state": "WORKING", "pr": None})
        'worker=auth state=WORKING'
        >>> format_fields({"reason": "no activity"})
        "reason='no activity'"
    """
    parts: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        rendered = str(value)
        if not rendered or any(char.isspace() for char in rendered):
            rendered = repr(rendered)
        parts.append(f"{key}={rendered}")
    return " ".join(parts)


def emit(
    level: LogLevel,
    message: str,
    *,
    style: str | None = None,
    stderr: bool | None = None,
    fields: Mapping[str, object] | None = None,
) -> None:
    if not is_enabled(level):
        return
    target_stderr = stderr if stderr is not None else level >= LogLevel.WARNING
    suffix = format_fields(fields) if fields else ""
    line = f"{message} {suffix}" if suffix else message
    text = Text(line, style=style or _default_style(level))
    _console(stderr=target_stderr).print(text)


def trace(message: str, *, style: str | None = None, **fields: object) -> None:
    emit(LogLevel.TRACE, message, style=style, stderr=False, fields=fields)


def debug(message: str, *, style: str | None = None, **fields: object) -> None:
    emit(LogLevel.DEBUG, message, style=style, stderr=False, fields=fields)


def info(message: str, *, style: str | None = None, **fields: object) -> None:
    emit(LogLevel.INFO, message, style=style, stderr=False, fields=fields)


def success(message: str, *, style: str | None = None, **fields: object) -> None:
    emit(LogLevel.SUCCESS, message, style=style, stderr=False, fields=fields)


def warning(message: str, *, style: str | None = None, **fields: object) -> None:
    emit(LogLevel.WARNING, message, style=style, stderr=True, fields=fields)


def error(message: str, *, style: str | None = None, **fields: object) -> None:
    emit(LogLevel.ERROR, message, style=style, stderr=True, fields=fields)
