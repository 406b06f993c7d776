"""Configuration helpers for Overseer.

Configuration lives in a single ``config.json`` under the user config
directory, validated with Pydantic models. Environment variables override
individual fields:

- ``OVERSEER_STALE_AFTER_SECONDS``
- ``OVERSEER_INITIALIZING_TIMEOUT_SECONDS``
- ``OVERSEER_LOG_LEVEL``

Example:
    >>> from overseer.config import utc_now
    >>> utc_now().endswith("Z")
    True
"""

from __future__ import annotations

import datetime as dt
import json
import os
from collections.abc import Mapping
from pathlib import Path

from platformdirs import user_config_dir
from pydantic import BaseModel, ValidationError

from .errors import ConfigInvalidError, IoFailedError
from .models import OverseerConfig

OVERSEER_APP_NAME = "overseer"
CONFIG_FILENAME = "config.json"

_POLICY_ENV_OVERRIDES = {
    "OVERSEER_STALE_AFTER_SECONDS": "stale_after_seconds",
    "OVERSEER_INITIALIZING_TIMEOUT_SECONDS": "initializing_timeout_seconds",
}


def utc_now() -> str:
    """Return the current UTC timestamp in ISO-8601 format.

    Returns:
        UTC timestamp like ``2026-01-18T12:34:56Z``.
    """
    now = dt.datetime.now(tz=dt.timezone.utc).replace(microsecond=0)
    return now.isoformat().replace("+00:00", "Z")


def default_config_path() -> Path:
    """Return the default config file location.

    Example:
        >>> default_config_path().name
        'config.json'
    """
    return Path(user_config_dir(OVERSEER_APP_NAME)) / CONFIG_FILENAME


def load_json(path: Path) -> dict | None:
    """Load a JSON object from disk.

    Args:
        path: Path to the JSON file.

    Returns:
        Parsed payload, or ``None`` if the file does not exist.

    Raises:
        ConfigInvalidError: The file is not a JSON object.
        IoFailedError: The file exists but cannot be read.
    """
    if not path.exists():
        return None
    try:
        with path.open("r", encoding="utf-8") as fh:
            payload = json.load(fh)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ConfigInvalidError(
            f"invalid JSON in {path}: {exc}",
            recovery_hint="fix or remove the file to fall back to defaults",
        ) from exc
    except OSError as exc:
        raise IoFailedError(f"failed to read {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigInvalidError(f"expected a JSON object in {path}")
    return payload


def write_json(path: Path, payload: dict | BaseModel) -> None:
    """Write a JSON payload to disk, creating parent directories."""
    if isinstance(payload, BaseModel):
        payload = payload.model_dump(mode="json", exclude_none=True)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2)
            fh.write("\n")
    except OSError as exc:
        raise IoFailedError(f"failed to write {path}: {exc}") from exc


def _apply_env_overrides(payload: dict, env: Mapping[str, str]) -> dict:
    merged = dict(payload)
    policy = merged.get("policy")
    policy_payload = dict(policy) if isinstance(policy, dict) else {}
    for env_name, field_name in _POLICY_ENV_OVERRIDES.items():
        raw = env.get(env_name, "").strip()
        if raw:
            policy_payload[field_name] = raw
    if policy_payload:
        merged["policy"] = policy_payload
    log_level = env.get("OVERSEER_LOG_LEVEL", "").strip()
    if log_level:
        merged["log_level"] = log_level
    return merged


def parse_config(payload: dict, source: Path | str | None = None) -> OverseerConfig:
    """Validate a config payload.

    Raises:
        ConfigInvalidError: The payload fails validation.
    """
    try:
        return OverseerConfig.model_validate(payload)
    except ValidationError as exc:
        location = f" at {source}" if source else ""
        raise ConfigInvalidError(f"invalid overseer config{location}:\n{exc}") from exc


def load_config(
    path: Path | None = None, *, env: Mapping[str, str] | None = None
) -> OverseerConfig:
    """Load configuration from disk and apply environment overrides.

    Args:
        path: Config file; defaults to ``default_config_path()``. A missing
            file yields defaults.
        env: Environment mapping; defaults to ``os.environ``.

    Returns:
        Validated configuration.
    """
    source = path if path is not None else default_config_path()
    payload = load_json(source) or {}
    merged = _apply_env_overrides(payload, os.environ if env is None else env)
    return parse_config(merged, source)


def write_config(path: Path, config: OverseerConfig) -> None:
    """Persist ``config`` as JSON."""
    write_json(path, config)
