"""Pydantic models for Overseer configuration data."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from . import log

DEFAULT_STALE_AFTER_SECONDS = 10 * 60
DEFAULT_INITIALIZING_TIMEOUT_SECONDS = 10 * 60


class InterventionPolicy(BaseModel):
    """Thresholds that decide when an idle worker needs attention.

    Attributes:
        stale_after_seconds: Idle time after which a ``WORKING`` worker is
            nudged.
        initializing_timeout_seconds: Idle time after which a worker stuck in
            ``INITIALIZING`` is restarted.

    Example:
        >>> InterventionPolicy().stale_after.total_seconds()
        600.0
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    stale_after_seconds: float = Field(default=DEFAULT_STALE_AFTER_SECONDS, gt=0)
    initializing_timeout_seconds: float = Field(
        default=DEFAULT_INITIALIZING_TIMEOUT_SECONDS, gt=0
    )

    @property
    def stale_after(self) -> dt.timedelta:
        return dt.timedelta(seconds=self.stale_after_seconds)

    @property
    def initializing_timeout(self) -> dt.timedelta:
        return dt.timedelta(seconds=self.initializing_timeout_seconds)


class OverseerConfig(BaseModel):
    """Top-level Overseer configuration file.

    Example:
        >>> OverseerConfig.model_validate({"log_level": " Debug "}).log_level
        'debug'
    """

    model_config = ConfigDict(extra="allow")

    policy: InterventionPolicy = Field(default_factory=InterventionPolicy)
    log_level: str | None = None

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: object) -> object:
        if value is None:
            return None
        if not isinstance(value, str):
            return value
        normalized = value.strip().lower()
        if not normalized:
            return None
        if not log.is_level_name(normalized):
            expected = ", ".join(log.LOG_LEVEL_NAMES)
            raise ValueError(f"unknown log level: {value!r} (expected one of: {expected})")
        return normalized
