"""Failure contracts for Overseer's configuration and command layers.

The lifecycle core never raises for well-formed input; these failures cover
the ambient layers around it (reading configuration, opening captured logs).
Programmer bugs raise normal exceptions.
"""

from __future__ import annotations

from typing import Literal

OverseerFailureCode = Literal[
    "config_invalid",
    "io_failed",
]


class OverseerFailure(Exception):
    """Expected failure with a stable code and an optional recovery hint.

    Use ``raise ConfigInvalidError(...) from exc`` to chain the cause; the
    CLI catches ``OverseerFailure``, logs it and exits non-zero.
    """

    def __init__(
        self,
        code: OverseerFailureCode,
        message: str,
        *,
        recovery_hint: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.recovery_hint = recovery_hint


class ConfigInvalidError(OverseerFailure):
    """Configuration could not be parsed or failed validation."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("config_invalid", message, recovery_hint=recovery_hint)


class IoFailedError(OverseerFailure):
    """Reading or writing a file failed."""

    def __init__(self, message: str, *, recovery_hint: str | None = None) -> None:
        super().__init__("io_failed", message, recovery_hint=recovery_hint)
