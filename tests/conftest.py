# ruff: noqa: E402

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

import overseer.log as overseer_log

_OVERSEER_ENV = (
    "OVERSEER_LOG_LEVEL",
    "OVERSEER_NO_COLOR",
    "OVERSEER_STALE_AFTER_SECONDS",
    "OVERSEER_INITIALIZING_TIMEOUT_SECONDS",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in _OVERSEER_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("NO_COLOR", "1")
    overseer_log.reset()
    yield
    overseer_log.reset()
