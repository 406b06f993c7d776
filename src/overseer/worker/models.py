"""Worker runtime data models."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Literal

from .states import WorkerState

ReviewStatus = Literal["none", "pending", "approved", "changes_requested"]


def _utc_now() -> dt.datetime:
    return dt.datetime.now(tz=dt.timezone.utc)


@dataclass
class WorkerInstance:
    """Mutable per-worker record owned by the worker-management layer.

    The lifecycle core reads it to classify signals and decide interventions;
    only ``apply_if_valid`` and ``ingest_signal`` write to it, and only on the
    owner's behalf.
    """

    worker_id: str
    state: WorkerState = WorkerState.SPAWNING
    last_activity: dt.datetime = field(default_factory=_utc_now)
    error: str | None = None
    pr_number: int | None = None
    pr_url: str | None = None
    review_status: ReviewStatus = "none"
    agents_run: list[str] = field(default_factory=list)

    @property
    def has_pr(self) -> bool:
        return self.pr_url is not None

    def mark_agent_run(self, agent: str) -> None:
        """Record that ``agent`` ran against this worker (once)."""
        if agent not in self.agents_run:
            self.agents_run.append(agent)

    def has_agent_run(self, agent: str) -> bool:
        return agent in self.agents_run


def ensure_utc(value: dt.datetime) -> dt.datetime:
    """Return ``value`` as an aware UTC datetime; naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)
