"""Decide whether a worker needs the orchestrator to step in.

Two remedies exist and they are not interchangeable:

- ``restart`` discards the agent process and launches a fresh one; used for
  errors and for workers that never finished initializing
- ``nudge`` re-prompts a live agent that has gone quiet while working

Decisions are recomputed on every poll from the worker record and an explicit
``now``; nothing is cached.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass
from typing import Literal

from ..models import InterventionPolicy
from .models import WorkerInstance, ensure_utc
from .states import WorkerState, coerce_state

InterventionAction = Literal["restart", "nudge"]

_DEFAULT_POLICY = InterventionPolicy()


@dataclass(frozen=True)
class InterventionDecision:
    needed: bool
    action: InterventionAction | None = None
    reason: str | None = None


NO_INTERVENTION = InterventionDecision(needed=False)


def idle_for(worker: WorkerInstance, now: dt.datetime) -> dt.timedelta:
    """Return how long the worker has been silent; clock skew counts as zero."""
    elapsed = ensure_utc(now) - ensure_utc(worker.last_activity)
    return max(elapsed, dt.timedelta(0))


def _minutes(delta: dt.timedelta) -> str:
    minutes = delta.total_seconds() / 60
    if minutes.is_integer():
        return f"{int(minutes)} minutes"
    return f"{minutes:.1f} minutes"


def needs_intervention(
    worker: WorkerInstance,
    now: dt.datetime,
    *,
    policy: InterventionPolicy | None = None,
) -> InterventionDecision:
    """Return whether ``worker`` needs attention at ``now`` and which remedy.

    Args:
        worker: Worker record to evaluate.
        now: Evaluation time; naive values are taken as UTC.
        policy: Idle thresholds; defaults to ``InterventionPolicy()``.

    Returns:
        ``restart`` for ``ERROR`` regardless of idle time, ``nudge`` for a
        ``WORKING`` worker idle at least ``policy.stale_after``, ``restart``
        for an ``INITIALIZING`` worker idle at least
        ``policy.initializing_timeout``, otherwise no intervention.
    """
    active_policy = policy or _DEFAULT_POLICY
    state = coerce_state(worker.state)

    if state is WorkerState.ERROR:
        return InterventionDecision(
            needed=True,
            action="restart",
            reason=worker.error or "worker is in error state",
        )

    idle = idle_for(worker, now)
    if state is WorkerState.WORKING and idle >= active_policy.stale_after:
        return InterventionDecision(
            needed=True,
            action="nudge",
            reason=f"no activity for {_minutes(idle)} while working",
        )
    timeout = active_policy.initializing_timeout
    if state is WorkerState.INITIALIZING and idle >= timeout:
        return InterventionDecision(
            needed=True,
            action="restart",
            reason=f"worker failed to initialize within {_minutes(timeout)}",
        )
    return NO_INTERVENTION
