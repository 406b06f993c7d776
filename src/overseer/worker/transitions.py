"""Apply proposed state changes to a worker record.

Rejected proposals are expected (stale signals, races between the stream and
the orchestrator) and never raise. Observers are notified after a transition
is committed; an observer failure is logged and does not undo it.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from .. import log as overseer_log
from .models import WorkerInstance, ensure_utc
from .states import WorkerState, coerce_state, is_valid_transition

DEFAULT_ERROR_MESSAGE = "agent reported an error"


@dataclass(frozen=True)
class TransitionEvent:
    """Record of one accepted transition, for history/observation sinks."""

    worker_id: str
    from_state: WorkerState
    to_state: WorkerState
    at: dt.datetime
    metadata: Mapping[str, object] = field(default_factory=lambda: MappingProxyType({}))


TransitionObserver = Callable[[TransitionEvent], None]


def record_activity(worker: WorkerInstance, now: dt.datetime) -> None:
    """Refresh the worker's activity timestamp; it never moves backwards."""
    observed = ensure_utc(now)
    if observed > ensure_utc(worker.last_activity):
        worker.last_activity = observed


def _notify(observer: TransitionObserver, event: TransitionEvent) -> None:
    try:
        observer(event)
    except Exception as exc:
        overseer_log.warning(
            "transition observer failed",
            worker=event.worker_id,
            to=event.to_state,
            error=exc,
        )


def apply_if_valid(
    worker: WorkerInstance,
    proposed: object,
    *,
    now: dt.datetime | None = None,
    on_transition: TransitionObserver | None = None,
    metadata: Mapping[str, object] | None = None,
) -> bool:
    """Commit ``proposed`` to ``worker`` when the transition table allows it.

    Args:
        worker: The record to update.
        proposed: Proposed next state (usually a detector result).
        now: Timestamp for the transition event; defaults to UTC now.
        on_transition: Observer called once with the accepted event.
        metadata: Free-form context attached to the event.

    Returns:
        ``True`` when the state changed, ``False`` when the proposal was empty,
        a no-op, or illegal. A rejected proposal leaves ``worker`` untouched.
    """
    target = coerce_state(proposed)
    previous = coerce_state(worker.state)
    if target is None or previous is None or target is previous:
        return False
    if not is_valid_transition(previous, target):
        overseer_log.debug(
            "transition rejected",
            worker=worker.worker_id,
            from_state=previous,
            to_state=target,
        )
        return False

    worker.state = target
    if target is WorkerState.ERROR and worker.error is None:
        worker.error = DEFAULT_ERROR_MESSAGE
    elif previous is WorkerState.ERROR and target is WorkerState.WORKING:
        worker.error = None

    overseer_log.info(
        "worker state changed",
        worker=worker.worker_id,
        from_state=previous,
        to_state=target,
    )
    if on_transition is not None:
        event = TransitionEvent(
            worker_id=worker.worker_id,
            from_state=previous,
            to_state=target,
            at=ensure_utc(now) if now is not None else dt.datetime.now(tz=dt.timezone.utc),
            metadata=MappingProxyType(dict(metadata or {})),
        )
        _notify(on_transition, event)
    return True
