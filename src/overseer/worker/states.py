"""Worker lifecycle states and the static transition table.

The table encodes the happy path plus a few recovery edges:

- ``SPAWNING -> INITIALIZING -> WORKING -> PR_OPEN -> REVIEWING -> MERGING ->
  MERGED`` is the happy path
- every non-terminal state may be stopped by an operator (``STOPPED``)
- ``ERROR`` is reachable from every non-terminal state by rule rather than by
  listing it per state
- ``ERROR`` recovers to ``WORKING`` (retry) or ends in ``STOPPED`` (abandon)
- ``PR_OPEN -> WORKING`` covers failed CI, ``REVIEWING -> PR_OPEN`` a failed
  review, and ``PR_OPEN -> MERGING`` a merge without review
- ``MERGED`` and ``STOPPED`` are terminal
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping


class WorkerState(str, Enum):
    SPAWNING = "SPAWNING"
    INITIALIZING = "INITIALIZING"
    WORKING = "WORKING"
    PR_OPEN = "PR_OPEN"
    REVIEWING = "REVIEWING"
    MERGING = "MERGING"
    MERGED = "MERGED"
    ERROR = "ERROR"
    STOPPED = "STOPPED"

    def __str__(self) -> str:
        return self.value


STATE_TRANSITIONS: Mapping[WorkerState, tuple[WorkerState, ...]] = MappingProxyType(
    {
        WorkerState.SPAWNING: (WorkerState.INITIALIZING, WorkerState.STOPPED),
        WorkerState.INITIALIZING: (WorkerState.WORKING, WorkerState.STOPPED),
        WorkerState.WORKING: (WorkerState.PR_OPEN, WorkerState.STOPPED),
        WorkerState.PR_OPEN: (
            WorkerState.REVIEWING,
            WorkerState.MERGING,
            WorkerState.WORKING,
            WorkerState.STOPPED,
        ),
        WorkerState.REVIEWING: (
            WorkerState.PR_OPEN,
            WorkerState.MERGING,
            WorkerState.STOPPED,
        ),
        WorkerState.MERGING: (WorkerState.MERGED, WorkerState.STOPPED),
        WorkerState.MERGED: (),
        WorkerState.ERROR: (WorkerState.WORKING, WorkerState.STOPPED),
        WorkerState.STOPPED: (),
    }
)

HAPPY_PATH: tuple[WorkerState, ...] = (
    WorkerState.SPAWNING,
    WorkerState.INITIALIZING,
    WorkerState.WORKING,
    WorkerState.PR_OPEN,
    WorkerState.REVIEWING,
    WorkerState.MERGING,
    WorkerState.MERGED,
)

TERMINAL_STATES = frozenset(state for state, targets in STATE_TRANSITIONS.items() if not targets)

_HAPPY_PATH_INDEX = MappingProxyType({state: index for index, state in enumerate(HAPPY_PATH)})


def is_terminal_state(state: WorkerState) -> bool:
    """Return whether ``state`` has no outgoing transitions.

    Example:
        >>> is_terminal_state(WorkerState.MERGED)
        True
        >>> is_terminal_state(WorkerState.ERROR)
        False
    """
    return not STATE_TRANSITIONS.get(state, ())


def is_valid_transition(from_state: WorkerState, to_state: WorkerState) -> bool:
    """Return whether moving from ``from_state`` to ``to_state`` is legal.

    ``ERROR`` is legal from every non-terminal state; everything else must
    appear in ``STATE_TRANSITIONS``.

    Args:
        from_state: Current worker state.
        to_state: Proposed next state.

    Returns:
        ``True`` when the transition is allowed.

    Example:
        >>> is_valid_transition(WorkerState.WORKING, WorkerState.PR_OPEN)
        True
        >>> is_valid_transition(WorkerState.STOPPED, WorkerState.ERROR)
        False
    """
    if from_state not in STATE_TRANSITIONS:
        return False
    if to_state == WorkerState.ERROR:
        return not is_terminal_state(from_state)
    return to_state in STATE_TRANSITIONS[from_state]


def precedes(state: WorkerState, milestone: WorkerState) -> bool:
    """Return whether ``state`` comes strictly before ``milestone`` on the happy path.

    States off the happy path (``ERROR``, ``STOPPED``) never precede anything.

    Example:
        >>> precedes(WorkerState.WORKING, WorkerState.PR_OPEN)
        True
        >>> precedes(WorkerState.REVIEWING, WorkerState.PR_OPEN)
        False
    """
    state_index = _HAPPY_PATH_INDEX.get(state)
    milestone_index = _HAPPY_PATH_INDEX.get(milestone)
    if state_index is None or milestone_index is None:
        return False
    return state_index < milestone_index


def coerce_state(value: object) -> WorkerState | None:
    """Parse a persisted state name, tolerating case and whitespace.

    Example:
        >>> coerce_state(" pr_open ")
        <WorkerState.PR_OPEN: 'PR_OPEN'>
        >>> coerce_state("unknown") is None
        True
    """
    if isinstance(value, WorkerState):
        return value
    if not isinstance(value, str):
        return None
    normalized = value.strip().upper().replace("-", "_")
    try:
        return WorkerState(normalized)
    except ValueError:
        return None
