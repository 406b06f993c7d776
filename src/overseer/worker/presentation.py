"""Display metadata for worker states: descriptions, glyphs, operator actions."""

from __future__ import annotations

from types import MappingProxyType

from .states import WorkerState

_DESCRIPTIONS = MappingProxyType(
    {
        WorkerState.SPAWNING: "Starting agent process...",
        WorkerState.INITIALIZING: "Agent is loading and reading instructions...",
        WorkerState.WORKING: "Actively working on task...",
        WorkerState.PR_OPEN: "Pull request created, awaiting review...",
        WorkerState.REVIEWING: "QA review in progress...",
        WorkerState.MERGING: "Merging pull request...",
        WorkerState.MERGED: "Complete! PR has been merged.",
        WorkerState.ERROR: "Error encountered - may need intervention.",
        WorkerState.STOPPED: "Worker has been stopped.",
    }
)

_EMOJIS = MappingProxyType(
    {
        WorkerState.SPAWNING: "🚀",
        WorkerState.INITIALIZING: "⏳",
        WorkerState.WORKING: "⚡",
        WorkerState.PR_OPEN: "📝",
        WorkerState.REVIEWING: "🔍",
        WorkerState.MERGING: "🔄",
        WorkerState.MERGED: "✅",
        WorkerState.ERROR: "❌",
        WorkerState.STOPPED: "⏹️",
    }
)

_ACTIONS: MappingProxyType[WorkerState, tuple[str, ...]] = MappingProxyType(
    {
        WorkerState.SPAWNING: ("stop",),
        WorkerState.INITIALIZING: ("stop", "send"),
        WorkerState.WORKING: ("stop", "send", "status"),
        WorkerState.PR_OPEN: ("stop", "send", "review", "merge"),
        WorkerState.REVIEWING: ("stop", "status"),
        WorkerState.MERGING: ("status",),
        WorkerState.MERGED: ("cleanup",),
        WorkerState.ERROR: ("restart", "stop", "cleanup"),
        WorkerState.STOPPED: ("restart", "cleanup"),
    }
)


def get_state_description(state: WorkerState) -> str:
    return _DESCRIPTIONS.get(state, "Unknown state")


def get_state_emoji(state: WorkerState) -> str:
    return _EMOJIS.get(state, "❓")


def get_available_actions(state: WorkerState) -> tuple[str, ...]:
    """Return the operator commands offered for ``state``, in display order."""
    return _ACTIONS.get(state, ())


def format_state(state: WorkerState) -> str:
    """Render a state as ``"<glyph> <NAME>"``.

    Example:
        >>> format_state(WorkerState.MERGED)
        '✅ MERGED'
    """
    return f"{get_state_emoji(state)} {state.value}"
