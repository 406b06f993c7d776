"""Infer worker lifecycle states from incoming signals.

Each detector runs an ordered tuple of rules and returns the first proposal.
Rule order is the priority order: agent errors first, then terminal success,
then forward progress. ``None`` means "no change warranted". Detectors only
propose; ``transitions.apply_if_valid`` decides whether a proposal applies.
"""

from __future__ import annotations

from collections.abc import Callable

from .signals import (
    AGENT_MESSAGE_TYPES,
    RawText,
    ResultRecord,
    Signal,
    announces_merge,
    extract_pr_url,
    has_tool_use,
    is_api_error_text,
    mentions_tool_activity,
    parse_message,
    parse_pr_from_output,
    review_outcome,
    strip_ansi,
)
from .states import WorkerState, coerce_state, precedes

MessageRule = Callable[[object, WorkerState], WorkerState | None]
OutputRule = Callable[[str, WorkerState], WorkerState | None]


def _result_error(message: object, current: WorkerState) -> WorkerState | None:
    if isinstance(message, ResultRecord) and message.is_error:
        return WorkerState.ERROR
    return None


def _review_verdict(message: object, current: WorkerState) -> WorkerState | None:
    if current is not WorkerState.REVIEWING:
        return None
    outcome = review_outcome(message)
    if outcome == "failed":
        return WorkerState.PR_OPEN
    if outcome == "passed":
        return WorkerState.MERGING
    return None


def _pull_request_opened(message: object, current: WorkerState) -> WorkerState | None:
    if not precedes(current, WorkerState.PR_OPEN):
        return None
    if extract_pr_url(message):
        return WorkerState.PR_OPEN
    return None


def _tool_invocation(message: object, current: WorkerState) -> WorkerState | None:
    # Reasoning alone is not progress; acting is.
    if not precedes(current, WorkerState.WORKING):
        return None
    if has_tool_use(message):
        return WorkerState.WORKING
    return None


_MESSAGE_RULES: tuple[MessageRule, ...] = (
    _result_error,
    _review_verdict,
    _pull_request_opened,
    _tool_invocation,
)


def _agent_error_output(text: str, current: WorkerState) -> WorkerState | None:
    if is_api_error_text(text):
        return WorkerState.ERROR
    return None


def _merge_output(text: str, current: WorkerState) -> WorkerState | None:
    if current is WorkerState.MERGED:
        return None
    if announces_merge(text):
        return WorkerState.MERGED
    return None


def _pull_request_output(text: str, current: WorkerState) -> WorkerState | None:
    if not precedes(current, WorkerState.PR_OPEN):
        return None
    if parse_pr_from_output(text) is not None:
        return WorkerState.PR_OPEN
    return None


def _tool_activity_output(text: str, current: WorkerState) -> WorkerState | None:
    if current is not WorkerState.INITIALIZING:
        return None
    if mentions_tool_activity(text):
        return WorkerState.WORKING
    return None


_OUTPUT_RULES: tuple[OutputRule, ...] = (
    _agent_error_output,
    _merge_output,
    _pull_request_output,
    _tool_activity_output,
)


def detect_state_from_message(message: object, current_state: object) -> WorkerState | None:
    """Propose a next state from one structured agent message.

    Args:
        message: A parsed message model or a decoded stream-json mapping.
        current_state: The worker's current state.

    Returns:
        The proposed state, or ``None`` when the message warrants no change or
        is not a recognizable message.
    """
    parsed = parse_message(message)
    state = coerce_state(current_state)
    if parsed is None or state is None:
        return None
    for rule in _MESSAGE_RULES:
        proposed = rule(parsed, state)
        if proposed is not None:
            return proposed
    return None


def detect_state_from_output(text: object, current_state: object) -> WorkerState | None:
    """Propose a next state from captured raw output.

    Example:
        >>> detect_state_from_output("Reading file...", WorkerState.INITIALIZING)
        <WorkerState.WORKING: 'WORKING'>
        >>> detect_state_from_output("thinking", WorkerState.WORKING) is None
        True
    """
    if not isinstance(text, str):
        return None
    state = coerce_state(current_state)
    if state is None:
        return None
    cleaned = strip_ansi(text)
    for rule in _OUTPUT_RULES:
        proposed = rule(cleaned, state)
        if proposed is not None:
            return proposed
    return None


def detect_state(signal: Signal, current_state: object) -> WorkerState | None:
    """Dispatch a signal of either channel to its detector."""
    if isinstance(signal, RawText):
        return detect_state_from_output(signal.text, current_state)
    if isinstance(signal, AGENT_MESSAGE_TYPES):
        return detect_state_from_message(signal, current_state)
    return None
