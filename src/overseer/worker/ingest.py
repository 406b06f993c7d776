"""Single entry point for feeding one worker signal through the lifecycle core."""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from .. import log as overseer_log
from .detection import detect_state
from .models import WorkerInstance
from .signals import (
    AssistantTurn,
    RawText,
    ResultRecord,
    Signal,
    api_error_line,
    is_complete,
    review_outcome,
    signal_pull_request,
    strip_ansi,
    tool_names,
)
from .states import WorkerState, is_terminal_state
from .transitions import TransitionObserver, apply_if_valid, record_activity


@dataclass(frozen=True)
class IngestResult:
    previous: WorkerState
    proposed: WorkerState | None
    accepted: bool


def _capture_pull_request(worker: WorkerInstance, signal: object) -> None:
    if worker.pr_url is not None:
        return
    ref = signal_pull_request(signal)
    if ref is None:
        return
    worker.pr_url = ref.url
    worker.pr_number = ref.number
    overseer_log.info("pull request detected", worker=worker.worker_id, pr=ref.url)


def _capture_review(worker: WorkerInstance, signal: object) -> None:
    if worker.review_status != "pending":
        return
    outcome = review_outcome(signal)
    if outcome == "passed":
        worker.review_status = "approved"
    elif outcome == "failed":
        worker.review_status = "changes_requested"


def _error_text(signal: object) -> str | None:
    if isinstance(signal, ResultRecord):
        return signal.result_text
    if isinstance(signal, RawText):
        return api_error_line(strip_ansi(signal.text))
    return None


def _metadata(signal: object) -> dict[str, object]:
    if isinstance(signal, RawText):
        return {"channel": "output"}
    metadata: dict[str, object] = {"channel": "message", "type": getattr(signal, "type", None)}
    if isinstance(signal, AssistantTurn):
        names = tool_names(signal)
        if names:
            metadata["tools"] = tuple(names)
    if isinstance(signal, ResultRecord):
        metadata["num_turns"] = signal.num_turns
        metadata["total_cost_usd"] = signal.total_cost_usd
    return metadata


def ingest_signal(
    worker: WorkerInstance,
    signal: Signal,
    *,
    now: dt.datetime,
    on_transition: TransitionObserver | None = None,
) -> IngestResult:
    """Fold one signal into ``worker``.

    Every signal counts as activity. Pull-request metadata and review verdicts
    are captured even when no state change follows. The detected state, if
    any, is committed through ``apply_if_valid``.

    Args:
        worker: Worker record to update.
        signal: A parsed agent message or ``RawText``.
        now: Arrival time of the signal.
        on_transition: Observer for an accepted transition.

    Returns:
        What was proposed and whether it was applied.
    """
    previous = worker.state
    record_activity(worker, now)
    _capture_pull_request(worker, signal)
    _capture_review(worker, signal)

    proposed = detect_state(signal, previous)
    if proposed is WorkerState.ERROR and not is_terminal_state(previous):
        error_text = _error_text(signal)
        if error_text:
            worker.error = error_text

    accepted = apply_if_valid(
        worker,
        proposed,
        now=now,
        on_transition=on_transition,
        metadata=_metadata(signal),
    )
    if is_complete(signal) and worker.state == WorkerState.WORKING and worker.pr_url is None:
        overseer_log.debug("agent finished a turn without a pull request", worker=worker.worker_id)
    return IngestResult(previous=previous, proposed=proposed, accepted=accepted)
