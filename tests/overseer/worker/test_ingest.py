from __future__ import annotations

import datetime as dt

from overseer.worker import ingest, signals
from overseer.worker.states import WorkerState
from overseer.worker.transitions import TransitionEvent
from tests.overseer.helpers import (
    NOW,
    PR_URL,
    assistant_payload,
    make_worker,
    result_payload,
    text_block,
    tool_block,
)


def _message(payload: dict) -> object:
    message = signals.parse_message(payload)
    assert message is not None
    return message


def test_ingest_refreshes_activity_without_transition() -> None:
    worker = make_worker(WorkerState.WORKING, idle=dt.timedelta(minutes=20))

    result = ingest.ingest_signal(
        worker, _message(assistant_payload(text_block("thinking"))), now=NOW
    )

    assert result == ingest.IngestResult(
        previous=WorkerState.WORKING, proposed=None, accepted=False
    )
    assert worker.last_activity == NOW


def test_ingest_walks_a_worker_to_pr_open() -> None:
    worker = make_worker(WorkerState.INITIALIZING)
    events: list[TransitionEvent] = []

    ingest.ingest_signal(
        worker,
        _message(assistant_payload(tool_block("Read"))),
        now=NOW,
        on_transition=events.append,
    )
    ingest.ingest_signal(
        worker,
        signals.RawText(f"Created PR {PR_URL}"),
        now=NOW + dt.timedelta(seconds=5),
        on_transition=events.append,
    )

    assert worker.state is WorkerState.PR_OPEN
    assert worker.pr_url == PR_URL
    assert worker.pr_number == 123
    assert [(event.from_state, event.to_state) for event in events] == [
        (WorkerState.INITIALIZING, WorkerState.WORKING),
        (WorkerState.WORKING, WorkerState.PR_OPEN),
    ]
    assert events[0].metadata["tools"] == ("Read",)
    assert events[1].metadata["channel"] == "output"


def test_ingest_records_error_text_from_result() -> None:
    worker = make_worker(WorkerState.WORKING)

    result = ingest.ingest_signal(
        worker, _message(result_payload(is_error=True, result="overloaded")), now=NOW
    )

    assert result.accepted is True
    assert worker.state is WorkerState.ERROR
    assert worker.error == "overloaded"


def test_ingest_records_error_line_from_output() -> None:
    worker = make_worker(WorkerState.WORKING)

    ingest.ingest_signal(
        worker, signals.RawText("\x1b[31mClaude API error: rate limit\x1b[0m\n"), now=NOW
    )

    assert worker.state is WorkerState.ERROR
    assert worker.error == "Claude API error: rate limit"


def test_ingest_does_not_touch_terminal_worker_error() -> None:
    worker = make_worker(WorkerState.MERGED)

    result = ingest.ingest_signal(
        worker, _message(result_payload(is_error=True, result="late failure")), now=NOW
    )

    assert result.proposed is WorkerState.ERROR
    assert result.accepted is False
    assert worker.state is WorkerState.MERGED
    assert worker.error is None


def test_ingest_captures_pr_even_when_state_does_not_move() -> None:
    worker = make_worker(WorkerState.ERROR, error="boom")

    ingest.ingest_signal(worker, signals.RawText(PR_URL), now=NOW)

    assert worker.state is WorkerState.ERROR
    assert worker.pr_url == PR_URL


def test_ingest_updates_pending_review_status() -> None:
    worker = make_worker(WorkerState.REVIEWING)
    worker.review_status = "pending"

    result = ingest.ingest_signal(
        worker, _message(assistant_payload(text_block("RESULT: FAIL"))), now=NOW
    )

    assert result.accepted is True
    assert worker.state is WorkerState.PR_OPEN
    assert worker.review_status == "changes_requested"


def test_ingest_passing_review_moves_to_merging() -> None:
    worker = make_worker(WorkerState.REVIEWING)
    worker.review_status = "pending"

    ingest.ingest_signal(
        worker, _message(assistant_payload(text_block("RESULT: CONDITIONAL PASS"))), now=NOW
    )

    assert worker.state is WorkerState.MERGING
    assert worker.review_status == "approved"
