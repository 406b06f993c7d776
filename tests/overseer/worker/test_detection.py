from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from overseer.worker import detection, signals
from overseer.worker.states import WorkerState
from tests.overseer.helpers import (
    PR_URL,
    assistant_payload,
    result_payload,
    text_block,
    tool_block,
)

json_values = st.recursive(
    st.none()
    | st.booleans()
    | st.integers()
    | st.floats(allow_nan=False)
    | st.text(max_size=10),
    lambda children: st.lists(children, max_size=3)
    | st.dictionaries(st.text(max_size=8), children, max_size=3),
    max_leaves=8,
)

content_blocks = st.fixed_dictionaries(
    {"type": st.sampled_from(["text", "tool_use", "tool_result", "thinking"]) | json_values},
    optional={
        "text": json_values,
        "id": json_values,
        "name": json_values,
        "input": json_values,
        "is_error": json_values,
    },
)

stream_payloads = st.fixed_dictionaries(
    {"type": st.sampled_from(["assistant", "user", "human", "system", "result"]) | json_values},
    optional={
        "message": st.fixed_dictionaries(
            {},
            optional={
                "content": st.lists(content_blocks, max_size=3) | json_values,
                "id": json_values,
                "stop_reason": json_values,
            },
        ),
        "content": st.lists(content_blocks, max_size=3) | json_values,
        "is_error": json_values,
        "result": json_values,
        "num_turns": json_values,
        "total_cost_usd": json_values,
        "session_id": json_values,
    },
)


def _message(payload: dict) -> object:
    message = signals.parse_message(payload)
    assert message is not None
    return message


def test_error_result_proposes_error_from_any_state() -> None:
    message = _message(result_payload(is_error=True, result="API overloaded"))

    for state in WorkerState:
        assert detection.detect_state_from_message(message, state) is WorkerState.ERROR


def test_successful_result_proposes_nothing() -> None:
    message = _message(result_payload(is_error=False, result="done"))

    assert detection.detect_state_from_message(message, WorkerState.WORKING) is None


def test_tool_use_moves_initializing_to_working() -> None:
    message = _message(assistant_payload(tool_block("Read", file_path="README.md")))

    assert detection.detect_state_from_message(message, WorkerState.INITIALIZING) is (
        WorkerState.WORKING
    )
    assert detection.detect_state_from_message(message, WorkerState.WORKING) is None
    assert detection.detect_state_from_message(message, WorkerState.PR_OPEN) is None


def test_text_only_turn_is_not_progress() -> None:
    message = _message(assistant_payload(text_block("Let me think about this.")))

    assert detection.detect_state_from_message(message, WorkerState.INITIALIZING) is None


def test_pr_url_in_assistant_text_opens_pr() -> None:
    message = _message(assistant_payload(text_block(f"Created {PR_URL}")))

    assert detection.detect_state_from_message(message, WorkerState.WORKING) is (
        WorkerState.PR_OPEN
    )
    assert detection.detect_state_from_message(message, WorkerState.PR_OPEN) is None
    assert detection.detect_state_from_message(message, WorkerState.REVIEWING) is None


def test_pr_url_outranks_tool_use() -> None:
    message = _message(assistant_payload(text_block(f"Opened {PR_URL}"), tool_block("Bash")))

    assert detection.detect_state_from_message(message, WorkerState.INITIALIZING) is (
        WorkerState.PR_OPEN
    )


def test_error_outranks_everything_in_results() -> None:
    payload = result_payload(is_error=True, result=f"failed after opening {PR_URL}")

    assert detection.detect_state_from_message(payload, WorkerState.WORKING) is (
        WorkerState.ERROR
    )


def test_review_verdicts_apply_only_while_reviewing() -> None:
    failed = _message(assistant_payload(text_block("RESULT: FAIL")))
    passed = _message(assistant_payload(text_block("RESULT: PASS")))

    assert detection.detect_state_from_message(failed, WorkerState.REVIEWING) is (
        WorkerState.PR_OPEN
    )
    assert detection.detect_state_from_message(passed, WorkerState.REVIEWING) is (
        WorkerState.MERGING
    )
    assert detection.detect_state_from_message(passed, WorkerState.WORKING) is None


def test_detect_from_message_accepts_raw_mappings_and_state_names() -> None:
    payload = assistant_payload(tool_block("Edit"))

    assert detection.detect_state_from_message(payload, "initializing") is WorkerState.WORKING
    assert detection.detect_state_from_message({"type": "bogus"}, WorkerState.WORKING) is None
    assert detection.detect_state_from_message(payload, "not-a-state") is None


@pytest.mark.parametrize(
    ("text", "current", "expected"),
    [
        ("Created PR https://github.com/org/repo/pull/456", WorkerState.WORKING, "PR_OPEN"),
        ("PR successfully merged", WorkerState.PR_OPEN, "MERGED"),
        ("Claude API error: rate limit", WorkerState.WORKING, "ERROR"),
        ("Reading file...", WorkerState.INITIALIZING, "WORKING"),
        ("Reading file...", WorkerState.WORKING, None),
        ("https://github.com/org/repo/pull/456", WorkerState.PR_OPEN, None),
        ("https://github.com/org/repo/pull/456", WorkerState.REVIEWING, None),
        ("PR successfully merged", WorkerState.MERGED, None),
        ("just chatting", WorkerState.WORKING, None),
    ],
)
def test_detect_state_from_output(
    text: str, current: WorkerState, expected: str | None
) -> None:
    result = detection.detect_state_from_output(text, current)

    assert result == (WorkerState(expected) if expected else None)


def test_output_detection_strips_ansi() -> None:
    text = "\x1b[1;32m✓\x1b[0m Merged pull request org/repo#12"

    assert detection.detect_state_from_output(text, WorkerState.MERGING) is WorkerState.MERGED


def test_output_error_outranks_merge() -> None:
    text = "PR successfully merged\nAPI error: connection reset"

    assert detection.detect_state_from_output(text, WorkerState.MERGING) is WorkerState.ERROR


def test_output_merge_outranks_pr_url() -> None:
    text = f"PR successfully merged: {PR_URL}"

    assert detection.detect_state_from_output(text, WorkerState.WORKING) is WorkerState.MERGED


def test_detect_state_dispatches_by_channel() -> None:
    raw = signals.RawText("Reading file...")
    message = _message(assistant_payload(tool_block("Read")))

    assert detection.detect_state(raw, WorkerState.INITIALIZING) is WorkerState.WORKING
    assert detection.detect_state(message, WorkerState.INITIALIZING) is WorkerState.WORKING
    assert detection.detect_state(object(), WorkerState.INITIALIZING) is None


def test_output_detection_rejects_non_text() -> None:
    assert detection.detect_state_from_output(None, WorkerState.WORKING) is None
    assert detection.detect_state_from_output(b"Reading", WorkerState.INITIALIZING) is None


@given(text=st.text(max_size=200), current=st.sampled_from(list(WorkerState)))
def test_output_detection_is_total(text: str, current: WorkerState) -> None:
    result = detection.detect_state_from_output(text, current)

    assert result is None or isinstance(result, WorkerState)


@given(payload=stream_payloads, current=st.sampled_from(list(WorkerState)))
def test_message_detection_never_raises(payload: dict, current: WorkerState) -> None:
    result = detection.detect_state_from_message(payload, current)

    assert result is None or isinstance(result, WorkerState)


@pytest.mark.parametrize("block_type", [["text"], {"x": 1}, 7, None])
def test_malformed_block_types_are_ignored(block_type: object) -> None:
    payload = {"type": "assistant", "message": {"content": [{"type": block_type}]}}

    assert detection.detect_state_from_message(payload, WorkerState.WORKING) is None
    assert detection.detect_state_from_message(payload, WorkerState.INITIALIZING) is None


def test_unhashable_message_type_is_not_a_message() -> None:
    payload = {"type": ["assistant"], "message": {"content": [{"type": "tool_use"}]}}

    assert detection.detect_state_from_message(payload, WorkerState.INITIALIZING) is None


@pytest.mark.parametrize(
    "metadata",
    [
        {"num_turns": 2.5},
        {"session_id": 7},
        {"total_cost_usd": "free"},
        {"duration_ms": [1]},
        {"subtype": {"kind": "error"}},
    ],
)
def test_error_result_survives_malformed_metadata(metadata: dict[str, object]) -> None:
    payload = {"type": "result", "is_error": True, **metadata}

    assert detection.detect_state_from_message(payload, WorkerState.WORKING) is WorkerState.ERROR
