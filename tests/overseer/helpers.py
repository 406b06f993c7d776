from __future__ import annotations

import datetime as dt

from overseer.worker.models import WorkerInstance
from overseer.worker.states import WorkerState

NOW = dt.datetime(2026, 3, 2, 12, 0, tzinfo=dt.timezone.utc)
PR_URL = "https://github.com/org/repo/pull/123"

def assistant_payload(*blocks: dict[str, object], stop_reason: str | None = None) -> dict:
    return {
        "type": "assistant",
        "message": {
            "id": "msg_1",
            "type": "message",
            "role": "assistant",
            "content": list(blocks),
            "model": "claude-sonnet",
            "stop_reason": stop_reason,
            "stop_sequence": None,
            "usage": {"input_tokens": 10, "output_tokens": 5},
        },
        "session_id": "s1",
    }

def text_block(text: str) -> dict[str, object]:
    return {"type": "text", "text": text}

def tool_block(name: str = "Read", **tool_input: object) -> dict[str, object]:
    return {"type": "tool_use", "id": "toolu_1", "name": name, "input": dict(tool_input)}

def result_payload(*, is_error: bool, result: str | None = None) -> dict:
    payload: dict[str, object] = {
        "type": "result",
        "subtype": "error_during_execution" if is_error else "success",
        "is_error": is_error,
        "duration_ms": 1000,
        "duration_api_ms": 900,
        "num_turns": 3,
        "session_id": "s1",
        "total_cost_usd": 0.12,
    }
    if result is not None:
        payload["result"] = result
    return payload

def make_worker(
    state: WorkerState = WorkerState.WORKING,
    *,
    idle: dt.timedelta = dt.timedelta(0),
    error: str | None = None,
    worker_id: str = "auth-flow",
) -> WorkerInstance:
    return WorkerInstance(
        worker_id=worker_id,
        state=state,
        last_activity=NOW - idle,
        error=error,
    )
