"""Pydantic models and parsers for the signals a worker emits.

A worker reports progress through two channels:

- structured ``stream-json`` messages from the agent process, one JSON object
  per line, discriminated on ``type``
- raw captured text when no structured stream is available

Parsing is tolerant: anything that does not validate is treated as "no
signal" so one malformed line never interrupts monitoring.
"""

from __future__ import annotations

import codecs
import json
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
    model_validator,
)

_ANSI_ESCAPE_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]")
_PR_URL_RE = re.compile(
    r"(?:https?://)?github\.com/(?P<owner>[^/\s]+)/(?P<repo>[^/\s]+)/pull/(?P<number>\d+)\b",
    re.IGNORECASE,
)
_API_ERROR_PATTERNS = (
    re.compile(r"\bAPI\b.*\berror\b", re.IGNORECASE),
    re.compile(r"\brate[ _-]?limit", re.IGNORECASE),
    re.compile(r"ECONNREFUSED"),
    re.compile(r"\bconnection\b.*\bfailed\b", re.IGNORECASE),
    re.compile(r"\bClaude\b.*\berror\b", re.IGNORECASE),
)
_MERGED_RE = re.compile(
    r"(?:✓|\bPR\b|\bpull request\b|\bsuccessfully\b).*\bmerged\b", re.IGNORECASE
)
_NOT_MERGED_RE = re.compile(r"\b(?:not|never)\s+(?:yet\s+|been\s+)?merged\b", re.IGNORECASE)
_TOOL_ACTIVITY_RE = re.compile(r"\b(?:Running|Writing|Reading|Editing|Searching)\b", re.IGNORECASE)
_REVIEW_FAILED_RE = re.compile(r"RESULT:.*\bFAIL\w*", re.IGNORECASE)
_REVIEW_PASSED_RE = re.compile(r"RESULT:.*\b(?:CONDITIONAL PASS|PASS)\w*", re.IGNORECASE)

_KNOWN_BLOCK_TYPES = {"text", "tool_use", "tool_result"}

ReviewOutcome = Literal["passed", "failed"]


class TextBlock(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["text"] = "text"
    text: str = ""

    @field_validator("text", mode="before")
    @classmethod
    def _normalize_text(cls, value: object) -> object:
        return value if isinstance(value, str) else ""


class ToolUseBlock(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["tool_use"] = "tool_use"
    id: str | None = None
    name: str | None = None
    input: dict[str, Any] = Field(default_factory=dict)

    @field_validator("input", mode="before")
    @classmethod
    def _normalize_input(cls, value: object) -> object:
        return value if isinstance(value, dict) else {}


class ToolResultBlock(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str | None = None
    content: Any = None
    is_error: bool = False

    @field_validator("is_error", mode="before")
    @classmethod
    def _normalize_is_error(cls, value: object) -> object:
        return False if value is None else value


ContentBlock = Annotated[
    Union[TextBlock, ToolUseBlock, ToolResultBlock],
    Field(discriminator="type"),
]


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def _optional_count(value: object) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        return None
    return value


def _known_blocks(value: object) -> list[object]:
    if isinstance(value, str):
        return [{"type": "text", "text": value}]
    if not isinstance(value, (list, tuple)):
        return []
    return [
        block
        for block in value
        if isinstance(block, dict)
        and isinstance(block.get("type"), str)
        and block["type"] in _KNOWN_BLOCK_TYPES
    ]


class _Turn(BaseModel):
    """Shared shape for conversational turns nested under ``message``."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    content: tuple[ContentBlock, ...] = ()
    message_id: str | None = None
    model: str | None = None
    stop_reason: str | None = None
    session_id: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _lift_message(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        payload = dict(data)
        inner = payload.pop("message", None)
        if isinstance(inner, dict):
            payload.setdefault("content", inner.get("content"))
            payload.setdefault("message_id", inner.get("id"))
            payload.setdefault("model", inner.get("model"))
            payload.setdefault("stop_reason", inner.get("stop_reason"))
        payload["content"] = _known_blocks(payload.get("content"))
        return payload

    @field_validator("message_id", "model", "stop_reason", "session_id", mode="before")
    @classmethod
    def _drop_malformed_text(cls, value: object) -> object:
        return _optional_str(value)


class AssistantTurn(_Turn):
    """An assistant turn: ordered text and tool-invocation blocks."""

    type: Literal["assistant"]


class UserTurn(_Turn):
    """A user/tool-result turn echoed back by the agent process."""

    type: Literal["user", "human"]


class SystemEvent(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["system"]
    subtype: str | None = None
    session_id: str | None = None


class ResultRecord(BaseModel):
    """Final record of an agent run, carrying the error flag and run metadata."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    type: Literal["result"]
    subtype: str | None = None
    is_error: bool = False
    num_turns: int | None = None
    total_cost_usd: float | None = None
    duration_ms: int | None = None
    duration_api_ms: int | None = None
    session_id: str | None = None
    result_text: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _flatten_result(cls, data: object) -> object:
        if not isinstance(data, dict):
            return data
        payload = dict(data)
        nested = payload.pop("result", None)
        if isinstance(nested, dict):
            for key, value in nested.items():
                if key == "result":
                    payload.setdefault("result_text", value)
                else:
                    payload.setdefault(key, value)
        elif isinstance(nested, str):
            payload.setdefault("result_text", nested)
        return payload

    @field_validator("is_error", mode="before")
    @classmethod
    def _normalize_is_error(cls, value: object) -> object:
        return False if value is None else value

    # Run metadata is informational; a malformed field must not hide the error flag.
    @field_validator("subtype", "session_id", mode="before")
    @classmethod
    def _drop_malformed_text(cls, value: object) -> object:
        return _optional_str(value)

    @field_validator("num_turns", "duration_ms", "duration_api_ms", mode="before")
    @classmethod
    def _drop_malformed_count(cls, value: object) -> object:
        return _optional_count(value)

    @field_validator("total_cost_usd", mode="before")
    @classmethod
    def _drop_malformed_cost(cls, value: object) -> object:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return value

    @field_validator("result_text", mode="before")
    @classmethod
    def _normalize_result_text(cls, value: object) -> object:
        if not isinstance(value, str):
            return None
        cleaned = value.strip()
        return cleaned or None


AgentMessage = Annotated[
    Union[AssistantTurn, UserTurn, SystemEvent, ResultRecord],
    Field(discriminator="type"),
]
AGENT_MESSAGE_TYPES = (AssistantTurn, UserTurn, SystemEvent, ResultRecord)

_AGENT_MESSAGE_ADAPTER: TypeAdapter[Any] = TypeAdapter(AgentMessage)


@dataclass(frozen=True)
class RawText:
    """Unstructured captured output used when no structured stream exists."""

    text: str


Signal = Union[AssistantTurn, UserTurn, SystemEvent, ResultRecord, RawText]


@dataclass(frozen=True)
class PullRequestRef:
    url: str
    number: int
    owner: str
    repo: str


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return _ANSI_ESCAPE_RE.sub("", text)


def parse_message(payload: object) -> AssistantTurn | UserTurn | SystemEvent | ResultRecord | None:
    """Validate a decoded stream-json object.

    Args:
        payload: Decoded JSON value for one stream line.

    Returns:
        The typed message, or ``None`` when the payload is not a recognized
        message shape.
    """
    if isinstance(payload, AGENT_MESSAGE_TYPES):
        return payload
    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        return None
    try:
        return _AGENT_MESSAGE_ADAPTER.validate_python(payload)
    except ValidationError:
        return None


def parse_jsonl_line(line: str) -> AssistantTurn | UserTurn | SystemEvent | ResultRecord | None:
    """Parse one stream-json line; blank, non-JSON or unknown lines give ``None``."""
    trimmed = line.strip()
    if not trimmed:
        return None
    try:
        payload = json.loads(trimmed)
    except ValueError:
        return None
    return parse_message(payload)


class JsonlStreamParser:
    """Incrementally split streamed output into typed messages.

    Chunks may end mid-line or mid-character; the trailing partial line and
    any incomplete UTF-8 sequence are buffered until the next ``feed`` or
    ``finalize``.
    """

    def __init__(
        self,
        on_message: Callable[[AssistantTurn | UserTurn | SystemEvent | ResultRecord], None],
        *,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._on_message = on_message
        self._on_error = on_error
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, data: str | bytes) -> None:
        if not data:
            return
        text = self._decoder.decode(data) if isinstance(data, bytes) else data
        self._append(text)

    def finalize(self) -> None:
        self._append(self._decoder.decode(b"", final=True))
        if self._buffer:
            line, self._buffer = self._buffer, ""
            self._handle_line(line)

    def _append(self, text: str) -> None:
        self._buffer += text.replace("\r", "\n")
        while "\n" in self._buffer:
            line, self._buffer = self._buffer.split("\n", 1)
            self._handle_line(line)

    def _handle_line(self, line: str) -> None:
        if not line.strip():
            return
        message = parse_jsonl_line(line)
        if message is None:
            if self._on_error is not None:
                self._on_error(line)
            return
        self._on_message(message)


def extract_text(message: object) -> str:
    """Return the newline-joined text blocks of an assistant turn."""
    if not isinstance(message, AssistantTurn):
        return ""
    return "\n".join(
        block.text for block in message.content if isinstance(block, TextBlock) and block.text
    )


def has_tool_use(message: object) -> bool:
    if not isinstance(message, AssistantTurn):
        return False
    return any(isinstance(block, ToolUseBlock) for block in message.content)


def tool_names(message: object) -> list[str]:
    if not isinstance(message, AssistantTurn):
        return []
    return [
        block.name for block in message.content if isinstance(block, ToolUseBlock) and block.name
    ]


def is_complete(message: object) -> bool:
    """Return whether the agent finished its turn (result record or ``end_turn``)."""
    if isinstance(message, ResultRecord):
        return True
    return isinstance(message, AssistantTurn) and message.stop_reason == "end_turn"


def is_api_error(message: object) -> bool:
    """Return whether a structured message reports an agent/API failure."""
    return isinstance(message, ResultRecord) and message.is_error


def parse_pr_from_output(text: str) -> PullRequestRef | None:
    """Find the first GitHub pull-request URL in ``text``.

    Example:
        >>> parse_pr_from_output("opened github.com/org/repo/pull/42").url
        'https://github.com/org/repo/pull/42'
    """
    if not isinstance(text, str):
        return None
    match = _PR_URL_RE.search(text)
    if not match:
        return None
    owner = match.group("owner")
    repo = match.group("repo")
    number = int(match.group("number"))
    return PullRequestRef(
        url=f"https://github.com/{owner}/{repo}/pull/{number}",
        number=number,
        owner=owner,
        repo=repo,
    )


def extract_pr_url(message: object) -> str | None:
    ref = parse_pr_from_output(extract_text(message))
    return ref.url if ref else None


def extract_pr_number(message: object) -> int | None:
    ref = parse_pr_from_output(extract_text(message))
    return ref.number if ref else None


def signal_pull_request(signal: object) -> PullRequestRef | None:
    """Return the pull request a signal announces, for either channel."""
    if isinstance(signal, RawText):
        return parse_pr_from_output(strip_ansi(signal.text))
    return parse_pr_from_output(extract_text(signal))


def api_error_line(text: str) -> str | None:
    """Return the first line of ``text`` that reads like an agent/API failure."""
    for line in text.splitlines():
        if any(pattern.search(line) for pattern in _API_ERROR_PATTERNS):
            return line.strip()
    return None


def is_api_error_text(text: str) -> bool:
    return api_error_line(text) is not None


def announces_merge(text: str) -> bool:
    """Return whether ``text`` reports a successful merge.

    Example:
        >>> announces_merge("PR successfully merged")
        True
        >>> announces_merge("PR #12 has not been merged yet")
        False
    """
    for line in text.splitlines():
        if _MERGED_RE.search(line) and not _NOT_MERGED_RE.search(line):
            return True
    return False


def mentions_tool_activity(text: str) -> bool:
    return bool(_TOOL_ACTIVITY_RE.search(text))


def review_outcome(message: object) -> ReviewOutcome | None:
    """Return the QA review verdict carried by an assistant turn, if any."""
    text = extract_text(message)
    if not text:
        return None
    if _REVIEW_FAILED_RE.search(text):
        return "failed"
    if _REVIEW_PASSED_RE.search(text):
        return "passed"
    return None
