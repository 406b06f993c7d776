"""Worker lifecycle core: states, signal detection, transitions, interventions."""

from .detection import detect_state, detect_state_from_message, detect_state_from_output
from .ingest import IngestResult, ingest_signal
from .intervention import InterventionDecision, needs_intervention
from .models import WorkerInstance
from .presentation import get_available_actions, get_state_description, get_state_emoji
from .signals import RawText, parse_jsonl_line, parse_message
from .states import STATE_TRANSITIONS, WorkerState, is_terminal_state, is_valid_transition
from .transitions import TransitionEvent, apply_if_valid

__all__ = [
    "IngestResult",
    "InterventionDecision",
    "RawText",
    "STATE_TRANSITIONS",
    "TransitionEvent",
    "WorkerInstance",
    "WorkerState",
    "apply_if_valid",
    "detect_state",
    "detect_state_from_message",
    "detect_state_from_output",
    "get_available_actions",
    "get_state_description",
    "get_state_emoji",
    "ingest_signal",
    "is_terminal_state",
    "is_valid_transition",
    "needs_intervention",
    "parse_jsonl_line",
    "parse_message",
]
