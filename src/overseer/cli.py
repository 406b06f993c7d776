"""Command-line entry point for inspecting worker lifecycle classification."""

import datetime as dt
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table
from rich.text import Text

from . import __version__
from . import config as overseer_config
from . import log as overseer_log
from .errors import IoFailedError, OverseerFailure
from .worker.ingest import ingest_signal
from .worker.intervention import needs_intervention
from .worker.models import WorkerInstance
from .worker.presentation import (
    format_state,
    get_available_actions,
    get_state_description,
    get_state_emoji,
)
from .worker.signals import RawText, Signal, parse_jsonl_line
from .worker.states import STATE_TRANSITIONS, WorkerState, coerce_state
from .worker.transitions import TransitionEvent


class LogLevelName(str, Enum):
    trace = "trace"
    debug = "debug"
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


class ReplayFormat(str, Enum):
    auto = "auto"
    stream_json = "stream-json"
    text = "text"


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    help="Inspect worker lifecycle states and replay captured agent output.",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def _root(
    log_level: Optional[LogLevelName] = typer.Option(
        None, "--log-level", help="Minimum log level to display."
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colorized output."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    if log_level is not None:
        overseer_log.set_level(log_level.value)
    if no_color:
        overseer_log.set_no_color(True)


def _console() -> Console:
    return Console(highlight=False, soft_wrap=True, no_color=overseer_log.color_disabled())


@app.command("states")
def states_cmd() -> None:
    """Show every lifecycle state with its allowed transitions and actions."""
    table = Table(box=box.SIMPLE_HEAVY, show_lines=False)
    table.add_column("", no_wrap=True)
    table.add_column("State", no_wrap=True)
    table.add_column("Next")
    table.add_column("Actions")
    table.add_column("Description")
    for state in WorkerState:
        targets = STATE_TRANSITIONS[state]
        table.add_row(
            get_state_emoji(state),
            state.value,
            ", ".join(target.value for target in targets) or "-",
            ", ".join(get_available_actions(state)),
            get_state_description(state),
        )
    _console().print(table)


def _read_lines(path: Path) -> list[str]:
    try:
        return path.read_text(encoding="utf-8", errors="replace").splitlines()
    except OSError as exc:
        raise IoFailedError(f"failed to read {path}: {exc}") from exc


def _line_signal(line: str, replay_format: ReplayFormat) -> Optional[Signal]:
    if not line.strip():
        return None
    if replay_format is ReplayFormat.text:
        return RawText(line)
    message = parse_jsonl_line(line)
    if message is not None:
        return message
    if replay_format is ReplayFormat.stream_json:
        overseer_log.debug("skipping unparseable stream line", line=line[:80])
        return None
    return RawText(line)


def _transition_reporter(console: Console, line_no: int) -> Callable[[TransitionEvent], None]:
    def report(event: TransitionEvent) -> None:
        console.print(
            Text(
                f"line {line_no}: {format_state(event.from_state)} -> "
                f"{format_state(event.to_state)}"
            )
        )

    return report


@app.command("replay")
def replay_cmd(
    log_file: Path = typer.Argument(..., help="Captured worker output to replay."),
    state: str = typer.Option("INITIALIZING", "--state", help="State to start from."),
    replay_format: ReplayFormat = typer.Option(
        ReplayFormat.auto, "--format", help="How to interpret each line."
    ),
    interval: float = typer.Option(
        1.0, "--interval", min=0.0, help="Simulated seconds between lines."
    ),
    idle: float = typer.Option(
        0.0, "--idle", min=0.0, help="Simulated idle seconds after the last line."
    ),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file to load."),
    worker_id: str = typer.Option("replay", "--worker", help="Worker id used in output."),
) -> None:
    """Replay a captured log through state detection and report the outcome."""
    initial = coerce_state(state)
    if initial is None:
        raise typer.BadParameter(f"unknown state: {state}", param_hint="--state")
    console = _console()
    try:
        settings = overseer_config.load_config(config_path)
        lines = _read_lines(log_file)
    except OverseerFailure as exc:
        overseer_log.error(str(exc))
        if exc.recovery_hint:
            overseer_log.info(exc.recovery_hint)
        raise typer.Exit(code=1) from exc

    started = dt.datetime.now(tz=dt.timezone.utc)
    worker = WorkerInstance(worker_id=worker_id, state=initial, last_activity=started)
    clock = started
    for index, line in enumerate(lines, start=1):
        signal = _line_signal(line, replay_format)
        if signal is None:
            continue
        clock = started + dt.timedelta(seconds=interval * index)
        ingest_signal(
            worker, signal, now=clock, on_transition=_transition_reporter(console, index)
        )

    decision = needs_intervention(
        worker, clock + dt.timedelta(seconds=idle), policy=settings.policy
    )
    console.print(Text(f"final state: {format_state(worker.state)}"))
    if worker.pr_url:
        console.print(Text(f"pull request: {worker.pr_url}"))
    if worker.error:
        console.print(Text(f"error: {worker.error}"))
    if decision.needed:
        console.print(Text(f"intervention: {decision.action} ({decision.reason})"))
    else:
        console.print(Text("intervention: none"))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
