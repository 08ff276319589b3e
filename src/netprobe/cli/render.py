"""Rich renderables shared by the CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from netprobe.engine.controller import RunState
from netprobe.probe import ProbeFailure, ProbeSuccess

if TYPE_CHECKING:
    from netprobe.engine.controller import RunStatus
    from netprobe.metrics.models import RunSnapshot
    from netprobe.probe import ProbeOutcome

console = Console(stderr=True)

_STATE_STYLE = {
    RunState.SUCCEEDED: "green",
    RunState.FAILED: "red",
    RunState.CANCELLED: "yellow",
    RunState.RUNNING: "cyan",
    RunState.IDLE: "dim",
}


def make_live_table(snapshot: RunSnapshot | None) -> Table:
    """Build the table refreshed while a run is in progress.

    Args:
        snapshot: Latest snapshot, or None before the first tick.

    Returns:
        Formatted Rich Table.
    """
    table = Table(show_header=True, header_style="bold cyan", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    if snapshot is None:
        table.add_row("Status", "Starting...")
        return table

    percent = snapshot.completed / snapshot.total * 100 if snapshot.total else 0.0
    table.add_row("Elapsed", f"{snapshot.elapsed_seconds:.1f}s")
    table.add_row("Completed", f"{snapshot.completed}/{snapshot.total} ({percent:.0f}%)")
    table.add_row("Succeeded", str(snapshot.succeeded))
    table.add_row("Failed", str(snapshot.failed))
    return table


def _add_outcome_rows(table: Table, outcome: ProbeOutcome) -> None:
    if isinstance(outcome, ProbeSuccess):
        if outcome.status_code is not None:
            table.add_row("Status Code", str(outcome.status_code))
        table.add_row("Result", escape(outcome.detail))
        if outcome.snippet:
            table.add_row("Response", escape(outcome.snippet[:200]))
    elif isinstance(outcome, ProbeFailure):
        table.add_row("Failure", outcome.kind.value)
        table.add_row("Message", escape(outcome.message))
    table.add_row("Latency", f"{outcome.latency_ms:.1f}ms")


def print_summary(title: str, status: RunStatus, snapshot: RunSnapshot | None) -> None:
    """Print the final result of a run or connectivity check.

    Args:
        title: Table title, usually the target description.
        status: Terminal status.
        snapshot: Terminal snapshot, if the run produced one.
    """
    style = _STATE_STYLE[status.state]
    table = Table(title=escape(title), show_header=True, header_style=f"bold {style}", expand=True)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("State", f"[{style}]{status.state.name}[/{style}]")

    if status.outcome is not None:
        _add_outcome_rows(table, status.outcome)
    elif status.error is not None:
        table.add_row("Error", escape(status.error))

    progress = status.progress
    if progress is None and snapshot is not None and not snapshot.is_single and snapshot.total:
        progress = snapshot
    if progress is not None:
        table.add_row("Total Requests", str(progress.total))
        table.add_row("Completed", str(progress.completed))
        table.add_row("Succeeded", str(progress.succeeded))
        table.add_row("Failed", str(progress.failed))
        table.add_row("Error Rate", f"{progress.error_rate * 100:.2f}%")
        table.add_row("Duration", f"{progress.elapsed_seconds:.2f}s")
        if progress.latency is not None and progress.latency.count:
            table.add_row("p50 Latency", f"{progress.latency.p50:.1f}ms")
            table.add_row("p95 Latency", f"{progress.latency.p95:.1f}ms")
            table.add_row("p99 Latency", f"{progress.latency.p99:.1f}ms")

    console.print(table)
