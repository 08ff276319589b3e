"""``netprobe http`` and ``netprobe tcp``: send one request or a concurrent burst."""

from __future__ import annotations

import asyncio
import json
import logging
import signal
import sys
from dataclasses import replace
from typing import TYPE_CHECKING

import typer
from rich.live import Live
from rich.markup import escape

from netprobe._internal.config import load_config
from netprobe._internal.errors import NetProbeError
from netprobe._internal.logging import setup_logging
from netprobe.cli.render import console, make_live_table, print_summary
from netprobe.engine.controller import RunController, RunState
from netprobe.engine.runtime import run_blocking
from netprobe.engine.settings import RunSettings
from netprobe.probe import HttpTarget, TcpTarget

if TYPE_CHECKING:
    from netprobe.engine.controller import RunStatus
    from netprobe.metrics.models import RunSnapshot
    from netprobe.probe import Target

# ---------------------------------------------------------------------------
# Shared options
# ---------------------------------------------------------------------------

CONCURRENT_OPTION = typer.Option(
    False,
    "--concurrent",
    "-c",
    help="Enable multi-request mode (workers x repeat requests).",
)
WORKERS_OPTION = typer.Option(1, "--workers", "-w", help="Concurrent workers.", min=1)
REPEAT_OPTION = typer.Option(1, "--repeat", "-n", help="Requests sent by each worker.", min=1)
DELAY_OPTION = typer.Option(0, "--delay-ms", help="Pause after each request of a worker.", min=0)
TIMEOUT_OPTION = typer.Option(
    None,
    "--timeout",
    "-t",
    help="Per-request timeout in seconds (default: NETPROBE_TIMEOUT or 10).",
)
JSON_OPTION = typer.Option(False, "--json", help="Print the final snapshot as JSON on stdout.")
FAIL_RATE_OPTION = typer.Option(
    None,
    "--fail-on-error-rate",
    help="Exit non-zero if the failure rate exceeds this threshold (e.g., 0.05).",
)
VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging.")


def _parse_headers(values: list[str]) -> dict[str, str]:
    """Turn ``Name: value`` strings into a header dict.

    Raises:
        typer.BadParameter: If a value has no colon.
    """
    headers: dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            msg = f"Header must look like 'Name: value', got: {value!r}"
            raise typer.BadParameter(msg)
        headers[name.strip()] = content.strip()
    return headers


async def _drive(
    controller: RunController,
    target: Target,
    settings: RunSettings,
    live: Live,
    latest: list[RunSnapshot | None],
) -> RunStatus:
    """Run on the event loop with SIGINT/SIGTERM mapped to cancellation."""
    loop = asyncio.get_running_loop()

    def _on_snapshot(snapshot: RunSnapshot) -> None:
        latest[0] = snapshot
        live.update(make_live_table(snapshot))

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, controller.cancel)
    try:
        status = await controller.run(target, settings, on_snapshot=_on_snapshot)
        await controller.drain()
        return status
    finally:
        if sys.platform != "win32":
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)


def execute_run(
    target: Target,
    settings: RunSettings,
    *,
    timeout: float | None,
    json_output: bool,
    fail_on_error_rate: float | None,
    verbose: bool,
) -> None:
    """Run a target with live progress, print the result and set the exit code."""
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        settings.validate()
        target.validate()
        config = load_config()
    except NetProbeError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    if timeout is not None:
        if timeout <= 0:
            msg = "--timeout must be positive"
            raise typer.BadParameter(msg)
        config = replace(config, timeout=timeout)

    latest: list[RunSnapshot | None] = [None]
    with Live(make_live_table(None), console=console, refresh_per_second=4, transient=True) as live:
        status = run_blocking(_drive(RunController(config), target, settings, live, latest))

    snapshot = latest[0]
    if json_output:
        data: dict[str, object] = {"state": status.state.name.lower()}
        if snapshot is not None:
            data.update(snapshot.to_dict())
        typer.echo(json.dumps(data))
    else:
        print_summary(target.describe(), status, snapshot)

    if status.state is RunState.CANCELLED:
        raise typer.Exit(code=130)
    if status.state is RunState.FAILED:
        raise typer.Exit(code=1)
    if (
        fail_on_error_rate is not None
        and status.progress is not None
        and status.progress.error_rate > fail_on_error_rate
    ):
        console.print(
            f"[red]FAIL:[/red] Error rate {status.progress.error_rate * 100:.2f}% "
            f"exceeds threshold {fail_on_error_rate * 100:.2f}%"
        )
        raise typer.Exit(code=1)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def http_cmd(
    url: str = typer.Argument(..., help="http:// or https:// URL."),
    method: str = typer.Option("GET", "--method", "-X", help="HTTP method: GET or POST."),
    header: list[str] = typer.Option([], "--header", "-H", help="Extra header 'Name: value'."),
    data: str | None = typer.Option(None, "--data", "-d", help="Request body for POST."),
    concurrent: bool = CONCURRENT_OPTION,
    workers: int = WORKERS_OPTION,
    repeat: int = REPEAT_OPTION,
    delay_ms: int = DELAY_OPTION,
    timeout: float | None = TIMEOUT_OPTION,
    json_output: bool = JSON_OPTION,
    fail_on_error_rate: float | None = FAIL_RATE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Send HTTP requests to a URL."""
    method = method.upper()
    if method not in ("GET", "POST"):
        msg = f"Unsupported method {method!r}; choose GET or POST"
        raise typer.BadParameter(msg)

    target = HttpTarget(url=url, method=method, headers=_parse_headers(header), body=data)  # type: ignore[arg-type]
    settings = RunSettings(
        enabled=concurrent,
        worker_count=workers,
        repetitions_per_worker=repeat,
        delay_per_request_ms=delay_ms,
    )
    execute_run(
        target,
        settings,
        timeout=timeout,
        json_output=json_output,
        fail_on_error_rate=fail_on_error_rate,
        verbose=verbose,
    )


def tcp_cmd(
    host: str = typer.Argument(..., help="Hostname or IP address."),
    port: int = typer.Argument(..., help="TCP port."),
    payload: str = typer.Option(
        "",
        "--payload",
        "-p",
        help="JSON object to send; other text is wrapped as {message, timestamp}.",
    ),
    concurrent: bool = CONCURRENT_OPTION,
    workers: int = WORKERS_OPTION,
    repeat: int = REPEAT_OPTION,
    delay_ms: int = DELAY_OPTION,
    timeout: float | None = TIMEOUT_OPTION,
    json_output: bool = JSON_OPTION,
    fail_on_error_rate: float | None = FAIL_RATE_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Send a JSON payload over raw TCP."""
    target = TcpTarget(host=host, port=port, payload=payload)
    settings = RunSettings(
        enabled=concurrent,
        worker_count=workers,
        repetitions_per_worker=repeat,
        delay_per_request_ms=delay_ms,
    )
    execute_run(
        target,
        settings,
        timeout=timeout,
        json_output=json_output,
        fail_on_error_rate=fail_on_error_rate,
        verbose=verbose,
    )
