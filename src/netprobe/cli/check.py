"""``netprobe check``: one connectivity probe against a URL or host:port."""

from __future__ import annotations

import json
import logging

import typer
from rich.markup import escape

from netprobe._internal.config import load_config
from netprobe._internal.errors import NetProbeError
from netprobe._internal.logging import setup_logging
from netprobe.cli.render import console, print_summary
from netprobe.engine.controller import RunController, RunState
from netprobe.engine.runtime import run_blocking
from netprobe.metrics.models import RunSnapshot
from netprobe.probe import parse_target


def check_cmd(
    target: str = typer.Argument(..., help="http(s):// URL or host:port."),
    json_output: bool = typer.Option(False, "--json", help="Print the result as JSON on stdout."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging."),
) -> None:
    """Check that a target is reachable (TCP targets are only connected to)."""
    setup_logging(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        parsed = parse_target(target)
        config = load_config()
    except NetProbeError as exc:
        console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    with console.status(f"Checking {escape(parsed.describe())}..."):
        status = run_blocking(RunController(config).check_connectivity(parsed))

    if json_output:
        data: dict[str, object] = {"state": status.state.name.lower()}
        if status.outcome is not None:
            data.update(RunSnapshot.single(status.outcome).to_dict())
        elif status.error is not None:
            data["error"] = status.error
        typer.echo(json.dumps(data))
    else:
        print_summary(parsed.describe(), status, None)

    if status.state is not RunState.SUCCEEDED:
        raise typer.Exit(code=1)
