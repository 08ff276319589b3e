"""Main Typer application: entry point for the ``netprobe`` CLI."""

from __future__ import annotations

import typer

from netprobe._version import __version__
from netprobe.cli.check import check_cmd
from netprobe.cli.run import http_cmd, tcp_cmd

app = typer.Typer(
    name="netprobe",
    help="Probe HTTP(S) and TCP endpoints and generate concurrent load.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

app.command("check", help="Check that a URL or host:port is reachable.")(check_cmd)
app.command("http", help="Send HTTP GET/POST requests to a URL.")(http_cmd)
app.command("tcp", help="Send a JSON payload over raw TCP.")(tcp_cmd)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"netprobe {__version__}")
        raise typer.Exit


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """netprobe: probe HTTP(S) and TCP endpoints and generate concurrent load."""
