"""End-to-end tests for the netprobe CLI."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from typer.testing import CliRunner

from netprobe import __version__
from netprobe.cli.app import app

if TYPE_CHECKING:
    from tests.conftest import TcpServer

runner = CliRunner()


def _json_line(output: str) -> dict[str, object]:
    """Return the JSON document the command printed on stdout."""
    for line in output.splitlines():
        if line.startswith("{"):
            return json.loads(line)
    raise AssertionError(f"no JSON line in output:\n{output}")


# ---------------------------------------------------------------------------
# General
# ---------------------------------------------------------------------------


class TestGeneral:
    """Top-level options."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"netprobe {__version__}" in result.output

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "check" in result.output
        assert "http" in result.output
        assert "tcp" in result.output


# ---------------------------------------------------------------------------
# netprobe http
# ---------------------------------------------------------------------------


class TestHttpCommand:
    """``netprobe http`` against a local aiohttp server."""

    def test_single_request(self, sync_http_server: str) -> None:
        result = runner.invoke(app, ["http", f"{sync_http_server}/health", "--json"])
        assert result.exit_code == 0, result.output
        data = _json_line(result.output)
        assert data["state"] == "succeeded"
        assert data["status_code"] == 200
        assert data["total_requests"] == 1

    def test_concurrent_run(self, sync_http_server: str) -> None:
        result = runner.invoke(
            app,
            ["http", f"{sync_http_server}/health", "-c", "-w", "2", "-n", "3", "--json"],
        )
        assert result.exit_code == 0, result.output
        data = _json_line(result.output)
        assert data["state"] == "succeeded"
        assert data["total_requests"] == 6
        assert data["success_count"] == 6
        assert data["failure_count"] == 0
        assert "latency_ms" in data

    def test_post_with_header_and_body(self, sync_http_server: str) -> None:
        result = runner.invoke(
            app,
            [
                "http",
                f"{sync_http_server}/echo",
                "-X",
                "post",
                "-H",
                "X-Trace: abc",
                "-d",
                "payload",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "SUCCEEDED" in result.output

    def test_error_status_exits_nonzero(self, sync_http_server: str) -> None:
        result = runner.invoke(app, ["http", f"{sync_http_server}/status/500", "--json"])
        assert result.exit_code == 1
        data = _json_line(result.output)
        assert data["state"] == "failed"
        assert data["status_code"] == 500

    def test_concurrent_failures_succeed_without_threshold(self, sync_http_server: str) -> None:
        result = runner.invoke(
            app, ["http", f"{sync_http_server}/status/500", "-c", "-w", "2", "-n", "2", "--json"]
        )
        assert result.exit_code == 0, result.output
        assert _json_line(result.output)["failure_count"] == 4

    def test_fail_on_error_rate(self, sync_http_server: str) -> None:
        result = runner.invoke(
            app,
            [
                "http",
                f"{sync_http_server}/status/500",
                "-c",
                "-w",
                "2",
                "-n",
                "2",
                "--fail-on-error-rate",
                "0.5",
            ],
        )
        assert result.exit_code == 1
        assert "exceeds threshold" in result.output

    def test_malformed_url_exits_one(self) -> None:
        result = runner.invoke(app, ["http", "ftp://example.com/file"])
        assert result.exit_code == 1
        assert "Error" in result.output

    def test_bad_header_is_usage_error(self, sync_http_server: str) -> None:
        result = runner.invoke(app, ["http", sync_http_server, "-H", "no-colon-here"])
        assert result.exit_code == 2

    def test_unsupported_method_is_usage_error(self, sync_http_server: str) -> None:
        result = runner.invoke(app, ["http", sync_http_server, "-X", "DELETE"])
        assert result.exit_code == 2

    def test_zero_workers_rejected(self, sync_http_server: str) -> None:
        result = runner.invoke(app, ["http", sync_http_server, "-c", "-w", "0"])
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# netprobe tcp
# ---------------------------------------------------------------------------


class TestTcpCommand:
    """``netprobe tcp`` against a local line server."""

    def test_send_payload(self, sync_tcp_server: TcpServer) -> None:
        result = runner.invoke(
            app,
            ["tcp", sync_tcp_server.host, str(sync_tcp_server.port), "-p", "hello", "--json"],
        )
        assert result.exit_code == 0, result.output
        assert _json_line(result.output)["state"] == "succeeded"
        assert json.loads(sync_tcp_server.received[0])["message"] == "hello"

    def test_concurrent_payloads_are_stamped(self, sync_tcp_server: TcpServer) -> None:
        result = runner.invoke(
            app,
            ["tcp", sync_tcp_server.host, str(sync_tcp_server.port), "-c", "-w", "2", "-n", "2"],
        )
        assert result.exit_code == 0, result.output
        sent = [json.loads(line) for line in sync_tcp_server.received]
        assert len(sent) == 4
        assert sorted((d["threadIndex"], d["requestIndex"]) for d in sent) == [
            (0, 0),
            (0, 1),
            (1, 0),
            (1, 1),
        ]

    def test_closed_port_fails(self, closed_port: int) -> None:
        result = runner.invoke(app, ["tcp", "127.0.0.1", str(closed_port), "--json"])
        assert result.exit_code == 1
        data = _json_line(result.output)
        assert data["failure_kind"] == "connection_refused"

    def test_port_out_of_range(self) -> None:
        result = runner.invoke(app, ["tcp", "127.0.0.1", "70000"])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# netprobe check
# ---------------------------------------------------------------------------


class TestCheckCommand:
    """``netprobe check`` for URLs and host:port targets."""

    def test_check_url(self, sync_http_server: str) -> None:
        result = runner.invoke(app, ["check", f"{sync_http_server}/health", "--json"])
        assert result.exit_code == 0, result.output
        assert _json_line(result.output)["state"] == "succeeded"

    def test_check_tcp_endpoint(self, sync_tcp_server: TcpServer) -> None:
        result = runner.invoke(app, ["check", f"{sync_tcp_server.host}:{sync_tcp_server.port}"])
        assert result.exit_code == 0, result.output
        assert "connected" in result.output

    def test_check_closed_port(self, closed_port: int) -> None:
        result = runner.invoke(app, ["check", f"127.0.0.1:{closed_port}", "--json"])
        assert result.exit_code == 1
        assert _json_line(result.output)["failure_kind"] == "connection_refused"

    def test_check_garbage_target(self) -> None:
        result = runner.invoke(app, ["check", "not-a-target"])
        assert result.exit_code == 1
        assert "Error" in result.output
