"""Shared test fixtures for the netprobe test suite."""

from __future__ import annotations

import asyncio
import socket
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import pytest
from aiohttp import web

from netprobe._internal.config import NetProbeConfig

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator


# =============================================================================
# Pytest configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-apply markers based on test directory structure."""
    for item in items:
        test_path = str(item.fspath)
        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/e2e/" in test_path:
            item.add_marker(pytest.mark.e2e)


# =============================================================================
# Network utilities
# =============================================================================


def _get_free_port() -> int:
    """Find an available port on localhost."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


@pytest.fixture
def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    return _get_free_port()


@pytest.fixture
async def unresolvable_dns(monkeypatch: pytest.MonkeyPatch) -> str:
    """Make every name lookup on the test's loop fail; returns a hostname to use.

    IP literals bypass ``getaddrinfo`` and keep working.
    """
    loop = asyncio.get_running_loop()

    async def _fail(host: object, *args: object, **kwargs: object) -> list[object]:
        raise socket.gaierror(socket.EAI_NONAME, "Name or service not known")

    monkeypatch.setattr(loop, "getaddrinfo", _fail)
    return "nowhere.invalid"


@pytest.fixture
def fast_config() -> NetProbeConfig:
    """Short timeouts and a quick progress tick for tests."""
    return NetProbeConfig(
        timeout=2.0,
        connect_timeout=1.0,
        socket_timeout=0.2,
        progress_interval=0.02,
    )


# =============================================================================
# HTTP server handlers
# =============================================================================


async def _echo_handler(request: web.Request) -> web.Response:
    """Echo back request details as JSON."""
    body = await request.read()
    return web.json_response(
        {
            "method": request.method,
            "path": str(request.path),
            "query": dict(request.query),
            "headers": dict(request.headers),
            "body": body.decode("utf-8", errors="replace"),
        },
    )


async def _delay_handler(request: web.Request) -> web.Response:
    """Respond after a configurable delay (query param: ?delay=0.5)."""
    delay = float(request.query.get("delay", "0.1"))
    await asyncio.sleep(delay)
    return web.json_response({"delayed_by": delay})


async def _status_handler(request: web.Request) -> web.Response:
    """Return the status code given in the path (``/status/503``)."""
    status = int(request.match_info["code"])
    return web.json_response({"status": status}, status=status)


async def _health_handler(request: web.Request) -> web.Response:
    """Simple health check endpoint."""
    return web.json_response({"status": "ok"})


def _create_http_app() -> web.Application:
    """Build the test app with all routes."""
    app = web.Application()
    app.router.add_route("*", "/echo{path:.*}", _echo_handler)
    app.router.add_get("/delay", _delay_handler)
    app.router.add_get(r"/status/{code:\d+}", _status_handler)
    app.router.add_get("/health", _health_handler)
    return app


@pytest.fixture
async def http_server() -> AsyncIterator[str]:
    """aiohttp server fixture.

    Returns the base URL (e.g., 'http://127.0.0.1:54321').
    """
    app = _create_http_app()
    port = _get_free_port()
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", port)
    await site.start()
    yield f"http://127.0.0.1:{port}"
    await runner.cleanup()


# =============================================================================
# Raw TCP servers
# =============================================================================


@dataclass
class TcpServer:
    """A running asyncio TCP server and the lines it received."""

    host: str
    port: int
    received: list[bytes] = field(default_factory=list)


async def _start_tcp_server(
    handler: Callable[[TcpServer, asyncio.StreamReader, asyncio.StreamWriter], Awaitable[None]],
) -> tuple[TcpServer, asyncio.AbstractServer]:
    state = TcpServer(host="127.0.0.1", port=0)

    async def _handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        try:
            await handler(state, reader, writer)
        except (ConnectionError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    server = await asyncio.start_server(_handle, "127.0.0.1", 0)
    state.port = server.sockets[0].getsockname()[1]
    return state, server


async def _ack_handler(
    state: TcpServer, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
) -> None:
    line = await reader.readline()
    state.received.append(line)
    writer.write(b"ACK " + line)
    await writer.drain()


async def _silent_handler(
    state: TcpServer, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
) -> None:
    line = await reader.readline()
    state.received.append(line)
    # Hold the connection open without answering until the client gives up.
    await reader.read()


async def _garbage_handler(
    state: TcpServer, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
) -> None:
    await reader.readuntil(b"\r\n\r\n")
    writer.write(b"SSH-2.0-OpenSSH_9.6\r\n")
    await writer.drain()


@pytest.fixture
async def tcp_ack_server() -> AsyncIterator[TcpServer]:
    """Replies ``ACK <line>`` to the first line it receives."""
    state, server = await _start_tcp_server(_ack_handler)
    yield state
    server.close()
    await server.wait_closed()


@pytest.fixture
async def tcp_silent_server() -> AsyncIterator[TcpServer]:
    """Accepts and reads, but never answers."""
    state, server = await _start_tcp_server(_silent_handler)
    yield state
    server.close()
    await server.wait_closed()


@pytest.fixture
async def tcp_garbage_server() -> AsyncIterator[TcpServer]:
    """Reads an HTTP request head and answers with a non-HTTP banner."""
    state, server = await _start_tcp_server(_garbage_handler)
    yield state
    server.close()
    await server.wait_closed()


# =============================================================================
# Sync fixtures for CLI tests
# =============================================================================


@pytest.fixture
def sync_http_server() -> Iterator[str]:
    """HTTP server running in a background thread for sync tests.

    The CLI starts its own event loop, so the server cannot share the
    test's loop.
    """
    port = _get_free_port()
    started = threading.Event()
    loop_holder: list[asyncio.AbstractEventLoop] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        runner = web.AppRunner(_create_http_app())
        loop.run_until_complete(runner.setup())
        site = web.TCPSite(runner, "127.0.0.1", port)
        loop.run_until_complete(site.start())
        loop_holder.append(loop)
        started.set()
        loop.run_forever()
        loop.run_until_complete(runner.cleanup())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    yield f"http://127.0.0.1:{port}"

    if loop_holder:
        loop_holder[0].call_soon_threadsafe(loop_holder[0].stop)
    thread.join(timeout=5.0)


@pytest.fixture
def sync_tcp_server() -> Iterator[TcpServer]:
    """ACK server running in a background thread for sync tests."""
    started = threading.Event()
    holder: list[tuple[asyncio.AbstractEventLoop, TcpServer, asyncio.AbstractServer]] = []

    def _thread_target() -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        state, server = loop.run_until_complete(_start_tcp_server(_ack_handler))
        holder.append((loop, state, server))
        started.set()
        loop.run_forever()
        server.close()
        loop.run_until_complete(server.wait_closed())
        loop.close()

    thread = threading.Thread(target=_thread_target, daemon=True)
    thread.start()
    started.wait(timeout=5.0)

    loop, state, _server = holder[0]
    yield state

    loop.call_soon_threadsafe(loop.stop)
    thread.join(timeout=5.0)
