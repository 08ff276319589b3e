"""HTTP probes: aiohttp for HTTPS, a hand-written HTTP/1.1 exchange for plain HTTP."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import aiohttp

from netprobe._internal.config import RESPONSE_BYTE_BUDGET
from netprobe._internal.errors import ProtocolViolationError
from netprobe._version import __version__
from netprobe.probe.base import Deadline, Probe
from netprobe.probe.outcome import ProbeSuccess
from netprobe.probe.targets import HttpTarget

if TYPE_CHECKING:
    from netprobe.probe.outcome import ProbeOutcome

USER_AGENT = f"netprobe/{__version__}"


def _format_host_header(host: str, port: int, default_port: int) -> str:
    header = host
    if ":" in header and not header.startswith("["):
        header = f"[{header}]"
    if port != default_port:
        header = f"{header}:{port}"
    return header


def _parse_status_line(line: bytes) -> tuple[int, str]:
    """Split ``HTTP/1.1 200 OK`` into ``(200, "OK")``.

    Raises:
        ProtocolViolationError: If the peer closed the connection or did not
            answer with an HTTP status line.
    """
    if not line:
        msg = "connection closed before an HTTP response was received"
        raise ProtocolViolationError(msg)
    text = line.decode("iso-8859-1", errors="replace").strip()
    parts = text.split(" ", 2)
    if len(parts) < 2 or not parts[0].startswith("HTTP/") or not parts[1].isdigit():
        msg = f"invalid HTTP status line: {text[:80]!r}"
        raise ProtocolViolationError(msg)
    reason = parts[2] if len(parts) > 2 else ""
    return int(parts[1]), reason


class AiohttpProbe(Probe[HttpTarget]):
    """One request through a private ``aiohttp.ClientSession``.

    A fresh session with a ``force_close`` connector is opened per call so
    connections are never reused across iterations or workers.
    """

    async def _probe(self, target: HttpTarget, deadline: Deadline) -> ProbeOutcome:
        total = deadline.remaining()
        if total <= 0:
            raise TimeoutError
        timeout = aiohttp.ClientTimeout(
            total=total,
            sock_connect=deadline.remaining(self.config.connect_timeout),
        )
        connector = aiohttp.TCPConnector(force_close=True, limit=1)
        data = target.body.encode("utf-8") if target.method == "POST" and target.body else None

        async with (
            aiohttp.ClientSession(
                timeout=timeout,
                connector=connector,
                headers={"User-Agent": USER_AGENT},
            ) as session,
            session.request(target.method, target.url, headers=target.headers, data=data) as resp,
        ):
            body = await resp.content.read(RESPONSE_BYTE_BUDGET)
            detail = f"HTTP {resp.status} {resp.reason or ''}".rstrip()
            return ProbeSuccess(
                status_code=resp.status,
                detail=detail,
                snippet=body.decode("utf-8", errors="replace"),
            )


class RawHttpProbe(Probe[HttpTarget]):
    """HTTP/1.1 over a plain asyncio stream with ``Connection: close``.

    Reads the status line and a bounded body snippet; does not follow
    redirects.
    """

    async def _probe(self, target: HttpTarget, deadline: Deadline) -> ProbeOutcome:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(target.host, target.port),
            timeout=deadline.remaining(self.config.connect_timeout),
        )
        try:
            writer.write(self._render_request(target))
            await asyncio.wait_for(writer.drain(), timeout=deadline.remaining())

            status_line = await asyncio.wait_for(reader.readline(), timeout=deadline.remaining())
            status_code, reason = _parse_status_line(status_line)
            snippet = await self._read_snippet(reader, deadline)
            return ProbeSuccess(
                status_code=status_code,
                detail=f"HTTP {status_code} {reason}".rstrip(),
                snippet=snippet,
            )
        finally:
            await self._close_writer(writer, deadline)

    @staticmethod
    def _render_request(target: HttpTarget) -> bytes:
        body = target.body.encode("utf-8") if target.method == "POST" and target.body else b""
        lines = [
            f"{target.method} {target.request_path} HTTP/1.1",
            f"Host: {_format_host_header(target.host, target.port, 80)}",
            f"User-Agent: {USER_AGENT}",
            "Accept: */*",
            "Connection: close",
        ]
        lines.extend(f"{name}: {value}" for name, value in target.headers.items())
        if body:
            lines.append(f"Content-Length: {len(body)}")
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("latin-1", errors="replace") + body

    @staticmethod
    async def _read_snippet(reader: asyncio.StreamReader, deadline: Deadline) -> str:
        """Skip the headers and return up to RESPONSE_BYTE_BUDGET body bytes.

        The status code is already known at this point, so a slow or
        truncated body only shortens the snippet.
        """
        chunks: list[bytes] = []
        size = 0
        try:
            while True:
                header = await asyncio.wait_for(reader.readline(), timeout=deadline.remaining())
                if header in (b"\r\n", b"\n", b""):
                    break
            while size < RESPONSE_BYTE_BUDGET:
                chunk = await asyncio.wait_for(
                    reader.read(RESPONSE_BYTE_BUDGET - size),
                    timeout=deadline.remaining(),
                )
                if not chunk:
                    break
                chunks.append(chunk)
                size += len(chunk)
        except (TimeoutError, OSError, ValueError):
            pass
        return b"".join(chunks).decode("utf-8", errors="replace")
