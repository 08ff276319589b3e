"""Probe targets: an HTTP(S) URL or a raw TCP endpoint."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field, replace
from typing import Literal
from urllib.parse import urlsplit

from netprobe._internal.errors import TargetError
from netprobe._internal.types import Headers

HttpMethod = Literal["GET", "POST"]

_HTTP_METHODS = ("GET", "POST")
_DEFAULT_PORTS = {"http": 80, "https": 443}


@dataclass(frozen=True)
class HttpTarget:
    """An HTTP or HTTPS request description.

    Attributes:
        url: Absolute ``http://`` or ``https://`` URL.
        method: HTTP method, GET or POST.
        headers: Extra request headers.
        body: Request body sent with POST requests.
    """

    url: str
    method: HttpMethod = "GET"
    headers: Headers = field(default_factory=dict)
    body: str | None = None

    @property
    def scheme(self) -> str:
        return urlsplit(self.url).scheme.lower()

    @property
    def host(self) -> str:
        return urlsplit(self.url).hostname or ""

    @property
    def port(self) -> int:
        parts = urlsplit(self.url)
        return parts.port or _DEFAULT_PORTS.get(parts.scheme.lower(), 80)

    @property
    def request_path(self) -> str:
        """Path plus query string, as written on the HTTP request line."""
        parts = urlsplit(self.url)
        path = parts.path or "/"
        return f"{path}?{parts.query}" if parts.query else path

    def validate(self) -> None:
        """Check that the URL is usable.

        Raises:
            TargetError: If the scheme, host, port or method is invalid.
        """
        try:
            parts = urlsplit(self.url)
            port = parts.port
        except ValueError as exc:
            msg = f"Malformed URL {self.url!r}: {exc}"
            raise TargetError(msg) from None

        if parts.scheme.lower() not in _DEFAULT_PORTS:
            msg = f"URL must start with http:// or https://, got: {self.url!r}"
            raise TargetError(msg)
        if not parts.hostname:
            msg = f"URL has no host: {self.url!r}"
            raise TargetError(msg)
        if port is not None and not 0 < port < 65536:
            msg = f"Port out of range in {self.url!r}"
            raise TargetError(msg)
        if self.method not in _HTTP_METHODS:
            msg = f"Unsupported HTTP method {self.method!r}, expected one of {_HTTP_METHODS}"
            raise TargetError(msg)

    def for_request(self, worker_index: int, request_index: int) -> HttpTarget:
        """HTTP requests are sent unchanged on every iteration."""
        return self

    def describe(self) -> str:
        return f"{self.method} {self.url}"


@dataclass(frozen=True)
class TcpTarget:
    """A raw TCP endpoint and the payload to write to it.

    The payload is sent as one JSON document followed by a newline. Text
    that is not a JSON object is wrapped as ``{"message": ..., "timestamp": ...}``
    using ``submitted_at`` as the timestamp.

    Attributes:
        host: Hostname or IP address.
        port: TCP port.
        payload: Raw payload text entered by the caller.
        submitted_at: Submission time in epoch milliseconds.
        stamp: Extra fields merged into the JSON document for one request.
    """

    host: str
    port: int
    payload: str = ""
    submitted_at: int = field(default_factory=lambda: int(time.time() * 1000))
    stamp: dict[str, int] = field(default_factory=dict)

    def validate(self) -> None:
        """Check that the endpoint is usable.

        Raises:
            TargetError: If the host is empty or the port is out of range.
        """
        if not self.host.strip():
            msg = "TCP target needs a host"
            raise TargetError(msg)
        if not 0 < self.port < 65536:
            msg = f"TCP port must be between 1 and 65535, got: {self.port}"
            raise TargetError(msg)

    def document(self) -> dict[str, object]:
        """Return the JSON object that will be sent."""
        try:
            parsed = json.loads(self.payload)
        except ValueError:
            parsed = None
        if isinstance(parsed, dict):
            doc: dict[str, object] = parsed
        else:
            doc = {"message": self.payload, "timestamp": self.submitted_at}
        doc.update(self.stamp)
        return doc

    def encode_payload(self) -> bytes:
        return (json.dumps(self.document(), ensure_ascii=False) + "\n").encode("utf-8")

    def for_request(self, worker_index: int, request_index: int) -> TcpTarget:
        """Return a copy whose payload identifies one request of a multi-request run."""
        return replace(
            self,
            stamp={
                "timestamp": int(time.time() * 1000),
                "threadIndex": worker_index,
                "requestIndex": request_index,
            },
        )

    def describe(self) -> str:
        return f"tcp://{self.host}:{self.port}"


Target = HttpTarget | TcpTarget


def parse_target(text: str, *, payload: str = "") -> Target:
    """Build a target from a URL or a ``host:port`` string.

    Args:
        text: ``http(s)://...`` URL or ``host:port``.
        payload: Payload for TCP targets; ignored for URLs.

    Returns:
        An HttpTarget or TcpTarget.

    Raises:
        TargetError: If the text is neither a URL nor ``host:port``.
    """
    text = text.strip()
    if "://" in text:
        http_target = HttpTarget(url=text)
        http_target.validate()
        return http_target

    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        msg = f"Expected a URL or host:port, got: {text!r}"
        raise TargetError(msg)
    try:
        port = int(port_text)
    except ValueError:
        msg = f"Port must be an integer, got: {port_text!r}"
        raise TargetError(msg) from None

    tcp_target = TcpTarget(host=host.strip("[]"), port=port, payload=payload)
    tcp_target.validate()
    return tcp_target
