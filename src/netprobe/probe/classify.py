"""Map exceptions raised during a probe onto a FailureKind."""

from __future__ import annotations

import errno
import re
import socket
import ssl
from typing import TYPE_CHECKING

import aiohttp

from netprobe._internal.errors import ProtocolViolationError
from netprobe.probe.outcome import FailureKind, ProbeFailure

if TYPE_CHECKING:
    from collections.abc import Iterator

SCHEME_PORT_HINT = "check that the scheme and port match (HTTP usually 80, HTTPS usually 443)"

_REFUSED_ERRNOS = frozenset({errno.ECONNREFUSED, errno.ECONNRESET})
_ERRNO_IN_MESSAGE = re.compile(r"\[Errno (\d+)\]")

_PROTOCOL_ERRORS: tuple[type[BaseException], ...] = (
    ssl.SSLError,
    aiohttp.ClientSSLError,
    aiohttp.ClientResponseError,
    aiohttp.ClientPayloadError,
    aiohttp.ServerDisconnectedError,
    ProtocolViolationError,
)


def _chain(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and everything it wraps (aiohttp ``os_error``, causes, contexts)."""
    seen: set[int] = set()
    pending = [exc]
    while pending:
        current = pending.pop(0)
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        for inner in (getattr(current, "os_error", None), current.__cause__, current.__context__):
            if isinstance(inner, BaseException):
                pending.append(inner)


def _describe(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _is_unresolvable(exc: BaseException) -> bool:
    return isinstance(exc, socket.gaierror | socket.herror)


def _is_refused(exc: BaseException) -> bool:
    if isinstance(exc, ConnectionRefusedError | ConnectionResetError):
        return True
    if isinstance(exc, ssl.SSLError):
        return False
    if not isinstance(exc, OSError):
        return False
    if exc.errno is not None:
        return exc.errno in _REFUSED_ERRNOS
    # asyncio folds several failed addresses into one OSError without an errno;
    # it is a refusal only if every address was refused or reset.
    codes = {int(code) for code in _ERRNO_IN_MESSAGE.findall(str(exc))}
    return bool(codes) and codes <= _REFUSED_ERRNOS


def _is_timeout(exc: BaseException) -> bool:
    return isinstance(exc, TimeoutError)


def _is_protocol(exc: BaseException) -> bool:
    return isinstance(exc, _PROTOCOL_ERRORS)


def classify_exception(exc: BaseException) -> ProbeFailure:
    """Classify an exception raised while probing.

    The first matching rule wins: unresolved host, refused or reset
    connection, timeout, protocol negotiation failure, anything else.

    Args:
        exc: The exception raised by the transport.

    Returns:
        A ProbeFailure with zero latency; the caller fills in timing.
    """
    links = list(_chain(exc))

    for link in links:
        if _is_unresolvable(link):
            return ProbeFailure(FailureKind.HOST_UNRESOLVABLE, f"Host not found: {_describe(link)}")
    for link in links:
        if _is_refused(link):
            return ProbeFailure(FailureKind.CONNECTION_REFUSED, f"Connection refused: {_describe(link)}")
    for link in links:
        if _is_timeout(link):
            return ProbeFailure(FailureKind.TIMEOUT, "Timed out waiting for the target")
    for link in links:
        if _is_protocol(link):
            return ProbeFailure(
                FailureKind.PROTOCOL_ERROR,
                f"Protocol error ({_describe(link)}); {SCHEME_PORT_HINT}",
            )
    return ProbeFailure(FailureKind.OTHER, f"{type(exc).__name__}: {_describe(exc)}")
