"""Custom exception hierarchy for netprobe."""

from __future__ import annotations


class NetProbeError(Exception):
    """Base exception for all netprobe errors.

    All custom exceptions in netprobe inherit from this class, making it
    easy to catch any netprobe-specific error with a single except clause.
    """


class ConfigError(NetProbeError):
    """Raised when configuration is invalid or missing.

    Examples:
        - Worker count or repetitions below 1.
        - Negative per-request delay.
        - Environment variable with a non-numeric value.
    """


class TargetError(NetProbeError):
    """Raised when a probe target is malformed.

    Examples:
        - URL without an ``http``/``https`` scheme or without a host.
        - TCP port outside 1-65535.
        - Unsupported HTTP method.
    """


class ProtocolViolationError(NetProbeError):
    """Raised when a peer answers with something that is not the expected protocol.

    Typically seen when speaking plain HTTP to a TLS port or to a service
    that is not an HTTP server at all.
    """
