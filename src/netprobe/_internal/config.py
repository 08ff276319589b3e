"""Configuration loading for netprobe."""

from __future__ import annotations

import os
from dataclasses import dataclass

from netprobe._internal.errors import ConfigError

# Upper bound on bytes kept from any response.
RESPONSE_BYTE_BUDGET = 4096


@dataclass(frozen=True)
class NetProbeConfig:
    """Global netprobe configuration.

    Attributes:
        timeout: Overall per-probe timeout in seconds.
        connect_timeout: Connection establishment timeout in seconds.
            Never exceeds ``timeout`` when applied.
        socket_timeout: How long a TCP probe waits for a response after
            sending its payload, in seconds.
        progress_interval: Seconds between progress snapshots.
    """

    timeout: float = 10.0
    connect_timeout: float = 5.0
    socket_timeout: float = 5.0
    progress_interval: float = 0.1


def _positive_float(name: str, default: str) -> float:
    raw = os.environ.get(name, default)
    try:
        value = float(raw)
    except ValueError:
        msg = f"{name} must be a number, got: {raw!r}"
        raise ConfigError(msg) from None

    if value <= 0:
        msg = f"{name} must be positive, got: {value}"
        raise ConfigError(msg)
    return value


def load_config() -> NetProbeConfig:
    """Load configuration from environment variables with defaults.

    Environment variables:
        NETPROBE_TIMEOUT: Overall probe timeout in seconds (default: 10.0).
        NETPROBE_CONNECT_TIMEOUT: Connect timeout in seconds (default: 5.0).
        NETPROBE_SOCKET_TIMEOUT: TCP read timeout in seconds (default: 5.0).
        NETPROBE_PROGRESS_INTERVAL: Progress tick in seconds (default: 0.1).

    Returns:
        Populated NetProbeConfig instance.

    Raises:
        ConfigError: If an environment variable has an invalid value.
    """
    return NetProbeConfig(
        timeout=_positive_float("NETPROBE_TIMEOUT", "10.0"),
        connect_timeout=_positive_float("NETPROBE_CONNECT_TIMEOUT", "5.0"),
        socket_timeout=_positive_float("NETPROBE_SOCKET_TIMEOUT", "5.0"),
        progress_interval=_positive_float("NETPROBE_PROGRESS_INTERVAL", "0.1"),
    )
