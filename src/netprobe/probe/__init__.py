"""Single-request probes and the factory that picks one per target."""

from __future__ import annotations

from typing import TYPE_CHECKING

from netprobe.probe.base import Probe
from netprobe.probe.http import AiohttpProbe, RawHttpProbe
from netprobe.probe.outcome import FailureKind, ProbeFailure, ProbeOutcome, ProbeSuccess
from netprobe.probe.targets import HttpTarget, Target, TcpTarget, parse_target
from netprobe.probe.tcp import TcpProbe

if TYPE_CHECKING:
    from netprobe._internal.config import NetProbeConfig

__all__ = [
    "AiohttpProbe",
    "FailureKind",
    "HttpTarget",
    "Probe",
    "ProbeFailure",
    "ProbeOutcome",
    "ProbeSuccess",
    "RawHttpProbe",
    "Target",
    "TcpProbe",
    "TcpTarget",
    "parse_target",
    "probe_for",
]


def probe_for(
    target: Target,
    config: NetProbeConfig | None = None,
    *,
    connect_only: bool = False,
) -> Probe:
    """Return the probe implementation for a target.

    HTTPS goes through aiohttp (TLS), plain HTTP through ``RawHttpProbe``
    and TCP targets through ``TcpProbe``.

    Args:
        target: The target to probe.
        config: Timeouts for the probe.
        connect_only: For TCP targets, only test that a connection opens.

    Returns:
        A Probe accepting ``target``.
    """
    if isinstance(target, TcpTarget):
        return TcpProbe(config, connect_only=connect_only)
    if target.scheme == "https":
        return AiohttpProbe(config)
    return RawHttpProbe(config)
