"""netprobe: probe HTTP(S) and TCP endpoints and generate concurrent load."""

from __future__ import annotations

from netprobe._internal.config import NetProbeConfig, load_config
from netprobe._internal.errors import ConfigError, NetProbeError, TargetError
from netprobe._internal.logging import setup_logging
from netprobe._version import __version__
from netprobe.engine.controller import RunController, RunState, RunStatus
from netprobe.engine.dispatcher import Dispatcher
from netprobe.engine.settings import RunSettings
from netprobe.metrics.models import RunCounters, RunSnapshot
from netprobe.probe import (
    FailureKind,
    HttpTarget,
    ProbeFailure,
    ProbeOutcome,
    ProbeSuccess,
    TcpTarget,
    parse_target,
    probe_for,
)

__all__ = [
    "ConfigError",
    "Dispatcher",
    "FailureKind",
    "HttpTarget",
    "NetProbeConfig",
    "NetProbeError",
    "ProbeFailure",
    "ProbeOutcome",
    "ProbeSuccess",
    "RunController",
    "RunCounters",
    "RunSettings",
    "RunSnapshot",
    "RunState",
    "RunStatus",
    "TargetError",
    "TcpTarget",
    "__version__",
    "load_config",
    "parse_target",
    "probe_for",
    "setup_logging",
]
