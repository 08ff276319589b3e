"""Run counters, snapshots and progress reporting."""

from __future__ import annotations

from netprobe.metrics.counters import Counters
from netprobe.metrics.models import LatencySummary, RunCounters, RunSnapshot
from netprobe.metrics.progress import ProgressReporter, SnapshotChannel

__all__ = [
    "Counters",
    "LatencySummary",
    "ProgressReporter",
    "RunCounters",
    "RunSnapshot",
    "SnapshotChannel",
]
