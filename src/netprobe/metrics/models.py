"""Run counter and snapshot dataclasses."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from netprobe.probe.outcome import ProbeFailure, ProbeSuccess

if TYPE_CHECKING:
    from netprobe.probe.outcome import ProbeOutcome

__all__ = [
    "LatencySummary",
    "RunCounters",
    "RunSnapshot",
]


@dataclass(frozen=True)
class RunCounters:
    """Consistent point-in-time read of a run's counters.

    ``completed == succeeded + failed <= total`` holds for every instance
    produced by ``Counters.snapshot``.

    Attributes:
        total: Requests planned for the run (workers x repetitions).
        completed: Requests finished so far.
        succeeded: Requests counted as successful.
        failed: Requests counted as failed.
    """

    total: int
    completed: int = 0
    succeeded: int = 0
    failed: int = 0


@dataclass(frozen=True)
class LatencySummary:
    """Latency distribution of a run, in milliseconds."""

    count: int = 0
    minimum: float = 0.0
    maximum: float = 0.0
    mean: float = 0.0
    p50: float = 0.0
    p95: float = 0.0
    p99: float = 0.0


@dataclass(frozen=True)
class RunSnapshot:
    """Immutable view of a run, emitted during the run and once at its end.

    Attributes:
        total: Requests planned for the run; 0 for runs that failed to start.
        completed: Requests finished.
        succeeded: Requests counted as successful.
        failed: Requests counted as failed.
        terminal: True for the final snapshot of a run.
        cancelled: True if the run was cancelled before all requests ran.
        outcome: Classified outcome of a single-request run.
        error: Run-level failure, set when no worker was started.
        elapsed_seconds: Seconds since the run started.
        latency: Latency summary, present on terminal multi-request snapshots.
    """

    total: int
    completed: int = 0
    succeeded: int = 0
    failed: int = 0
    terminal: bool = False
    cancelled: bool = False
    outcome: ProbeOutcome | None = None
    error: str | None = None
    elapsed_seconds: float = 0.0
    latency: LatencySummary | None = None

    @classmethod
    def from_counters(
        cls,
        counters: RunCounters,
        *,
        elapsed_seconds: float = 0.0,
        terminal: bool = False,
        cancelled: bool = False,
        latency: LatencySummary | None = None,
    ) -> RunSnapshot:
        return cls(
            total=counters.total,
            completed=counters.completed,
            succeeded=counters.succeeded,
            failed=counters.failed,
            terminal=terminal,
            cancelled=cancelled,
            elapsed_seconds=elapsed_seconds,
            latency=latency,
        )

    @classmethod
    def single(cls, outcome: ProbeOutcome, *, elapsed_seconds: float = 0.0) -> RunSnapshot:
        """Terminal snapshot of a one-request run."""
        ok = outcome.accepted
        return cls(
            total=1,
            completed=1,
            succeeded=int(ok),
            failed=int(not ok),
            terminal=True,
            outcome=outcome,
            elapsed_seconds=elapsed_seconds,
        )

    @classmethod
    def setup_failure(cls, error: str) -> RunSnapshot:
        """Terminal snapshot of a run that failed before any worker started."""
        return cls(total=0, terminal=True, error=error)

    @property
    def is_single(self) -> bool:
        return self.outcome is not None

    @property
    def error_rate(self) -> float:
        return self.failed / self.completed if self.completed else 0.0

    def to_dict(self) -> dict[str, object]:
        """Observation surface handed to presentation layers."""
        data: dict[str, object] = {
            "total_requests": self.total,
            "completed_requests": self.completed,
            "success_count": self.succeeded,
            "failure_count": self.failed,
            "terminal": self.terminal,
            "cancelled": self.cancelled,
        }
        if isinstance(self.outcome, ProbeSuccess) and self.outcome.status_code is not None:
            data["status_code"] = self.outcome.status_code
        if isinstance(self.outcome, ProbeFailure):
            data["error"] = self.outcome.message
            data["failure_kind"] = self.outcome.kind.value
        if self.error is not None:
            data["error"] = self.error
        if self.latency is not None:
            data["latency_ms"] = {
                "min": self.latency.minimum,
                "max": self.latency.maximum,
                "mean": self.latency.mean,
                "p50": self.latency.p50,
                "p95": self.latency.p95,
                "p99": self.latency.p99,
            }
        return data
