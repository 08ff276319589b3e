"""Concurrency-safe success/failure counters shared by all workers of a run."""

from __future__ import annotations

import threading

from netprobe.metrics.models import RunCounters


class Counters:
    """Aggregate of ``{completed, succeeded, failed}`` for one run.

    Each record call updates ``completed`` and one of ``succeeded``/``failed``
    under a single ``threading.Lock``, so ``snapshot`` never observes one
    without the other. Updates never await; snapshots may be read from
    any thread.

    Attributes:
        total: Number of requests planned for the run.
    """

    def __init__(self, total: int) -> None:
        """Initialize the counters.

        Args:
            total: Requests planned for the run. Must be non-negative.

        Raises:
            ValueError: If total is negative.
        """
        if total < 0:
            msg = f"total must be >= 0, got {total}"
            raise ValueError(msg)
        self.total = total
        self._lock = threading.Lock()
        self._succeeded = 0
        self._failed = 0
        self._latencies: list[float] = []

    def record_success(self, latency_ms: float | None = None) -> None:
        """Count one successful request."""
        self._record(success=True, latency_ms=latency_ms)

    def record_failure(self, latency_ms: float | None = None) -> None:
        """Count one failed request."""
        self._record(success=False, latency_ms=latency_ms)

    def _record(self, *, success: bool, latency_ms: float | None) -> None:
        with self._lock:
            if self._succeeded + self._failed >= self.total:
                msg = f"all {self.total} requests already recorded"
                raise RuntimeError(msg)
            if success:
                self._succeeded += 1
            else:
                self._failed += 1
            if latency_ms is not None:
                self._latencies.append(latency_ms)

    def snapshot(self) -> RunCounters:
        """Return a consistent point-in-time copy of the counters."""
        with self._lock:
            return RunCounters(
                total=self.total,
                completed=self._succeeded + self._failed,
                succeeded=self._succeeded,
                failed=self._failed,
            )

    def latencies(self) -> list[float]:
        """Return a copy of the recorded latencies in milliseconds."""
        with self._lock:
            return list(self._latencies)
