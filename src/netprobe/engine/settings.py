"""Run settings: how many workers, how many repetitions each, and pacing."""

from __future__ import annotations

from dataclasses import dataclass, replace

from netprobe._internal.errors import ConfigError


@dataclass(frozen=True)
class RunSettings:
    """Concurrency settings for one run.

    ``enabled=False`` means a single request regardless of the other
    counts; ``effective()`` returns the settings the dispatcher applies.

    Attributes:
        enabled: Whether multi-request mode is on.
        worker_count: Concurrent workers. Must be >= 1.
        repetitions_per_worker: Requests each worker sends in sequence. Must be >= 1.
        delay_per_request_ms: Pause after each request of a worker. Must be >= 0.
    """

    enabled: bool = False
    worker_count: int = 1
    repetitions_per_worker: int = 1
    delay_per_request_ms: int = 0

    def validate(self) -> None:
        """Reject out-of-range values.

        Raises:
            ConfigError: If a count is below 1 or the delay is negative.
        """
        if self.worker_count < 1:
            msg = f"worker_count must be >= 1, got: {self.worker_count}"
            raise ConfigError(msg)
        if self.repetitions_per_worker < 1:
            msg = f"repetitions_per_worker must be >= 1, got: {self.repetitions_per_worker}"
            raise ConfigError(msg)
        if self.delay_per_request_ms < 0:
            msg = f"delay_per_request_ms must be >= 0, got: {self.delay_per_request_ms}"
            raise ConfigError(msg)

    def effective(self) -> RunSettings:
        """Return the settings with disabled mode normalised to one request."""
        if self.enabled:
            return self
        return replace(self, worker_count=1, repetitions_per_worker=1)

    @property
    def total_requests(self) -> int:
        eff = self.effective()
        return eff.worker_count * eff.repetitions_per_worker

    @property
    def delay_seconds(self) -> float:
        return self.delay_per_request_ms / 1000
