"""Progress snapshots: a periodic reporter and a coalescing channel for consumers."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

from netprobe._internal.logging import get_logger
from netprobe.metrics.latency import summarize_latencies
from netprobe.metrics.models import RunSnapshot

if TYPE_CHECKING:
    from types import TracebackType

    from netprobe._internal.types import SnapshotCallback
    from netprobe.metrics.counters import Counters

logger = get_logger("metrics.progress")


class ProgressReporter:
    """Deliver snapshots of a run's counters to a single subscriber.

    Used as an async context manager around the worker barrier. While
    open, a ticker task reads ``counters`` every ``interval`` seconds and
    forwards the snapshot when ``completed`` has advanced. On exit the
    ticker is stopped and one terminal snapshot is always delivered,
    whether the block finished normally, was cancelled or raised.

    Delivered snapshots are in non-decreasing ``completed`` order and the
    terminal one is last.

    Attributes:
        final: The terminal snapshot, available after the context exits.
    """

    def __init__(
        self,
        counters: Counters,
        on_snapshot: SnapshotCallback,
        *,
        interval: float = 0.1,
    ) -> None:
        """Initialize the reporter.

        Args:
            counters: Counters shared by the run's workers.
            on_snapshot: Subscriber callback. Must not block.
            interval: Seconds between ticks. Must be positive.

        Raises:
            ValueError: If interval is not positive.
        """
        if interval <= 0:
            msg = f"interval must be positive, got {interval}"
            raise ValueError(msg)
        self._counters = counters
        self._on_snapshot = on_snapshot
        self._interval = interval
        self._started_at = time.monotonic()
        self._last_completed = -1
        self._cancelled = False
        self._ticker: asyncio.Task[None] | None = None
        self.final: RunSnapshot | None = None

    def mark_cancelled(self) -> None:
        """Flag the run as cancelled; the terminal snapshot will say so."""
        self._cancelled = True

    async def __aenter__(self) -> ProgressReporter:
        self._started_at = time.monotonic()
        self._ticker = asyncio.create_task(self._tick(), name="progress-ticker")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._ticker
            self._ticker = None

        counters = self._counters.snapshot()
        cancelled = self._cancelled or counters.completed < counters.total
        self.final = RunSnapshot.from_counters(
            counters,
            elapsed_seconds=self.elapsed,
            terminal=True,
            cancelled=cancelled,
            latency=summarize_latencies(self._counters.latencies()),
        )
        self._deliver(self.final)

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started_at

    async def _tick(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            snapshot = RunSnapshot.from_counters(
                self._counters.snapshot(),
                elapsed_seconds=self.elapsed,
            )
            if snapshot.completed > self._last_completed:
                self._deliver(snapshot)

    def _deliver(self, snapshot: RunSnapshot) -> None:
        self._last_completed = max(self._last_completed, snapshot.completed)
        try:
            self._on_snapshot(snapshot)
        except Exception:
            logger.exception("Progress subscriber failed on snapshot %s", snapshot)


class SnapshotChannel:
    """Single-slot mailbox that streams snapshots to one async consumer.

    ``publish`` replaces the pending snapshot instead of queueing it, so a
    slow consumer only ever sees the latest state and memory use is
    constant. Iteration ends after the terminal snapshot has been yielded;
    anything published after the terminal snapshot is ignored.

    ``publish`` must be called from the event loop thread.
    """

    def __init__(self) -> None:
        self._latest: RunSnapshot | None = None
        self._pending = asyncio.Event()
        self._closed = False
        self._exhausted = False

    @property
    def latest(self) -> RunSnapshot | None:
        return self._latest

    @property
    def closed(self) -> bool:
        """True once the terminal snapshot has been published."""
        return self._closed

    def publish(self, snapshot: RunSnapshot) -> None:
        if self._closed:
            return
        if (
            self._latest is not None
            and not snapshot.terminal
            and snapshot.completed < self._latest.completed
        ):
            return
        self._latest = snapshot
        self._closed = snapshot.terminal
        self._pending.set()

    def __aiter__(self) -> SnapshotChannel:
        return self

    async def __anext__(self) -> RunSnapshot:
        if self._exhausted:
            raise StopAsyncIteration
        await self._pending.wait()
        self._pending.clear()
        snapshot = self._latest
        if snapshot is None:
            raise StopAsyncIteration
        if snapshot.terminal:
            self._exhausted = True
        return snapshot
