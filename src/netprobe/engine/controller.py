"""Run lifecycle: validation, supersession, cancellation and caller-visible state."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import TYPE_CHECKING

from netprobe._internal.config import NetProbeConfig, load_config
from netprobe._internal.errors import TargetError
from netprobe._internal.logging import get_logger
from netprobe.engine.dispatcher import Dispatcher
from netprobe.metrics.models import RunSnapshot
from netprobe.metrics.progress import SnapshotChannel
from netprobe.probe import ProbeFailure, probe_for

if TYPE_CHECKING:
    from netprobe._internal.types import SnapshotCallback
    from netprobe.engine.settings import RunSettings
    from netprobe.probe import ProbeOutcome, Target

logger = get_logger("engine.controller")


class RunState(Enum):
    """State machine for a run.

    IDLE -> RUNNING -> SUCCEEDED | FAILED | CANCELLED
    """

    IDLE = auto()
    RUNNING = auto()
    SUCCEEDED = auto()
    FAILED = auto()
    CANCELLED = auto()


@dataclass(frozen=True)
class RunStatus:
    """What a presentation layer shows for the current run.

    Attributes:
        state: Lifecycle state.
        progress: Latest snapshot of a multi-request run.
        outcome: Classified outcome of a single-request run or connectivity check.
        error: Message for FAILED runs.
    """

    state: RunState = RunState.IDLE
    progress: RunSnapshot | None = None
    outcome: ProbeOutcome | None = None
    error: str | None = None

    @property
    def is_loading(self) -> bool:
        """True while a run is in progress; a display shows a busy indicator."""
        return self.state is RunState.RUNNING

    @property
    def is_terminal(self) -> bool:
        return self.state in (RunState.SUCCEEDED, RunState.FAILED, RunState.CANCELLED)

    @classmethod
    def from_snapshot(cls, snapshot: RunSnapshot) -> RunStatus:
        """Map a snapshot onto a status.

        A multi-request run that completed is SUCCEEDED even if every
        request failed; the counts carry the per-request results.
        """
        if not snapshot.terminal:
            return cls(RunState.RUNNING, progress=snapshot)
        if snapshot.error is not None:
            return cls(RunState.FAILED, error=snapshot.error)
        if snapshot.outcome is not None:
            outcome = snapshot.outcome
            if outcome.accepted:
                return cls(RunState.SUCCEEDED, outcome=outcome)
            message = outcome.message if isinstance(outcome, ProbeFailure) else outcome.detail
            return cls(RunState.FAILED, outcome=outcome, error=message)
        if snapshot.cancelled:
            return cls(RunState.CANCELLED, progress=snapshot if snapshot.total > 1 else None)
        return cls(RunState.SUCCEEDED, progress=snapshot)


@dataclass
class _ActiveRun:
    run_id: int
    channel: SnapshotChannel = field(default_factory=SnapshotChannel)
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)
    task: asyncio.Task[RunSnapshot] | None = None


class RunController:
    """Entry point for connectivity checks and load runs.

    At most one run is current. Starting a new run supersedes the current
    one: it stops scheduling new requests, its in-flight requests drain in
    the background, and its snapshots no longer affect ``status``.

    Must be used from within a running event loop.

    Attributes:
        config: Timeouts and progress interval.
    """

    def __init__(
        self,
        config: NetProbeConfig | None = None,
        *,
        dispatcher: Dispatcher | None = None,
    ) -> None:
        """Initialize the controller.

        Args:
            config: Configuration. Defaults to ``load_config()``.
            dispatcher: Dispatcher to run with. Defaults to one built from ``config``.
        """
        self.config = config or load_config()
        self._dispatcher = dispatcher or Dispatcher(self.config)
        self._status = RunStatus()
        self._current: _ActiveRun | None = None
        self._draining: set[asyncio.Task[RunSnapshot]] = set()
        self._next_run_id = 1

    @property
    def status(self) -> RunStatus:
        """Latest state of the current (or last) run."""
        return self._status

    @property
    def is_running(self) -> bool:
        """True from start_run until the current run's terminal status is published."""
        return self._current is not None

    async def check_connectivity(self, target: Target) -> RunStatus:
        """Probe a target once with the configured timeouts.

        TCP targets are only connected to; nothing is sent.

        Args:
            target: What to check.

        Returns:
            Terminal RunStatus: SUCCEEDED with the outcome, or FAILED.
        """
        try:
            target.validate()
        except TargetError as exc:
            return self._publish_status(RunStatus(RunState.FAILED, error=str(exc)))

        if self._current is None:
            self._status = RunStatus(RunState.RUNNING)
        probe = probe_for(target, self.config, connect_only=True)
        outcome = await probe.execute(target, self.config.timeout)
        return self._publish_status(RunStatus.from_snapshot(RunSnapshot.single(outcome)))

    def start_run(self, target: Target, settings: RunSettings) -> SnapshotChannel:
        """Start a run and return its snapshot stream.

        Iterate the returned channel with ``async for``; it yields progress
        snapshots (coalesced to the latest) and ends with the terminal one.
        Single-request runs yield only the terminal snapshot.

        Args:
            target: What to probe.
            settings: Concurrency settings.

        Returns:
            The run's SnapshotChannel.

        Raises:
            ConfigError: If settings are invalid. Nothing is started and a
                current run is left untouched.
        """
        return self._launch(target, settings).channel

    async def run(
        self,
        target: Target,
        settings: RunSettings,
        on_snapshot: SnapshotCallback | None = None,
    ) -> RunStatus:
        """Start a run, wait for it to finish and return its terminal status.

        Args:
            target: What to probe.
            settings: Concurrency settings.
            on_snapshot: Optional callback for every streamed snapshot.

        Returns:
            Terminal RunStatus of this run, even if it was superseded.
        """
        active = self._launch(target, settings)
        async for snapshot in active.channel:
            if on_snapshot is not None:
                on_snapshot(snapshot)
        assert active.task is not None
        return RunStatus.from_snapshot(await active.task)

    def cancel(self) -> bool:
        """Cancel the current run.

        Returns:
            True if a run was active.
        """
        if self._current is None:
            return False
        logger.info(
            "Cancelling run %d", self._current.run_id, extra={"run_id": self._current.run_id}
        )
        self._current.cancel_event.set()
        return True

    async def drain(self) -> None:
        """Wait until the current run and all superseded runs have finished."""
        tasks = set(self._draining)
        if self._current is not None and self._current.task is not None:
            tasks.add(self._current.task)
        if tasks:
            await asyncio.wait(tasks)

    def _launch(self, target: Target, settings: RunSettings) -> _ActiveRun:
        settings.validate()
        self._supersede()

        active = _ActiveRun(run_id=self._next_run_id)
        self._next_run_id += 1
        self._current = active
        self._status = RunStatus(RunState.RUNNING)
        active.task = asyncio.create_task(
            self._drive(active, target, settings),
            name=f"run-{active.run_id}",
        )
        return active

    def _supersede(self) -> None:
        previous = self._current
        if previous is None or previous.task is None:
            return
        logger.info(
            "Run %d superseded; letting in-flight requests drain",
            previous.run_id,
            extra={"run_id": previous.run_id},
        )
        previous.cancel_event.set()
        self._draining.add(previous.task)
        previous.task.add_done_callback(self._draining.discard)
        self._current = None

    async def _drive(self, active: _ActiveRun, target: Target, settings: RunSettings) -> RunSnapshot:
        def _on_snapshot(snapshot: RunSnapshot) -> None:
            self._observe(active, snapshot)

        try:
            final = await self._dispatcher.run(
                target,
                settings,
                self.config.timeout,
                _on_snapshot,
                cancel_event=active.cancel_event,
            )
        except asyncio.CancelledError:
            latest = active.channel.latest or RunSnapshot(total=settings.total_requests)
            self._observe(active, replace(latest, terminal=True, cancelled=True))
            raise
        except Exception as exc:
            logger.exception("Run %d failed", active.run_id, extra={"run_id": active.run_id})
            final = RunSnapshot.setup_failure(f"{type(exc).__name__}: {exc}")

        self._observe(active, final)
        return final

    def _observe(self, active: _ActiveRun, snapshot: RunSnapshot) -> None:
        active.channel.publish(snapshot)
        if self._current is not active:
            return
        if snapshot.terminal:
            self._current = None
            self._status = RunStatus.from_snapshot(snapshot)
        else:
            self._status = RunStatus(RunState.RUNNING, progress=snapshot)

    def _publish_status(self, status: RunStatus) -> RunStatus:
        if self._current is None:
            self._status = status
        return status
