"""Fan a run out across concurrent workers and aggregate their outcomes."""

from __future__ import annotations

import asyncio
import contextlib
import socket
import time
from typing import TYPE_CHECKING

from netprobe._internal.config import NetProbeConfig
from netprobe._internal.errors import ConfigError, TargetError
from netprobe._internal.logging import get_logger
from netprobe.metrics.counters import Counters
from netprobe.metrics.models import RunSnapshot
from netprobe.metrics.progress import ProgressReporter
from netprobe.probe import probe_for

if TYPE_CHECKING:
    from collections.abc import Callable

    from netprobe._internal.types import SnapshotCallback
    from netprobe.engine.settings import RunSettings
    from netprobe.probe import Probe, Target

logger = get_logger("engine.dispatcher")


def _ignore_snapshot(snapshot: RunSnapshot) -> None:
    """Default no-op snapshot observer."""


class Dispatcher:
    """Execute one run: a single probe, or workers x repetitions probes.

    A run with one request calls the probe directly and returns its
    classified outcome. Larger runs start ``worker_count`` asyncio tasks;
    each sends its repetitions strictly in sequence, records every outcome
    into a shared ``Counters`` and pauses ``delay_per_request_ms`` between
    requests. A ``ProgressReporter`` streams snapshots while the workers
    run and delivers the terminal snapshot after the barrier.

    Cancellation is cooperative: once ``cancel_event`` is set no worker
    starts another request, and requests already in flight finish or time
    out on their own.

    Attributes:
        config: Timeouts and progress interval.
    """

    def __init__(
        self,
        config: NetProbeConfig | None = None,
        *,
        probe_factory: Callable[[Target], Probe] | None = None,
        resolve_hosts: bool = True,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            config: Timeouts and progress interval. Defaults to NetProbeConfig().
            probe_factory: Builds the probe for a target. Defaults to
                ``probe_for`` with this dispatcher's config.
            resolve_hosts: Resolve the target host once before starting
                workers, failing the whole run if it does not resolve.
        """
        self.config = config or NetProbeConfig()
        self._probe_factory = probe_factory or (lambda target: probe_for(target, self.config))
        self._resolve_hosts = resolve_hosts

    async def run(
        self,
        target: Target,
        settings: RunSettings,
        timeout: float | None = None,
        on_snapshot: SnapshotCallback | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> RunSnapshot:
        """Execute a run and return its terminal snapshot.

        Args:
            target: What to probe.
            settings: Concurrency settings.
            timeout: Per-probe timeout in seconds. Defaults to ``config.timeout``.
            on_snapshot: Receives progress snapshots of multi-request runs,
                the terminal one last. Not called for single-request runs.
            cancel_event: Set to stop starting new requests.

        Returns:
            The terminal RunSnapshot. A malformed target or an unresolvable
            host in a multi-request run yields ``total=0`` with ``error`` set.

        Raises:
            ConfigError: If settings or timeout are out of range. Raised
                before any request is sent.
        """
        settings.validate()
        timeout = self.config.timeout if timeout is None else timeout
        if timeout <= 0:
            msg = f"timeout must be positive, got: {timeout}"
            raise ConfigError(msg)

        try:
            target.validate()
        except TargetError as exc:
            logger.warning("Run rejected: %s", exc)
            return RunSnapshot.setup_failure(str(exc))

        effective = settings.effective()
        total = effective.worker_count * effective.repetitions_per_worker
        cancel_event = cancel_event or asyncio.Event()
        probe = self._probe_factory(target)

        if total == 1:
            if cancel_event.is_set():
                return RunSnapshot(total=1, terminal=True, cancelled=True)
            start = time.monotonic()
            outcome = await probe.execute(target, timeout)
            return RunSnapshot.single(outcome, elapsed_seconds=time.monotonic() - start)

        if self._resolve_hosts:
            error = await self._resolve(target)
            if error is not None:
                logger.warning("Run rejected: %s", error)
                return RunSnapshot.setup_failure(error)

        logger.info(
            "Starting run: target=%s, workers=%d, repetitions=%d, delay=%dms, total=%d",
            target.describe(),
            effective.worker_count,
            effective.repetitions_per_worker,
            effective.delay_per_request_ms,
            total,
        )

        counters = Counters(total)
        reporter = ProgressReporter(
            counters,
            on_snapshot or _ignore_snapshot,
            interval=self.config.progress_interval,
        )
        async with reporter:
            workers = [
                asyncio.create_task(
                    self._run_worker(
                        worker_index=index,
                        probe=probe,
                        target=target,
                        settings=effective,
                        counters=counters,
                        timeout=timeout,
                        cancel_event=cancel_event,
                    ),
                    name=f"worker-{index}",
                )
                for index in range(effective.worker_count)
            ]
            try:
                await asyncio.wait(workers)
            except asyncio.CancelledError:
                # Stop new iterations but let in-flight probes release their sockets.
                cancel_event.set()
                reporter.mark_cancelled()
                await asyncio.wait(workers)
                raise
            if cancel_event.is_set():
                reporter.mark_cancelled()
            for worker in workers:
                if not worker.cancelled() and worker.exception() is not None:
                    logger.error("%s crashed", worker.get_name(), exc_info=worker.exception())

        final = reporter.final
        assert final is not None  # set by ProgressReporter.__aexit__
        logger.info(
            "Run finished: completed=%d/%d, succeeded=%d, failed=%d, cancelled=%s, %.2fs",
            final.completed,
            final.total,
            final.succeeded,
            final.failed,
            final.cancelled,
            final.elapsed_seconds,
        )
        return final

    async def _run_worker(
        self,
        *,
        worker_index: int,
        probe: Probe,
        target: Target,
        settings: RunSettings,
        counters: Counters,
        timeout: float,
        cancel_event: asyncio.Event,
    ) -> None:
        """Send this worker's repetitions one after another."""
        delay = settings.delay_seconds
        last = settings.repetitions_per_worker - 1

        for request_index in range(settings.repetitions_per_worker):
            if cancel_event.is_set():
                logger.debug("Worker %d stopping after %d requests", worker_index, request_index)
                return

            try:
                outcome = await probe.execute(target.for_request(worker_index, request_index), timeout)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.warning(
                    "Request %d of worker %d raised",
                    request_index,
                    worker_index,
                    exc_info=True,
                    extra={
                        "worker_index": worker_index,
                        "request_index": request_index,
                        "target": target.describe(),
                    },
                )
                counters.record_failure()
            else:
                if outcome.accepted:
                    counters.record_success(outcome.latency_ms)
                else:
                    counters.record_failure(outcome.latency_ms)

            if delay > 0 and request_index < last:
                with contextlib.suppress(TimeoutError):
                    await asyncio.wait_for(cancel_event.wait(), timeout=delay)

    async def _resolve(self, target: Target) -> str | None:
        """Resolve the target host once; return an error message if it does not exist."""
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.getaddrinfo(target.host, target.port, type=socket.SOCK_STREAM),
                timeout=self.config.connect_timeout,
            )
        except socket.gaierror as exc:
            return f"Host not found: {target.host} ({exc})"
        except (TimeoutError, OSError):
            logger.debug("Could not pre-resolve %s; workers will report per request", target.host)
        return None
