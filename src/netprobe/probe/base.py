"""Abstract base class for probes."""

from __future__ import annotations

import asyncio
import contextlib
import time
from abc import ABC, abstractmethod
from dataclasses import replace
from typing import TYPE_CHECKING, Generic, TypeVar

from netprobe._internal.config import NetProbeConfig
from netprobe._internal.logging import get_logger
from netprobe.probe.classify import classify_exception

if TYPE_CHECKING:
    from netprobe.probe.outcome import ProbeOutcome
    from netprobe.probe.targets import HttpTarget, TcpTarget

logger = get_logger("probe")

T = TypeVar("T", "HttpTarget", "TcpTarget")

CLOSE_WAIT_CAP = 1.0


class Deadline:
    """Remaining time budget of one probe, shared by its connect, write and read phases."""

    def __init__(self, timeout: float) -> None:
        self._expires = time.monotonic() + timeout

    def remaining(self, cap: float | None = None) -> float:
        """Seconds left, optionally capped; never negative."""
        left = max(self._expires - time.monotonic(), 0.0)
        return left if cap is None else min(left, cap)


class Probe(ABC, Generic[T]):
    """Execute exactly one unit of work against a target.

    Subclasses implement ``_probe``, bounding every network phase with the
    ``Deadline`` they are given and releasing their connection on every exit
    path. ``execute`` turns any transport exception into a classified
    ``ProbeFailure`` and stamps the latency; it never raises for network
    errors.

    Attributes:
        config: Timeouts used for the connect and read phases.
    """

    def __init__(self, config: NetProbeConfig | None = None) -> None:
        self.config = config or NetProbeConfig()

    async def execute(self, target: T, timeout: float) -> ProbeOutcome:
        """Run one probe.

        Args:
            target: What to probe.
            timeout: Overall time budget in seconds.

        Returns:
            ProbeSuccess or ProbeFailure, with ``latency_ms`` filled in.
        """
        start = time.monotonic()
        try:
            outcome = await self._probe(target, Deadline(timeout))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            outcome = classify_exception(exc)
        latency_ms = (time.monotonic() - start) * 1000
        outcome = replace(outcome, latency_ms=latency_ms)
        logger.debug("%s -> %s (%.1fms)", target.describe(), outcome, latency_ms)
        return outcome

    @abstractmethod
    async def _probe(self, target: T, deadline: Deadline) -> ProbeOutcome:
        """Perform the network I/O for one probe.

        Raises:
            Exception: Any transport error; classified by ``execute``.
        """

    @staticmethod
    async def _close_writer(writer: asyncio.StreamWriter, deadline: Deadline) -> None:
        """Close a stream writer without letting cleanup errors mask the outcome.

        The wait for the close handshake is bounded by what is left of the
        probe's deadline, and never longer than CLOSE_WAIT_CAP seconds.
        """
        writer.close()
        with contextlib.suppress(OSError, TimeoutError):
            await asyncio.wait_for(
                writer.wait_closed(), timeout=deadline.remaining(CLOSE_WAIT_CAP)
            )
