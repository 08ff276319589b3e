"""Tests for ProgressReporter and SnapshotChannel."""

from __future__ import annotations

import asyncio

import pytest

from netprobe.metrics.counters import Counters
from netprobe.metrics.models import RunSnapshot
from netprobe.metrics.progress import ProgressReporter, SnapshotChannel


class TestProgressReporter:
    """Tests for periodic and terminal delivery."""

    async def test_terminal_snapshot_delivered_last(self) -> None:
        counters = Counters(4)
        seen: list[RunSnapshot] = []

        async with ProgressReporter(counters, seen.append, interval=0.01) as reporter:
            for _ in range(4):
                counters.record_success(1.0)
                await asyncio.sleep(0.03)

        assert seen
        assert seen[-1].terminal
        assert [s for s in seen if s.terminal] == [seen[-1]]
        assert seen[-1] is reporter.final
        assert seen[-1].completed == 4
        assert not seen[-1].cancelled
        assert seen[-1].latency is not None
        assert seen[-1].latency.count == 4

    async def test_completed_is_non_decreasing(self) -> None:
        counters = Counters(20)
        seen: list[RunSnapshot] = []

        async with ProgressReporter(counters, seen.append, interval=0.005):
            for i in range(20):
                if i % 2:
                    counters.record_failure()
                else:
                    counters.record_success()
                await asyncio.sleep(0.002)

        completed = [s.completed for s in seen]
        assert completed == sorted(completed)
        assert all(s.completed == s.succeeded + s.failed for s in seen)

    async def test_idle_ticks_are_not_repeated(self) -> None:
        counters = Counters(2)
        seen: list[RunSnapshot] = []

        async with ProgressReporter(counters, seen.append, interval=0.01):
            counters.record_success()
            await asyncio.sleep(0.1)

        progress = [s for s in seen if not s.terminal]
        assert len(progress) <= 1

    async def test_terminal_delivered_when_block_raises(self) -> None:
        counters = Counters(3)
        seen: list[RunSnapshot] = []

        with pytest.raises(RuntimeError):
            async with ProgressReporter(counters, seen.append, interval=0.01):
                counters.record_success()
                raise RuntimeError("worker crashed")

        assert seen[-1].terminal
        assert seen[-1].cancelled
        assert seen[-1].completed == 1

    async def test_mark_cancelled(self) -> None:
        counters = Counters(1)
        seen: list[RunSnapshot] = []

        async with ProgressReporter(counters, seen.append, interval=0.01) as reporter:
            counters.record_success()
            reporter.mark_cancelled()

        assert seen[-1].cancelled

    async def test_subscriber_errors_do_not_break_run(self) -> None:
        def _explode(snapshot: RunSnapshot) -> None:
            raise ValueError("bad subscriber")

        counters = Counters(1)
        async with ProgressReporter(counters, _explode, interval=0.01) as reporter:
            counters.record_success()
            await asyncio.sleep(0.03)

        assert reporter.final is not None
        assert reporter.final.terminal

    def test_non_positive_interval_rejected(self) -> None:
        with pytest.raises(ValueError, match="interval"):
            ProgressReporter(Counters(1), lambda s: None, interval=0)


class TestSnapshotChannel:
    """Tests for the coalescing channel."""

    async def test_iteration_ends_after_terminal(self) -> None:
        channel = SnapshotChannel()
        channel.publish(RunSnapshot(total=2, completed=1, succeeded=1))
        received = [await channel.__anext__()]
        channel.publish(RunSnapshot(total=2, completed=2, succeeded=2, terminal=True))
        received.extend([s async for s in channel])

        assert [s.completed for s in received] == [1, 2]
        assert received[-1].terminal
        assert channel.closed

    async def test_slow_consumer_sees_only_latest(self) -> None:
        channel = SnapshotChannel()
        for completed in range(1, 6):
            channel.publish(RunSnapshot(total=10, completed=completed, succeeded=completed))
        channel.publish(RunSnapshot(total=10, completed=10, succeeded=10, terminal=True))

        received = [s async for s in channel]
        assert len(received) == 1
        assert received[0].terminal

    async def test_stale_progress_is_dropped(self) -> None:
        channel = SnapshotChannel()
        channel.publish(RunSnapshot(total=10, completed=5, succeeded=5))
        channel.publish(RunSnapshot(total=10, completed=3, succeeded=3))
        assert channel.latest is not None
        assert channel.latest.completed == 5

    async def test_publish_after_terminal_is_ignored(self) -> None:
        channel = SnapshotChannel()
        terminal = RunSnapshot(total=1, completed=1, succeeded=1, terminal=True)
        channel.publish(terminal)
        channel.publish(RunSnapshot(total=1))
        assert channel.latest is terminal

    async def test_consumer_waits_for_publish(self) -> None:
        channel = SnapshotChannel()

        async def _consume() -> list[RunSnapshot]:
            return [s async for s in channel]

        consumer = asyncio.create_task(_consume())
        await asyncio.sleep(0.01)
        assert not consumer.done()

        channel.publish(RunSnapshot(total=1, completed=1, succeeded=1, terminal=True))
        received = await asyncio.wait_for(consumer, timeout=1.0)
        assert len(received) == 1
