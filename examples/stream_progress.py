"""Concurrent load run with a progress stream.

Starts 4 workers sending 25 requests each and prints every snapshot the
run streams. Press Ctrl+C to cancel; in-flight requests still finish.

    python examples/stream_progress.py http://localhost:8080/health
"""

from __future__ import annotations

import asyncio
import signal
import sys

from netprobe import RunController, RunSettings, parse_target, setup_logging


async def main(url: str) -> None:
    setup_logging()
    controller = RunController()
    asyncio.get_running_loop().add_signal_handler(signal.SIGINT, controller.cancel)

    settings = RunSettings(
        enabled=True,
        worker_count=4,
        repetitions_per_worker=25,
        delay_per_request_ms=50,
    )
    async for snapshot in controller.start_run(parse_target(url), settings):
        print(
            f"{snapshot.completed:>4}/{snapshot.total} "
            f"ok={snapshot.succeeded} failed={snapshot.failed}"
            + (" (cancelled)" if snapshot.cancelled else "")
        )

    await controller.drain()
    print(f"final state: {controller.status.state.name}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8080/health"))
