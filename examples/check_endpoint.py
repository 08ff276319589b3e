"""Connectivity check from Python, the programmatic twin of ``netprobe check``.

Run it with:

    python examples/check_endpoint.py https://example.com
    python examples/check_endpoint.py 127.0.0.1:9000
"""

from __future__ import annotations

import asyncio
import sys

from netprobe import RunController, RunState, parse_target


async def main(text: str) -> int:
    controller = RunController()
    status = await controller.check_connectivity(parse_target(text))
    if status.state is RunState.SUCCEEDED:
        print(f"reachable: {status.outcome}")
        return 0
    print(f"unreachable: {status.error}")
    return 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "https://example.com")))
