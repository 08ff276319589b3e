"""Event loop bootstrap for blocking entry points."""

from __future__ import annotations

import asyncio
import sys
from typing import TYPE_CHECKING, TypeVar

from netprobe._internal.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Coroutine

logger = get_logger("engine.runtime")

T = TypeVar("T")


def run_blocking(main: Coroutine[object, object, T]) -> T:
    """Run a coroutine to completion, on uvloop when it is available.

    Falls back to the default asyncio event loop on Windows or if uvloop
    is not installed.

    Args:
        main: Coroutine to run.

    Returns:
        The coroutine's result.
    """
    if sys.platform != "win32":
        try:
            import uvloop
        except ImportError:
            logger.debug("uvloop not available, using default asyncio event loop")
        else:
            logger.debug("Running on uvloop")
            return uvloop.run(main)
    return asyncio.run(main)
