"""Shared type aliases for netprobe."""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from netprobe.metrics.models import RunSnapshot

# HTTP headers dictionary.
Headers = dict[str, str]

# Observer invoked with every progress snapshot.
SnapshotCallback = Callable[["RunSnapshot"], None]
