"""Latency distribution summaries."""

from __future__ import annotations

import numpy as np

from netprobe.metrics.models import LatencySummary


def summarize_latencies(latencies: list[float]) -> LatencySummary:
    """Compute min/max/mean and p50/p95/p99 of latencies in milliseconds.

    Args:
        latencies: Per-request latencies. May be empty.

    Returns:
        A LatencySummary; all zeros for an empty input.
    """
    if not latencies:
        return LatencySummary()

    arr = np.array(latencies, dtype=np.float64)
    p50, p95, p99 = np.percentile(arr, [50.0, 95.0, 99.0])
    return LatencySummary(
        count=int(arr.size),
        minimum=float(np.min(arr)),
        maximum=float(np.max(arr)),
        mean=float(np.mean(arr)),
        p50=float(p50),
        p95=float(p95),
        p99=float(p99),
    )
