"""Classified result of a single probe."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class FailureKind(Enum):
    """Why a probe failed, in classification precedence order."""

    HOST_UNRESOLVABLE = "host_unresolvable"
    CONNECTION_REFUSED = "connection_refused"
    TIMEOUT = "timeout"
    PROTOCOL_ERROR = "protocol_error"
    OTHER = "other"


@dataclass(frozen=True)
class ProbeSuccess:
    """The peer was reached and answered (or accepted our bytes).

    Attributes:
        status_code: HTTP status code, or None for TCP probes.
        detail: Short human-readable summary, e.g. ``"HTTP 200 OK"``.
        snippet: Start of the response body, at most 4096 bytes decoded.
        latency_ms: Wall-clock duration of the probe.
    """

    status_code: int | None
    detail: str
    snippet: str = ""
    latency_ms: float = 0.0

    @property
    def accepted(self) -> bool:
        """True for TCP successes and for HTTP status 200-299."""
        return self.status_code is None or 200 <= self.status_code <= 299


@dataclass(frozen=True)
class ProbeFailure:
    """The probe did not complete.

    Attributes:
        kind: Classified failure kind.
        message: Human-readable description.
        latency_ms: Time spent before the failure.
    """

    kind: FailureKind
    message: str
    latency_ms: float = 0.0

    @property
    def accepted(self) -> bool:
        return False


ProbeOutcome = ProbeSuccess | ProbeFailure
