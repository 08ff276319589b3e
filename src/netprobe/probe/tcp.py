"""Raw TCP probe: connect, send the payload, try one bounded read."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from netprobe._internal.config import RESPONSE_BYTE_BUDGET
from netprobe.probe.base import Deadline, Probe
from netprobe.probe.outcome import ProbeSuccess
from netprobe.probe.targets import TcpTarget

if TYPE_CHECKING:
    from netprobe._internal.config import NetProbeConfig
    from netprobe.probe.outcome import ProbeOutcome

NO_RESPONSE = "sent, no response"


class TcpProbe(Probe[TcpTarget]):
    """Send a payload over a fresh TCP connection.

    Success means the connection was established and the payload written.
    A peer that stays silent or closes without answering still counts as
    success; only failing to connect or a transport error is a failure.

    Attributes:
        connect_only: Skip the write and read; only test reachability.
    """

    def __init__(self, config: NetProbeConfig | None = None, *, connect_only: bool = False) -> None:
        super().__init__(config)
        self.connect_only = connect_only

    async def _probe(self, target: TcpTarget, deadline: Deadline) -> ProbeOutcome:
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(target.host, target.port),
            timeout=deadline.remaining(self.config.connect_timeout),
        )
        try:
            if self.connect_only:
                return ProbeSuccess(status_code=None, detail="connected")

            writer.write(target.encode_payload())
            await asyncio.wait_for(writer.drain(), timeout=deadline.remaining())

            try:
                response = await asyncio.wait_for(
                    reader.read(RESPONSE_BYTE_BUDGET),
                    timeout=deadline.remaining(self.config.socket_timeout),
                )
            except TimeoutError:
                response = b""

            if not response:
                return ProbeSuccess(status_code=None, detail=NO_RESPONSE)
            return ProbeSuccess(
                status_code=None,
                detail="sent, response received",
                snippet=response.decode("utf-8", errors="replace").strip(),
            )
        finally:
            await self._close_writer(writer, deadline)
