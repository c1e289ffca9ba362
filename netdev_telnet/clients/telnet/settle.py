"""Completion policies deciding when a burst of device output has finished.

Telnet gives no end-of-response marker, so a read is considered complete once
the device has been quiet for a while. The policy is kept separate from the
connection so a different completion rule can be plugged in without touching
the session flows.
"""

from __future__ import annotations

from asyncio import sleep as asyncio_sleep
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from netdev_telnet.constants import DEFAULT_TIMEOUT_MS

if TYPE_CHECKING:
    from .negotiate import TelnetNegotiator
    from .stream import ByteStream


class CompletionPolicy(Protocol):
    """Strategy for collecting one complete chunk of output."""

    timeout_ms: int

    async def collect(self, stream: ByteStream, negotiator: TelnetNegotiator) -> bytes:
        """Read and parse until the chunk is judged complete."""
        ...


@dataclass(slots=True)
class QuietPeriod:
    """Complete once no new bytes arrive within `timeout_ms`.

    A slow or bursty device can split one logical response over several
    collections; callers that need a specific end marker poll on top of this.
    """

    timeout_ms: int = field(default=DEFAULT_TIMEOUT_MS)

    async def collect(self, stream: ByteStream, negotiator: TelnetNegotiator) -> bytes:
        """Drain the stream until it stays quiet for one full window.

        Always waits at least one window, even if nothing arrives.

        Returns:
            The literal data received, telnet commands removed
        """
        buffer = bytearray()
        while True:
            negotiator.parse(stream, buffer)
            await asyncio_sleep(self.timeout_ms / 1000)
            if stream.available() <= 0:
                break
        return bytes(buffer)
