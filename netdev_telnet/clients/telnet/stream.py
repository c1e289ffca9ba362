"""Byte stream adapter module.

The telnet parser works on "whatever has arrived so far" rather than awaiting
reads, so the stream it consumes needs to expose how many bytes are buffered.
asyncio's StreamReader keeps that private, so this module buffers incoming data
itself with a small asyncio.Protocol and presents it through the ByteStream
interface.
"""

from __future__ import annotations

from asyncio import (
    BaseTransport,
    Future,
    Protocol,
    Transport,
    get_running_loop as asyncio_get_running_loop,
    timeout as asyncio_timeout,
)
from dataclasses import dataclass
from typing import Protocol as TypingProtocol, Self, cast

from netdev_telnet.console import log
from netdev_telnet.constants import DEFAULT_CONNECT_TIMEOUT


class ByteStream(TypingProtocol):
    """Interface the telnet connection expects from its byte channel."""

    @property
    def is_connected(self) -> bool:
        """Whether the channel is still open."""
        ...

    def available(self) -> int:
        """Return the number of bytes that can be read without waiting."""
        ...

    def read_byte(self) -> int | None:
        """Return the next buffered byte, or None if nothing is ready."""
        ...

    def write(self, data: bytes) -> None:
        """Send raw bytes."""
        ...

    async def close(self) -> None:
        """Close the channel, safe to call more than once."""
        ...


class BufferingProtocol(Protocol):
    """asyncio protocol that collects received bytes into a buffer."""

    def __init__(self) -> None:
        """Initialise an empty buffer and a future resolved on disconnect."""
        self.buffer = bytearray()
        self.transport: Transport | None = None
        self.closed: Future[None] = asyncio_get_running_loop().create_future()

    def connection_made(self, transport: BaseTransport) -> None:
        """Store the transport once connected."""
        self.transport = cast("Transport", transport)

    def data_received(self, data: bytes) -> None:
        """Append incoming data to the buffer."""
        self.buffer.extend(data)

    def eof_received(self) -> bool:
        """Let the transport close itself when the peer finishes sending.

        Returns:
            False so the transport closes
        """
        log.debug("Peer sent EOF")
        return False

    def connection_lost(self, exc: Exception | None) -> None:
        """Forget the transport and wake anyone waiting on close."""
        if exc is not None:
            log.debug("Connection lost: %s", exc)
        self.transport = None
        if not self.closed.done():
            self.closed.set_result(None)


@dataclass(slots=True)
class AsyncioByteStream:
    """ByteStream backed by an asyncio transport.

    Examples:
        ```python
        stream = await AsyncioByteStream.open("switch.example.com", 23)
        stream.write(b"show clock\\n")
        ```
    """

    protocol: BufferingProtocol

    @classmethod
    async def open(cls, host: str, port: int, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT) -> Self:
        """Open a TCP connection and wrap it.

        Args:
            host: The hostname or IP address to connect to
            port: The TCP port to connect to
            connect_timeout: Connection timeout in seconds

        Returns:
            A connected stream

        Raises:
            TimeoutError: If the connection is not established in time
            OSError: If the connection is refused or the host is unreachable
        """
        loop = asyncio_get_running_loop()
        async with asyncio_timeout(connect_timeout):
            _, protocol = await loop.create_connection(BufferingProtocol, host, port)
        return cls(protocol=protocol)

    @property
    def is_connected(self) -> bool:
        """Check if the underlying transport is open."""
        transport = self.protocol.transport
        return transport is not None and not transport.is_closing()

    def available(self) -> int:
        """Return the number of buffered bytes."""
        return len(self.protocol.buffer)

    def read_byte(self) -> int | None:
        """Pop the next buffered byte.

        Returns:
            The byte value, or None if the buffer is empty
        """
        buffer = self.protocol.buffer
        if not buffer:
            return None
        byte = buffer[0]
        del buffer[0]
        return byte

    def write(self, data: bytes) -> None:
        """Write raw bytes, ignored once the transport has gone."""
        if self.is_connected and self.protocol.transport is not None:
            self.protocol.transport.write(data)

    async def close(self) -> None:
        """Close the transport and wait for the connection to drop."""
        transport = self.protocol.transport
        if transport is None:
            return
        transport.close()
        await self.protocol.closed
