"""Tests for the asyncio byte stream and a full session against a loopback device."""

from __future__ import annotations

from asyncio import (
    StreamReader,
    StreamWriter,
    sleep as asyncio_sleep,
    start_server,
    timeout as asyncio_timeout,
)
from typing import TYPE_CHECKING
from unittest.mock import patch

import pytest
from pytest_asyncio import fixture as asyncio_fixture

from netdev_telnet.clients.telnet.client import TelnetConnection
from netdev_telnet.clients.telnet.session import SessionState
from netdev_telnet.clients.telnet.stream import AsyncioByteStream
from netdev_telnet.clients.telnet.types import TelnetCommand, TelnetOption

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable, Generator

LOOPBACK = "127.0.0.1"
QUIET_MS = 200


@pytest.fixture(autouse=True)
def mock_logging() -> Generator[None]:
    """Mock logging to avoid RichHandler output during tests."""
    with (
        patch("netdev_telnet.clients.telnet.client.log"),
        patch("netdev_telnet.clients.telnet.negotiate.log"),
        patch("netdev_telnet.clients.telnet.stream.log"),
    ):
        yield


async def serve(handler: Callable[[StreamReader, StreamWriter], Awaitable[None]]) -> AsyncGenerator[int]:
    """Run `handler` for each connection on a loopback port and yield the port."""

    async def guarded(reader: StreamReader, writer: StreamWriter) -> None:
        try:
            await handler(reader, writer)
        finally:
            writer.close()

    server = await start_server(guarded, LOOPBACK, 0)
    try:
        yield server.sockets[0].getsockname()[1]
    finally:
        server.close()
        await server.wait_closed()


async def greet_and_echo(reader: StreamReader, writer: StreamWriter) -> None:
    """Send a greeting, then echo everything until the client hangs up."""
    writer.write(b"hello")
    await writer.drain()
    while data := await reader.read(1024):
        writer.write(data)
        await writer.drain()


received: list[bytes] = []


async def fake_switch(reader: StreamReader, writer: StreamWriter) -> None:
    """Play a switch that negotiates SGA, asks for credentials and runs one command."""
    writer.write(bytes([TelnetCommand.IAC, TelnetCommand.DO, TelnetOption.SGA]) + b"\r\nUsername: ")
    await writer.drain()
    received.append(await reader.readexactly(3))

    received.append(await reader.readline())
    writer.write(b"Password: ")
    await writer.drain()

    received.append(await reader.readline())
    writer.write(b"\r\n\r\nlab-sw1>")
    await writer.drain()

    command = await reader.readline()
    received.append(command)
    writer.write(command.rstrip(b"\n") + b"\r\nuptime is 5 days\r\nlab-sw1>")
    await writer.drain()

    await reader.read()


@asyncio_fixture
async def echo_port() -> AsyncGenerator[int]:
    """Fixture providing the port of a greeting echo server."""
    async for port in serve(greet_and_echo):
        yield port


@asyncio_fixture
async def switch_port() -> AsyncGenerator[int]:
    """Fixture providing the port of a scripted switch."""
    received.clear()
    async for port in serve(fake_switch):
        yield port


async def wait_for_bytes(stream: AsyncioByteStream, count: int) -> None:
    """Wait until at least `count` bytes are buffered."""
    async with asyncio_timeout(2):
        while stream.available() < count:
            await asyncio_sleep(0.01)


def drain(stream: AsyncioByteStream) -> bytes:
    """Pop every buffered byte."""
    data = bytearray()
    while (byte := stream.read_byte()) is not None:
        data.append(byte)
    return bytes(data)


@pytest.mark.asyncio
async def test_stream_reads_and_writes(echo_port: int) -> None:
    """Test buffering, byte reads and writes over a real socket."""
    stream = await AsyncioByteStream.open(LOOPBACK, echo_port, 2.0)
    try:
        if not stream.is_connected:
            pytest.fail("Stream not connected after open")

        await wait_for_bytes(stream, 5)
        if stream.available() != 5:
            pytest.fail(f"Expected 5 buffered bytes, got {stream.available()}")
        if drain(stream) != b"hello":
            pytest.fail("Greeting not read back correctly")
        if stream.read_byte() is not None or stream.available() != 0:
            pytest.fail("Empty stream should report nothing available")

        stream.write(b"\xff\x00ping")
        await wait_for_bytes(stream, 6)
        if drain(stream) != b"\xff\x00ping":
            pytest.fail("Echoed data does not match")
    finally:
        await stream.close()


@pytest.mark.asyncio
async def test_stream_close(echo_port: int) -> None:
    """Test that close is idempotent and later writes are ignored."""
    stream = await AsyncioByteStream.open(LOOPBACK, echo_port, 2.0)
    await stream.close()
    if stream.is_connected:
        pytest.fail("Stream still connected after close")
    await stream.close()
    try:
        stream.write(b"late")
    except OSError as e:
        pytest.fail(f"Write after close raised: {e}")


@pytest.mark.asyncio
async def test_stream_sees_peer_hang_up() -> None:
    """Test that the stream reports disconnection when the peer closes."""

    async def hang_up(_: StreamReader, writer: StreamWriter) -> None:
        writer.write(b"bye")
        await writer.drain()

    async for port in serve(hang_up):
        stream = await AsyncioByteStream.open(LOOPBACK, port, 2.0)
        async with asyncio_timeout(2):
            await stream.protocol.closed
        if stream.is_connected:
            pytest.fail("Stream still connected after peer closed")
        if drain(stream) != b"bye":
            pytest.fail("Data sent before hang up was lost")
        await stream.close()


@pytest.mark.asyncio
async def test_stream_open_refused() -> None:
    """Test that a refused connection raises OSError."""
    async for port in serve(greet_and_echo):
        closed_port = port
    with pytest.raises(OSError):  # noqa: PT011
        await AsyncioByteStream.open(LOOPBACK, closed_port, 2.0)


@pytest.mark.asyncio
async def test_connect_refused_returns_false() -> None:
    """Test that the connection reports a refused connect as False."""
    async for port in serve(greet_and_echo):
        closed_port = port
    conn = TelnetConnection(host=LOOPBACK, port=closed_port, connect_timeout=2.0)
    if await conn.connect():
        pytest.fail("connect() should fail against a closed port")
    if conn.session.state != SessionState.DISCONNECTED:
        pytest.fail(f"Unexpected state after failed connect: {conn.session.state!r}")


@pytest.mark.asyncio
async def test_session_against_loopback_switch(switch_port: int) -> None:
    """Test negotiation, login and a command end to end."""
    async with await TelnetConnection.connect_to(LOOPBACK, switch_port, connect_timeout=2.0) as conn:
        transcript = await conn.login("admin", "secret", timeout_ms=QUIET_MS)
        if transcript is None or not transcript.startswith("\r\nUsername: "):
            pytest.fail(f"Unexpected login transcript: {transcript!r}")
        if conn.prompt != "lab-sw1>" or conn.is_enabled():
            pytest.fail(f"Unexpected prompt after login: {conn.prompt!r}")

        with conn.timeout_scope(QUIET_MS):
            output = await conn.command("show uptime")
        if output is None or "uptime is 5 days" not in output or not output.endswith("lab-sw1>"):
            pytest.fail(f"Unexpected command output: {output!r}")

    expected = [
        bytes([TelnetCommand.IAC, TelnetCommand.WILL, TelnetOption.SGA]),
        b"admin\n",
        b"secret\n",
        b"show uptime\n",
    ]
    if received != expected:
        pytest.fail(f"Switch received unexpected data.\nExpected: {expected!r}\nGot: {received!r}")
    if conn.is_connected or conn.session.state != SessionState.DISCONNECTED:
        pytest.fail("Connection still open after leaving the context")


@pytest.mark.asyncio
async def test_read_after_device_hangs_up() -> None:
    """Test that output written just before the device closes is still read."""

    async def close_with_banner(_: StreamReader, writer: StreamWriter) -> None:
        writer.write(b"% Connection closed by foreign host\r\n")
        await writer.drain()

    async for port in serve(close_with_banner):
        conn = await TelnetConnection.connect_to(LOOPBACK, port, connect_timeout=2.0)
        if not isinstance(conn.stream, AsyncioByteStream):
            pytest.fail(f"Unexpected stream type: {type(conn.stream)!r}")
        async with asyncio_timeout(2):
            await conn.stream.protocol.closed

        with conn.timeout_scope(QUIET_MS):
            data = await conn.read()
            again = await conn.read()
        if data != "% Connection closed by foreign host\r\n":
            pytest.fail(f"Output sent before hang up was lost, got: {data!r}")
        if again is not None:
            pytest.fail(f"Drained hung up connection should read None, got: {again!r}")
        if await conn.connect():
            pytest.fail("Hung up connection should not be reopened")
        await conn.close()
