"""Telnet Client Module.

This module provides an asyncio-based telnet client for driving the command
line of network devices: option negotiation, settle reads, and login, enable
and command flows that track the device prompt.

Example usage:
    ```python
    import asyncio
    from netdev_telnet.clients.telnet import TelnetConnection

    async def main():
        async with await TelnetConnection.connect_to("switch.example.com", 23) as conn:
            await conn.login("admin", "secret", timeout_ms=5000)
            print(await conn.command("show version"))

    asyncio.run(main())
    ```
"""

from __future__ import annotations

from .client import TelnetConnection
from .errors import (
    CommandPromptNotFoundError,
    NoEnablePasswordPromptError,
    NoLoginPromptError,
    NoPasswordPromptError,
    PromptError,
    SessionStateError,
    TargetNotFoundError,
    TelnetError,
    UnusualPromptCharacterError,
)
from .negotiate import TelnetNegotiator
from .session import Session, SessionState
from .settle import CompletionPolicy, QuietPeriod
from .stream import AsyncioByteStream, ByteStream

__all__ = [
    "AsyncioByteStream",
    "ByteStream",
    "CommandPromptNotFoundError",
    "CompletionPolicy",
    "NoEnablePasswordPromptError",
    "NoLoginPromptError",
    "NoPasswordPromptError",
    "PromptError",
    "QuietPeriod",
    "Session",
    "SessionState",
    "SessionStateError",
    "TargetNotFoundError",
    "TelnetConnection",
    "TelnetError",
    "TelnetNegotiator",
    "UnusualPromptCharacterError",
]
