"""Asynchronous telnet session client for network devices.

This module provides TelnetConnection, a client for driving the command line of
routers and switches over telnet. Reads are "settle" reads: a read returns once
the device has been quiet for the configured window. Login, enable and command
flows are built by composing settle reads with a bounded poll that waits for a
piece of text (or the device prompt) to show up.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from re import MULTILINE, compile as re_compile
from typing import TYPE_CHECKING, Any, Self

from netdev_telnet.console import log
from netdev_telnet.constants import (
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_PROMPT_PATTERN,
    DEFAULT_READ_UNTIL_LIMIT,
    ENABLE_COMMAND,
    ENCODING,
    HP_ANY_KEY_TEXT,
    HP_LOGOUT_COMMAND,
    HP_LOGOUT_CONFIRM,
    HP_LOGOUT_CONFIRM_TEXT,
    HP_PASSWORD_TEXT,
    HP_USERNAME_TEXT,
    IAC_BYTE,
    INPUT_PROMPT_SUFFIX,
    MAX_PORT,
    MIN_PORT,
    NEWLINE,
    PROMPT_TRIM_CHARS,
)

from .errors import (
    CommandPromptNotFoundError,
    NoEnablePasswordPromptError,
    NoLoginPromptError,
    NoPasswordPromptError,
    TargetNotFoundError,
)
from .negotiate import TelnetNegotiator
from .session import Session, extract_prompt, prompt_is_enabled
from .settle import QuietPeriod
from .stream import AsyncioByteStream
from .types import TelnetOption

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator
    from re import Pattern

    from .settle import CompletionPolicy
    from .stream import ByteStream


def _ends_with_input_prompt(text: str) -> bool:
    """Check whether output finishes with a prompt asking for input, e.g. 'Password: '."""
    return text.rstrip().endswith(INPUT_PROMPT_SUFFIX)


@dataclass(slots=True)
class TelnetConnection:
    """Telnet session with a network device.

    Only one operation may run at a time on a connection. Once closed, reads
    return None, writes are ignored and `connect` refuses to reopen; open a new
    connection to continue. Output the device sent before hanging up can still
    be read.

    Examples:
        Log in, escalate and run a command:

        ```python
        async with await TelnetConnection.connect_to("switch.example.com", 23) as conn:
            await conn.login("admin", "secret", timeout_ms=5000)
            if not conn.is_enabled():
                await conn.enable("enable-secret", timeout_ms=5000)
            output = await conn.command("show version")
        ```

        Manual connection management:

        ```python
        conn = TelnetConnection("switch.example.com", 23)
        try:
            await conn.connect()
            await conn.password_only_login("secret", timeout_ms=5000)
            output = await conn.command("show clock")
        finally:
            await conn.close()
        ```
    """

    host: str
    port: int
    connect_timeout: float = field(default=DEFAULT_CONNECT_TIMEOUT)
    read_until_limit: int = field(default=DEFAULT_READ_UNTIL_LIMIT)
    prompt_pattern: Pattern[str] = field(default=DEFAULT_PROMPT_PATTERN)
    trim_chars: str = field(default=PROMPT_TRIM_CHARS)
    keep_partial: bool = field(default=False)
    completion: CompletionPolicy = field(default_factory=QuietPeriod)
    stream: ByteStream | None = field(default=None)

    # Negotiation handler
    negotiator: TelnetNegotiator = field(init=False)

    session: Session = field(init=False, default_factory=Session)

    # Set by close(), a closed connection is never reopened
    closed: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        """Validate the port and set up the negotiator."""
        if not MIN_PORT <= self.port <= MAX_PORT:
            msg = f"Port must be between {MIN_PORT} and {MAX_PORT}, got {self.port}"
            raise ValueError(msg)
        self.negotiator = TelnetNegotiator(keep_partial=self.keep_partial)
        if self.is_connected:
            self.session = Session.connected()

    @classmethod
    async def connect_to(
        cls, host: str, port: int, connect_timeout: float = DEFAULT_CONNECT_TIMEOUT, **kwargs: Any
    ) -> Self:
        """Create and connect to a telnet server in one step.

        Args:
            host: The hostname or IP address of the telnet server
            port: The port number of the telnet server
            connect_timeout: Connection timeout in seconds
            **kwargs: Additional parameters to pass to the TelnetConnection constructor

        Returns:
            A connected TelnetConnection instance

        Raises:
            ConnectionError: If the connection attempt fails
        """
        conn = cls(host=host, port=port, connect_timeout=connect_timeout, **kwargs)
        if not await conn.connect():
            msg = f"Failed to connect to {host}:{port}"
            raise ConnectionError(msg)
        return conn

    async def __aenter__(self) -> Self:
        """Enter the async context manager, connecting if needed.

        Raises:
            ConnectionError: If the connection attempt fails
        """
        if not self.is_connected and not await self.connect():
            msg = f"Failed to connect to {self.host}:{self.port}"
            raise ConnectionError(msg)
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Exit the async context manager, closing the connection."""
        await self.close()

    @property
    def is_connected(self) -> bool:
        """Check if the client is currently connected."""
        return self.stream is not None and self.stream.is_connected

    @property
    def go_ahead_suppressed(self) -> bool:
        """Check if Suppress Go Ahead has been agreed in either direction."""
        negotiator = self.negotiator
        return negotiator.local_enabled(TelnetOption.SGA) or negotiator.remote_enabled(TelnetOption.SGA)

    @property
    def prompt(self) -> str:
        """The last captured device prompt, empty if none yet."""
        return self.session.prompt

    @property
    def timeout_ms(self) -> int:
        """Quiet period in milliseconds that ends a read."""
        return self.completion.timeout_ms

    @timeout_ms.setter
    def timeout_ms(self, value: int) -> None:
        self.completion.timeout_ms = value

    @contextmanager
    def timeout_scope(self, timeout_ms: int | None) -> Iterator[None]:
        """Temporarily use a different quiet period, restored on every exit path.

        Args:
            timeout_ms: The quiet period to use, or None to leave it unchanged
        """
        if timeout_ms is None:
            yield
            return
        previous = self.timeout_ms
        self.timeout_ms = timeout_ms
        try:
            yield
        finally:
            self.timeout_ms = previous

    async def connect(self) -> bool:
        """Establish the telnet connection.

        A connection that was closed, or whose peer hung up, is never
        reopened; create a new TelnetConnection instead.

        Returns:
            True if connection was successful, False otherwise.
        """
        if self.is_connected:
            return True
        if self.closed or self.stream is not None:
            log.warning("Connection to %s:%d already closed, not reopening", self.host, self.port)
            return False

        try:
            log.info("Connecting with telnet to %s:%d", self.host, self.port)
            self.stream = await AsyncioByteStream.open(self.host, self.port, self.connect_timeout)
        except (TimeoutError, ConnectionRefusedError, OSError):
            log.exception("Telnet connection error")
            return False
        else:
            self.session = Session.connected()
            log.debug("Connected with telnet to %s:%d", self.host, self.port)
            return True

    async def close(self) -> None:
        """Close the telnet connection, safe to call more than once."""
        self.closed = True
        if self.stream is None:
            return
        try:
            await self.stream.close()
        except OSError:
            log.exception("Error closing telnet connection")
        finally:
            self.stream = None
            self.session = self.session.disconnected()
            log.debug("Closed telnet connection to %s:%d", self.host, self.port)

    def write(self, text: str) -> None:
        """Send text, doubling any IAC bytes so they arrive as data."""
        if not self.is_connected or self.stream is None:
            return

        data = text.encode(ENCODING, errors="replace")
        if IAC_BYTE in data:
            data = data.replace(bytes([IAC_BYTE]), bytes([IAC_BYTE, IAC_BYTE]))
        self.stream.write(data)

    def write_line(self, text: str, newline: str = NEWLINE) -> None:
        """Send text followed by a newline.

        Args:
            text: The line to send
            newline: The newline character(s) to append
        """
        self.write(text + newline)

    @property
    def is_readable(self) -> bool:
        """Check if a read can still return data.

        Output the device sent before hanging up stays readable until drained.
        """
        return self.stream is not None and (self.stream.is_connected or self.stream.available() > 0)

    async def read(self) -> str | None:
        """Read until the device has been quiet for one full window.

        Returns:
            The text received with telnet commands removed, or None if not
            connected and nothing is left buffered
        """
        if not self.is_readable or self.stream is None:
            return None

        data = await self.completion.collect(self.stream, self.negotiator)
        if data:
            log.debug("Received %d bytes from %s:%d", len(data), self.host, self.port)
        return data.decode(ENCODING)

    async def read_until(self, target: str) -> str | None:
        """Keep reading until `target` appears in the accumulated output.

        Any non-empty read restarts the retry budget, so a device that keeps
        talking is waited on indefinitely; only `read_until_limit` consecutive
        empty reads give up.

        Args:
            target: Text to wait for, matched as a plain substring

        Returns:
            All text read including the target, or None if not connected

        Raises:
            TargetNotFoundError: If the device goes quiet before the target appears
        """
        if not self.is_readable:
            return None
        text = await self.read() or ""
        return await self._poll_for(text, target, lambda: TargetNotFoundError(target))

    async def command(self, text: str, prompt: str | None = None) -> str | None:
        """Send a command and read until the prompt comes back.

        Args:
            text: The command line to send
            prompt: Prompt to wait for, defaults to the captured session prompt

        Returns:
            The command output including the echoed command and the prompt,
            or None if not connected

        Raises:
            SessionStateError: If no prompt was given and none has been captured
            CommandPromptNotFoundError: If the device goes quiet before the prompt appears
        """
        if not self.is_connected:
            return None
        expected = prompt or self.session.require_prompt()

        self.write_line(text)
        output = await self.read() or ""
        return await self._poll_for(output, expected, lambda: CommandPromptNotFoundError(text, expected))

    async def _poll_for(self, text: str, target: str, not_found: Callable[[], TargetNotFoundError]) -> str:
        """Append further reads to `text` until it contains `target`.

        Raises:
            TargetNotFoundError: Built by `not_found` once the retry budget runs out
        """
        counter = self.read_until_limit
        while target not in text:
            chunk = await self.read() or ""
            if chunk:
                counter = self.read_until_limit
            else:
                counter -= 1
                if counter < 1:
                    raise not_found()
            text += chunk
        return text

    async def login(
        self,
        username: str,
        password: str,
        timeout_ms: int | None = None,
        prompt_pattern: Pattern[str] | str | None = None,
    ) -> str | None:
        """Log in through a username and password dialogue and capture the prompt.

        Args:
            username: Account name sent at the login prompt
            password: Sent at the password prompt
            timeout_ms: Quiet period to use during the login, restored afterwards
            prompt_pattern: Pattern used to pick the prompt out of the final output

        Returns:
            The full login transcript, or None if not connected

        Raises:
            NoLoginPromptError: If the first output does not end with ':'
            NoPasswordPromptError: If the output after the username does not end with ':'
        """
        if not self.is_connected:
            return None

        with self.timeout_scope(timeout_ms):
            transcript = await self.read() or ""
            if not _ends_with_input_prompt(transcript):
                raise NoLoginPromptError

            self.write_line(username)
            transcript += await self.read() or ""
            if not _ends_with_input_prompt(transcript):
                raise NoPasswordPromptError

            self.write_line(password)
            transcript += await self.read() or ""

        self._capture_prompt(transcript, prompt_pattern)
        log.info("Logged in to %s:%d as %s, prompt %r", self.host, self.port, username, self.prompt)
        return transcript

    async def password_only_login(
        self,
        password: str,
        timeout_ms: int | None = None,
        prompt_pattern: Pattern[str] | str | None = None,
    ) -> str | None:
        """Log in to a device that only asks for a password, e.g. a Cisco line password.

        Returns:
            The full login transcript, or None if not connected

        Raises:
            NoPasswordPromptError: If the first output does not end with ':'
        """
        if not self.is_connected:
            return None

        with self.timeout_scope(timeout_ms):
            transcript = await self.read() or ""
            if not _ends_with_input_prompt(transcript):
                raise NoPasswordPromptError

            self.write_line(password)
            transcript += await self.read() or ""

        self._capture_prompt(transcript, prompt_pattern)
        log.info("Logged in to %s:%d with password, prompt %r", self.host, self.port, self.prompt)
        return transcript

    async def hp_generic_login(
        self,
        username: str,
        password: str,
        send_space: bool = True,
        timeout_ms: int | None = None,
    ) -> str | None:
        """Log in to an HP ProCurve style switch.

        These switches fill their output with escape sequences, so no prompt is
        captured and prompt endings are not checked; call `capture_prompt`
        afterwards before using `command`.

        Args:
            username: Account name, skipped when empty
            password: Sent at the "Password:" prompt
            send_space: Wait for "Press any key to continue" and answer it first
            timeout_ms: Quiet period to use during the login, restored afterwards

        Returns:
            Output read up to the password prompt, or None if not connected

        Raises:
            TargetNotFoundError: If an expected prompt never appears
        """
        if not self.is_connected:
            return None

        with self.timeout_scope(timeout_ms):
            transcript = ""
            if send_space:
                transcript += await self.read_until(HP_ANY_KEY_TEXT) or ""
                self.write_line(" ")

            if username:
                transcript += await self.read_until(HP_USERNAME_TEXT) or ""
                self.write_line(username)

            transcript += await self.read_until(HP_PASSWORD_TEXT) or ""
            self.write_line(password)

        self.session = self.session.with_prompt(None)
        log.info("Logged in to HP device %s:%d", self.host, self.port)
        return transcript

    async def hp_logout(self, timeout_ms: int | None = None) -> str | None:
        """Log out of an HP switch, confirm, and close the connection.

        Returns:
            Output read up to the confirmation question, or None if not connected

        Raises:
            TargetNotFoundError: If the confirmation question never appears
        """
        if not self.is_connected:
            return None

        with self.timeout_scope(timeout_ms):
            self.write_line(HP_LOGOUT_COMMAND)
            transcript = await self.read_until(HP_LOGOUT_CONFIRM_TEXT) or ""
            self.write_line(HP_LOGOUT_CONFIRM)

        await self.close()
        return transcript

    async def enable(
        self,
        password: str,
        timeout_ms: int | None = None,
        prompt_pattern: Pattern[str] | str | None = None,
    ) -> str | None:
        """Enter privileged mode and capture the new prompt.

        Args:
            password: Sent at the enable password prompt
            timeout_ms: Quiet period to use during enable, restored afterwards
            prompt_pattern: Pattern used to pick the new prompt out of the output,
                defaults to `TelnetConnection.prompt_pattern`

        Returns:
            The enable transcript, or None if not connected

        Raises:
            NoEnablePasswordPromptError: If "enable" is not answered with a prompt ending in ':'
        """
        if not self.is_connected:
            return None

        with self.timeout_scope(timeout_ms):
            self.write_line(ENABLE_COMMAND)
            transcript = await self.read() or ""
            if not _ends_with_input_prompt(transcript):
                raise NoEnablePasswordPromptError

            self.write_line(password)
            transcript += await self.read() or ""

        self._capture_prompt(transcript, prompt_pattern)
        log.info("Enable on %s:%d finished, prompt %r", self.host, self.port, self.prompt)
        return transcript

    async def capture_prompt(self, prompt_pattern: Pattern[str] | str | None = None) -> str | None:
        """Read once and take the last line of output as the prompt.

        Useful after `hp_generic_login`, or for devices that need no login.

        Returns:
            The captured prompt, or None if not connected or nothing matched
        """
        if not self.is_readable:
            return None
        text = await self.read() or ""
        return self._capture_prompt(text, prompt_pattern)

    def is_enabled(self) -> bool:
        """Check whether the session is in privileged mode from its prompt.

        Returns:
            True if the prompt ends with '#', False if it ends with '>'

        Raises:
            SessionStateError: If no prompt has been captured
            UnusualPromptCharacterError: If the prompt ends with anything else
        """
        return prompt_is_enabled(self.session.require_prompt())

    def _capture_prompt(self, text: str, prompt_pattern: Pattern[str] | str | None = None) -> str | None:
        """Store the prompt found in `text`, keeping the old one if none is found."""
        if prompt_pattern is None:
            pattern = self.prompt_pattern
        elif isinstance(prompt_pattern, str):
            pattern = re_compile(prompt_pattern, MULTILINE)
        else:
            pattern = prompt_pattern

        prompt = extract_prompt(text, pattern, self.trim_chars)
        if prompt is None:
            log.warning("No prompt found in output from %s:%d", self.host, self.port)
        self.session = self.session.with_prompt(prompt)
        return prompt
