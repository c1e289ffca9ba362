"""Telnet protocol negotiation and frame parsing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from netdev_telnet.console import log

from .types import NegotiationResponse, ParserState, TelnetCommand, TelnetOption

if TYPE_CHECKING:
    from .stream import ByteStream


@dataclass(slots=True)
class TelnetNegotiator:
    """Separates literal data from telnet commands and answers negotiations.

    Each call to `parse` drains whatever the stream has buffered. A command
    sequence cut off by the end of the buffer is abandoned at the end of the
    pass unless `keep_partial` is set, in which case parsing resumes from the
    same point on the next pass.
    """

    keep_partial: bool = field(default=False)

    # Tracking negotiated options
    our_options: dict[int, bool] = field(default_factory=dict)
    their_options: dict[int, bool] = field(default_factory=dict)

    # Parser position, only meaningful between passes with keep_partial
    state: ParserState = field(init=False, default=ParserState.DATA)
    _verb: int = field(init=False, default=0)

    def parse(self, stream: ByteStream, output: bytearray) -> None:
        """Consume all currently available bytes from the stream.

        Literal data is appended to `output`. Negotiation replies are written
        back to the stream as soon as the option byte is read.

        Args:
            stream: The stream to drain
            output: Accumulator for literal data
        """
        while stream.available() > 0:
            byte = stream.read_byte()
            if byte is None:
                break
            self._feed(stream, byte, output)

        if self.state != ParserState.DATA and not self.keep_partial:
            log.debug("Dropping incomplete telnet command sequence")
            self.reset()

    def local_enabled(self, option: int) -> bool:
        """Check if we agreed to perform `option` (answered DO with WILL)."""
        return self.our_options.get(option, False)

    def remote_enabled(self, option: int) -> bool:
        """Check if we agreed to let the server perform `option` (answered WILL with DO)."""
        return self.their_options.get(option, False)

    def reset(self) -> None:
        """Return the parser to plain data mode."""
        self.state = ParserState.DATA
        self._verb = 0

    def _feed(self, stream: ByteStream, byte: int, output: bytearray) -> None:
        """Advance the state machine by one byte."""
        match self.state:
            case ParserState.DATA:
                if byte == TelnetCommand.IAC:
                    self.state = ParserState.IAC
                else:
                    output.append(byte)

            case ParserState.IAC:
                match byte:
                    case TelnetCommand.IAC:
                        # Escaped IAC - literal 255
                        output.append(byte)
                        self.state = ParserState.DATA
                    case _ if TelnetCommand.is_negotiation(byte):
                        self._verb = byte
                        self.state = ParserState.COMMAND
                    case _:
                        log.debug("Ignoring unsupported telnet command %d", byte)
                        self.state = ParserState.DATA

            case ParserState.COMMAND:
                stream.write(self._handle_negotiation(self._verb, byte))
                self.reset()

    def _handle_negotiation(self, cmd: int, option: int) -> bytes:
        """Record and answer a single DO/DONT/WILL/WONT request.

        Args:
            cmd: The telnet command (DO/DONT/WILL/WONT)
            option: The option being negotiated

        Returns:
            The response to send to the server
        """
        accepted = TelnetOption.is_supported(option)
        enabled = accepted and cmd in {TelnetCommand.DO, TelnetCommand.WILL}
        match cmd:
            case TelnetCommand.DO | TelnetCommand.DONT:
                # These affect our options (what we do)
                self.our_options[option] = enabled
            case _:
                # WILL or WONT affect their options (what they do)
                self.their_options[option] = enabled

        response = NegotiationResponse.for_request(cmd, option)
        log.debug(
            "Negotiation %s %d -> %s",
            TelnetCommand(cmd).name,
            option,
            TelnetCommand(response[1]).name,
        )
        return response
