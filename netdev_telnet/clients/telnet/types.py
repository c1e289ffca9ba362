"""Telnet protocol types module."""

from __future__ import annotations

from enum import IntEnum


class ParserState(IntEnum):
    """States for the telnet parser state machine."""

    DATA = 0
    IAC = 1
    COMMAND = 2


class TelnetCommand(IntEnum):
    """Telnet protocol commands."""

    IAC = 255  # Interpret As Command
    DONT = 254
    DO = 253
    WONT = 252
    WILL = 251

    @classmethod
    def is_negotiation(cls, cmd: int) -> bool:
        """Check if a command byte is a negotiation command.

        Returns:
            True if the command is a negotiation command, False otherwise
        """
        return cmd in {cls.DO, cls.DONT, cls.WILL, cls.WONT}


class TelnetOption(IntEnum):
    """Telnet protocol options."""

    SGA = 3  # Suppress Go Ahead

    @classmethod
    def is_supported(cls, option: int) -> bool:
        """Check if an option is supported by our implementation.

        Returns:
            True if the option is supported, False otherwise
        """
        return option == cls.SGA


def create_command(command: int, option: int) -> bytes:
    """Create a simple telnet command sequence.

    Returns:
        The created command sequence
    """
    return bytes([TelnetCommand.IAC, command, option])


class NegotiationResponse:
    """Helper class for building negotiation responses.

    Only SGA is ever agreed to, every other option is declined. The reply verb
    depends solely on whether the peer sent DO; WILL, WONT and DONT are all
    answered as if the peer had offered to perform the option itself.
    """

    @staticmethod
    def accept(command: int, option: int) -> bytes:
        """Accept a negotiation: WILL in response to DO, DO otherwise.

        Returns:
            The appropriate acceptance response
        """
        reply = TelnetCommand.WILL if command == TelnetCommand.DO else TelnetCommand.DO
        return create_command(reply, option)

    @staticmethod
    def reject(command: int, option: int) -> bytes:
        """Reject a negotiation: WONT in response to DO, DONT otherwise.

        Returns:
            The appropriate rejection response
        """
        reply = TelnetCommand.WONT if command == TelnetCommand.DO else TelnetCommand.DONT
        return create_command(reply, option)

    @classmethod
    def for_request(cls, command: int, option: int) -> bytes:
        """Build the reply for a received negotiation request.

        Returns:
            Three bytes: IAC, the reply verb and the echoed option
        """
        if TelnetOption.is_supported(option):
            return cls.accept(command, option)
        return cls.reject(command, option)
