"""Exceptions raised by the telnet session flows."""

from __future__ import annotations


class TelnetError(Exception):
    """Base error for telnet session operations."""


class SessionStateError(TelnetError):
    """Raised when an operation is called out of order, e.g. before a prompt is known."""


class PromptError(TelnetError):
    """Raised when the device did not present the prompt a flow expected."""


class NoLoginPromptError(PromptError):
    """No login prompt ending in ':' was received."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("Failed to connect: no login prompt")


class NoPasswordPromptError(PromptError):
    """No password prompt ending in ':' was received."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("Failed to connect: no password prompt")


class NoEnablePasswordPromptError(PromptError):
    """No password prompt ending in ':' followed the enable command."""

    def __init__(self) -> None:
        """Initialise with a fixed message."""
        super().__init__("Failed to enable: no password prompt")


class UnusualPromptCharacterError(PromptError):
    """The stored prompt ends in neither '#' nor '>'."""

    def __init__(self, prompt: str) -> None:
        """Initialise with the offending prompt."""
        self.prompt = prompt
        super().__init__(f"Unusual prompt character found: {prompt!r}")


class TargetNotFoundError(TelnetError, TimeoutError):
    """The device went quiet before the expected text appeared."""

    def __init__(self, target: str, msg: str | None = None) -> None:
        """Initialise with the text that was being waited for."""
        self.target = target
        super().__init__(msg or f"Failed to receive find text: {target}")


class CommandPromptNotFoundError(TargetNotFoundError):
    """The prompt did not reappear after a command."""

    def __init__(self, command: str, prompt: str) -> None:
        """Initialise with the command that was sent and the prompt waited for."""
        self.command = command
        super().__init__(prompt, f"Failed to receive prompt after command: {command}")
