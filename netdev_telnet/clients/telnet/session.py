"""Session state tracking and prompt capture."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import IntEnum
from typing import TYPE_CHECKING

from netdev_telnet.constants import (
    DEFAULT_PROMPT_PATTERN,
    ENABLED_PROMPT_CHAR,
    PROMPT_TRIM_CHARS,
    UNPRIVILEGED_PROMPT_CHAR,
)

from .errors import SessionStateError, UnusualPromptCharacterError

if TYPE_CHECKING:
    from re import Pattern


class SessionState(IntEnum):
    """Where a connection is in the login/enable sequence."""

    DISCONNECTED = 0
    CONNECTED = 1
    AUTHENTICATED = 2
    PRIVILEGED = 3


def extract_prompt(
    text: str,
    pattern: Pattern[str] = DEFAULT_PROMPT_PATTERN,
    trim_chars: str = PROMPT_TRIM_CHARS,
) -> str | None:
    """Find the prompt in a chunk of device output.

    The prompt is the last match of `pattern` that is still non-empty after
    stripping `trim_chars` from both ends and whitespace from the right.

    Args:
        text: Device output, usually the tail of a login transcript
        pattern: Pattern matching candidate prompt lines
        trim_chars: Characters stripped from both ends of a candidate

    Returns:
        The prompt, or None if no candidate line was found

    Examples:
        >>> extract_prompt("login ok\\r\\nswitch> ")
        'switch>'
    """
    for match in reversed(list(pattern.finditer(text))):
        candidate = match.group(0).strip(trim_chars).rstrip()
        if candidate:
            return candidate
    return None


def prompt_is_enabled(prompt: str) -> bool:
    """Work out the privilege level from the last character of a prompt.

    Returns:
        True for '#', False for '>'

    Raises:
        UnusualPromptCharacterError: If the prompt ends in anything else
    """
    last = prompt[-1:]
    if last == ENABLED_PROMPT_CHAR:
        return True
    if last == UNPRIVILEGED_PROMPT_CHAR:
        return False
    raise UnusualPromptCharacterError(prompt)


@dataclass(slots=True, frozen=True)
class Session:
    """Immutable snapshot of a connection's session.

    Flows never mutate a Session, they swap in a new one, so a caller holding
    on to an earlier snapshot keeps seeing the state it was given.
    """

    state: SessionState = field(default=SessionState.DISCONNECTED)
    prompt: str = field(default="")

    def require_prompt(self) -> str:
        """Return the prompt, failing if none has been captured yet.

        Raises:
            SessionStateError: If no prompt is known
        """
        if not self.prompt:
            msg = f"No prompt captured in state {self.state.name}; log in or call capture_prompt() first"
            raise SessionStateError(msg)
        return self.prompt

    @classmethod
    def connected(cls) -> Session:
        """Return the session for a freshly opened connection."""
        return cls(state=SessionState.CONNECTED)

    def disconnected(self) -> Session:
        """Return the session after the connection closed, keeping the last prompt."""
        return replace(self, state=SessionState.DISCONNECTED)

    def with_prompt(self, prompt: str | None) -> Session:
        """Return the authenticated session with a newly captured prompt.

        A None prompt keeps the previous one. The privilege level follows the
        prompt's last character where it is '#' or '>'.
        """
        new_prompt = prompt or self.prompt
        state = max(self.state, SessionState.AUTHENTICATED)
        if new_prompt.endswith(ENABLED_PROMPT_CHAR):
            state = SessionState.PRIVILEGED
        elif new_prompt.endswith(UNPRIVILEGED_PROMPT_CHAR):
            state = SessionState.AUTHENTICATED
        return Session(state=state, prompt=new_prompt)
