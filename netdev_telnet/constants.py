"""Constants for netdev-telnet."""

from __future__ import annotations

from re import MULTILINE, Pattern, compile as re_compile

# Wire constants

IAC_BYTE = 0xFF  # Interpret As Command byte
ENCODING = "latin-1"  # One byte per character in both directions
MIN_PORT = 1
MAX_PORT = 65535

# Read tuning

DEFAULT_TIMEOUT_MS = 100  # Quiet period that marks a burst of output as complete
DEFAULT_READ_UNTIL_LIMIT = 3  # Consecutive empty reads tolerated while polling
DEFAULT_CONNECT_TIMEOUT = 5.0  # Seconds

# Prompt handling

DEFAULT_PROMPT_PATTERN: Pattern[str] = re_compile(r"^.*$", MULTILINE)
PROMPT_TRIM_CHARS = "\n\r\0"
INPUT_PROMPT_SUFFIX = ":"  # Login, password and enable password prompts
ENABLED_PROMPT_CHAR = "#"
UNPRIVILEGED_PROMPT_CHAR = ">"
NEWLINE = "\n"

# Device dialogue

ENABLE_COMMAND = "enable"
HP_ANY_KEY_TEXT = "Press any key to continue"
HP_USERNAME_TEXT = "Username:"
HP_PASSWORD_TEXT = "Password:"
HP_LOGOUT_COMMAND = "logout"
HP_LOGOUT_CONFIRM_TEXT = "log out [y/n]?"
HP_LOGOUT_CONFIRM = "y"
