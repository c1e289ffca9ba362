"""Telnet session automation for network devices.

This package drives the command line of routers and switches over raw telnet.
It handles the small part of option negotiation these devices need, decides
when a burst of output has finished using a quiet-period heuristic, and offers
login, enable and prompt-aware command helpers on top.

The package uses asynchronous Python throughout; every read suspends the
calling task for at least one quiet period.
"""

from __future__ import annotations

from importlib.metadata import version

from .clients.telnet import (
    CommandPromptNotFoundError,
    NoEnablePasswordPromptError,
    NoLoginPromptError,
    NoPasswordPromptError,
    QuietPeriod,
    Session,
    SessionState,
    SessionStateError,
    TargetNotFoundError,
    TelnetConnection,
    TelnetError,
    UnusualPromptCharacterError,
)
from .console import console, log, set_verbosity

__all__ = [
    "CommandPromptNotFoundError",
    "NoEnablePasswordPromptError",
    "NoLoginPromptError",
    "NoPasswordPromptError",
    "QuietPeriod",
    "Session",
    "SessionState",
    "SessionStateError",
    "TargetNotFoundError",
    "TelnetConnection",
    "TelnetError",
    "UnusualPromptCharacterError",
    "console",
    "log",
    "set_verbosity",
]

__version__ = version("netdev-telnet")
