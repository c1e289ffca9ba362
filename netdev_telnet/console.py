"""Console and logging configuration module for netdev-telnet.

This module provides a standardised console setup for the package, configuring
a Rich-based console with integrated logging. Everything else in the package
imports `log` from here rather than creating its own handler.
"""

from __future__ import annotations

import logging
from logging import INFO, getLogger

from rich.console import Console
from rich.logging import RichHandler

# Create a Rich console for output
console = Console(stderr=True)

# Configure logging with a Rich handler, markup stays off as device output
# regularly contains square brackets
logging.basicConfig(
    level=INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True, show_time=True, markup=False)],
    force=True,
)

# Get the logger for the package
log = getLogger("netdev_telnet")


def set_verbosity(verbose: int) -> None:
    """Set the package log level from a verbosity count.

    Args:
        verbose: 0 for warnings only, 1 for info, 2 or more for debug output
    """
    if verbose >= 2:  # noqa: PLR2004
        log.setLevel("DEBUG")
    elif verbose == 1:
        log.setLevel("INFO")
    else:
        log.setLevel("WARNING")
