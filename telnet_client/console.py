"""Logging configuration module for the telnet client.

This module configures a Rich-based console with integrated logging, so that
connection, negotiation and timeout diagnostics render consistently wherever
the client is used. Everything in the package logs through ``log``.

The handler is attached to the package logger only; the root logger of the
importing application is left alone.
"""

from __future__ import annotations

from logging import INFO, getLogger

from rich.console import Console
from rich.logging import RichHandler

# Create a Rich console for output
console = Console(stderr=True)

# Get the logger for this package and give it a Rich handler
log = getLogger("telnet_client")
log.addHandler(RichHandler(console=console, rich_tracebacks=True, show_time=True))
log.setLevel(INFO)
log.propagate = False


def set_log_level(level: int | str) -> None:
    """Set the verbosity of the telnet client logger.

    Args:
        level: A logging level name ("DEBUG", "INFO", ...) or number
    """
    log.setLevel(level)
