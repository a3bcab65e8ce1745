"""Asynchronous Telnet client package.

This package provides a client-side engine for the Telnet protocol. It keeps a
single TCP session open to a remote host, answers the server's option
negotiation transparently (accepting only Suppress Go Ahead), and offers a
simple text read/write surface with adaptive read timeouts, serialised writes
and a prompt driven login helper.

It is built on asyncio: every operation that waits suspends cooperatively and
observes a shared ``CancellationToken``.
"""

from __future__ import annotations

from importlib.metadata import version

from .cancellation import CancellationToken
from .client import AsyncTelnetClient
from .connection import TelnetConnection
from .console import log, set_log_level
from .negotiate import TelnetNegotiator
from .types import NegotiationResponse, TelnetCommand, TelnetOption, TelnetSequence

__all__ = [
    "AsyncTelnetClient",
    "CancellationToken",
    "NegotiationResponse",
    "TelnetCommand",
    "TelnetConnection",
    "TelnetNegotiator",
    "TelnetOption",
    "TelnetSequence",
    "log",
    "set_log_level",
]

__version__ = version("async-telnet-client")
