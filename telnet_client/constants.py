"""Constants for the telnet client."""

from __future__ import annotations

# Network protocol constants

IAC_BYTE = 0xFF  # Interpret As Command byte
TEXT_ENCODING = "latin-1"  # One byte per character, byte value == code point
LINE_TERMINATOR = "\n"
RECEIVE_CHUNK_SIZE = 4096
RECEIVE_HIGH_WATER = 4 * RECEIVE_CHUNK_SIZE  # Stop receiving while this many bytes are unread

# Timing constants (seconds)

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_READ_TIMEOUT = 0.1
DEFAULT_POLL_INTERVAL = 0.001
READ_SLICE = 0.005  # Time given to each read made by read_until
ROLLING_TIMEOUT_DIVISOR = 100  # Rolling deadline width is timeout / divisor
CLOSE_GRACE_PERIOD = 0.1
