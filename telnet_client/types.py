"""Telnet protocol types module."""

from __future__ import annotations

from enum import IntEnum
from typing import NamedTuple


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
    """Telnet protocol options referred to by name."""

    ECHO = 1
    SGA = 3  # Suppress Go Ahead
    TERMINAL_TYPE = 24
    NAWS = 31  # Negotiate About Window Size

    @classmethod
    def is_supported(cls, option: int) -> bool:
        """Check if an option is accepted by our implementation.

        Only Suppress Go Ahead is accepted, every other option is refused.

        Returns:
            True if the option is supported, False otherwise
        """
        return option == cls.SGA


class TelnetSequence(NamedTuple):
    """Represents a three byte telnet command sequence."""

    command: int
    option: int

    def to_bytes(self) -> bytes:
        """Encode the sequence for the wire.

        Returns:
            IAC followed by the command and option bytes
        """
        return self.create_command(self.command, self.option)

    @classmethod
    def create_command(cls, command: int, option: int) -> bytes:
        """Create a simple telnet command sequence.

        Returns:
            The created command sequence
        """
        return bytes([TelnetCommand.IAC, command, option])


class NegotiationResponse:
    """Helper class for building negotiation responses."""

    @staticmethod
    def accept(command: int, option: int) -> TelnetSequence:
        """Accept a negotiation by responding positively.

        Responds with WILL to DO, and with DO to WILL, WONT and DONT.

        Args:
            command: The received command (DO, DONT, WILL, WONT)
            option: The option being negotiated

        Returns:
            The appropriate acceptance response
        """
        if command == TelnetCommand.DO:
            return TelnetSequence(TelnetCommand.WILL, option)
        return TelnetSequence(TelnetCommand.DO, option)

    @staticmethod
    def reject(command: int, option: int) -> TelnetSequence:
        """Reject a negotiation by responding negatively.

        Responds with WONT to DO, and with DONT to WILL, WONT and DONT.

        Args:
            command: The received command (DO, DONT, WILL, WONT)
            option: The option being negotiated

        Returns:
            The appropriate rejection response
        """
        if command == TelnetCommand.DO:
            return TelnetSequence(TelnetCommand.WONT, option)
        return TelnetSequence(TelnetCommand.DONT, option)

    @classmethod
    def for_request(cls, command: int, option: int) -> TelnetSequence:
        """Build the reply to a negotiation request.

        Returns:
            An acceptance for supported options, a rejection for the rest
        """
        if TelnetOption.is_supported(option):
            return cls.accept(command, option)
        return cls.reject(command, option)
