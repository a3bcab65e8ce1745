"""Telnet control byte parser and negotiation responder."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .console import log
from .types import NegotiationResponse, TelnetCommand

if TYPE_CHECKING:
    from .connection import TelnetConnection


@dataclass(slots=True)
class TelnetNegotiator:
    """Parse incoming bytes one step at a time and answer option requests.

    Only Suppress Go Ahead is accepted; every other option is refused.
    """

    connection: TelnetConnection

    # Last reply verb sent for each option
    replies: dict[int, int] = field(default_factory=dict)

    async def parse_step(self, output: bytearray, time_limit: float) -> bool:
        """Consume at most one byte or command sequence from the connection.

        Plain bytes are appended to output, ``IAC IAC`` appends a single 0xFF,
        negotiation commands are answered and anything else is dropped.

        Args:
            output: Buffer receiving decoded session data
            time_limit: How long to wait for the rest of a command sequence

        Returns:
            True if a byte was consumed, False if nothing was pending
        """
        byte = self.connection.pop_byte()
        if byte is None:
            return False

        if byte != TelnetCommand.IAC:
            output.append(byte)
            return True

        verb = await self.connection.next_byte(time_limit)
        match verb:
            case None:
                log.debug("Stream ended after IAC")
            case TelnetCommand.IAC:
                # Escaped IAC - literal 255
                output.append(verb)
            case _ if TelnetCommand.is_negotiation(verb):
                await self._reply(verb, time_limit)
            case _:
                log.debug("Ignoring telnet command %d", verb)
        return True

    async def _reply(self, verb: int, time_limit: float) -> None:
        """Read the option byte following verb and send our answer."""
        option = await self.connection.next_byte(time_limit)
        if option is None:
            log.debug("Stream ended before option byte of %s", TelnetCommand(verb).name)
            return

        response = NegotiationResponse.for_request(verb, option)
        log.debug(
            "Negotiation %s %d answered with %s",
            TelnetCommand(verb).name,
            option,
            TelnetCommand(response.command).name,
        )
        self.replies[option] = response.command
        await self.connection.send(response.to_bytes())
