"""Telnet connection management module.

This module owns the TCP byte stream behind a telnet session. A background
receive task moves incoming bytes into a local buffer, which lets the parser ask
how many bytes are pending without blocking and lets readers sleep on an event
until data, end of stream, cancellation or a deadline wakes them.
"""

from __future__ import annotations

from asyncio import (
    CancelledError as AsyncioCancelledError,
    Event,
    StreamReader,
    StreamWriter,
    Task,
    create_task as asyncio_create_task,
    get_running_loop as asyncio_get_running_loop,
    open_connection,
    timeout as asyncio_timeout,
    timeout_at as asyncio_timeout_at,
)
from contextlib import suppress as contextlib_suppress
from dataclasses import dataclass, field

from .cancellation import CancellationToken
from .console import log
from .constants import DEFAULT_CONNECT_TIMEOUT, RECEIVE_CHUNK_SIZE, RECEIVE_HIGH_WATER


@dataclass(slots=True)
class TelnetConnection:
    """Duplex byte stream to a telnet server with a pending-bytes buffer."""

    host: str
    port: int
    token: CancellationToken = field(default_factory=CancellationToken)
    connect_timeout: float = field(default=DEFAULT_CONNECT_TIMEOUT)
    reader: StreamReader | None = field(default=None)
    writer: StreamWriter | None = field(default=None)

    _inbound: bytearray = field(init=False, default_factory=bytearray)
    _data_ready: Event = field(init=False, default_factory=Event)
    _room: Event = field(init=False, default_factory=Event)
    _receiver: Task[None] | None = field(init=False, default=None)
    _eof: bool = field(init=False, default=False)

    def __post_init__(self) -> None:
        """Wake any waiting reader when the session is cancelled."""
        self._room.set()
        self.token.register(self._data_ready.set)

    @property
    def is_connected(self) -> bool:
        """Check if the transport is open and the peer has not closed it."""
        return self.writer is not None and not self.writer.is_closing() and not self._eof

    @property
    def is_readable(self) -> bool:
        """Check if reading can still produce data."""
        return self.is_connected or bool(self._inbound)

    @property
    def available(self) -> int:
        """Number of received bytes not yet consumed."""
        return len(self._inbound)

    @property
    def is_receiving(self) -> bool:
        """Check if the buffer has room for more received bytes."""
        return self._room.is_set()

    async def open(self) -> None:
        """Open the TCP connection and start receiving.

        Raises:
            ConnectionError: If the connection cannot be established
        """
        if self.is_connected:
            return

        try:
            async with asyncio_timeout(self.connect_timeout):
                log.info("Connecting with telnet to %s:%d", self.host, self.port)
                self.reader, self.writer = await open_connection(self.host, self.port)
        except (TimeoutError, OSError) as e:
            msg = f"Failed to connect to {self.host}:{self.port}"
            raise ConnectionError(msg) from e

        self._eof = False
        self._receiver = asyncio_create_task(self._receive())
        log.debug("Connected with telnet to %s:%d", self.host, self.port)

    async def _receive(self) -> None:
        """Background task moving bytes from the stream into the buffer."""
        if not self.reader:
            return
        try:
            while not self.token.cancelled:
                # Leave unread data in the socket so the peer is throttled
                await self._room.wait()
                chunk = await self.reader.read(RECEIVE_CHUNK_SIZE)
                if not chunk:
                    log.debug("Telnet peer %s:%d closed the stream", self.host, self.port)
                    break
                self.feed(chunk)
        except OSError as e:
            log.debug("Telnet receive from %s:%d failed: %s", self.host, self.port, e)
        finally:
            self._eof = True
            self._data_ready.set()

    def feed(self, data: bytes) -> None:
        """Append received bytes to the pending buffer."""
        if not data:
            return
        self._inbound.extend(data)
        if len(self._inbound) >= RECEIVE_HIGH_WATER:
            self._room.clear()
        self._data_ready.set()

    def pop_byte(self) -> int | None:
        """Take the next pending byte without waiting.

        Returns:
            The byte value, or None if nothing is pending
        """
        if not self._inbound:
            return None
        byte = self._inbound[0]
        del self._inbound[0]
        if len(self._inbound) < RECEIVE_HIGH_WATER:
            self._room.set()
        if not self._inbound and not self._eof and not self.token.cancelled:
            self._data_ready.clear()
        return byte

    async def wait_for_data(self, deadline: float) -> bool:
        """Wait until a byte is pending or the deadline passes.

        Args:
            deadline: Absolute event loop time to give up at

        Returns:
            True if at least one byte is pending
        """
        if self._inbound:
            return True
        if self._eof or self.token.cancelled:
            return False
        if deadline <= asyncio_get_running_loop().time():
            return False

        with contextlib_suppress(TimeoutError):
            async with asyncio_timeout_at(deadline):
                await self._data_ready.wait()
        return bool(self._inbound)

    async def next_byte(self, time_limit: float) -> int | None:
        """Take the next byte, waiting up to time_limit for it to arrive.

        Returns:
            The byte value, or None on end of stream, cancellation or timeout
        """
        deadline = asyncio_get_running_loop().time() + time_limit
        if await self.wait_for_data(deadline):
            return self.pop_byte()
        return None

    async def send(self, data: bytes) -> None:
        """Send raw bytes to the server, bypassing any escaping."""
        if not self.writer:
            return
        self.writer.write(data)
        await self.writer.drain()

    async def close(self) -> None:
        """Stop receiving and close the transport."""
        if self._receiver:
            self._receiver.cancel()
            with contextlib_suppress(AsyncioCancelledError):
                await self._receiver
            self._receiver = None

        if self.writer:
            try:
                self.writer.close()
                await self.writer.wait_closed()
            finally:
                self.writer = None
                self.reader = None
                self._eof = True
                self._data_ready.set()
