"""Asynchronous Telnet client implementation module.

This module provides the ``AsyncTelnetClient`` class: a single telnet session
with a plain text read/write surface. Option negotiation is answered
transparently while reading, reads adapt their wait to how fast data is
arriving, writes are serialised, and a prompt driven login helper is included.
"""

from __future__ import annotations

from asyncio import (
    FIRST_COMPLETED,
    Lock,
    Task,
    create_task as asyncio_create_task,
    get_running_loop as asyncio_get_running_loop,
    sleep as asyncio_sleep,
    wait as asyncio_wait,
)
from dataclasses import dataclass, field
from typing import Any, Self

from .cancellation import CancellationToken
from .connection import TelnetConnection
from .console import log
from .constants import (
    CLOSE_GRACE_PERIOD,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_READ_TIMEOUT,
    IAC_BYTE,
    LINE_TERMINATOR,
    READ_SLICE,
    ROLLING_TIMEOUT_DIVISOR,
    TEXT_ENCODING,
)
from .negotiate import TelnetNegotiator


def escape_iac(data: bytes) -> bytes:
    """Double every IAC byte so the server reads it as data.

    Returns:
        The escaped bytes
    """
    # Fast path for common case - no IAC bytes
    if IAC_BYTE not in data:
        return data
    return data.replace(bytes([IAC_BYTE]), bytes([IAC_BYTE, IAC_BYTE]))


@dataclass(slots=True)
class AsyncTelnetClient:
    """Async Telnet client with adaptive reads, serialised writes and login.

    This class implements the async context manager protocol for easy use in
    async with statements.

    Examples:
        Basic usage with context manager:

        ```python
        async with AsyncTelnetClient("device.example.com", 23) as client:
            if await client.try_login("admin", "secret", 2.0):
                await client.write_line("show version")
                print(await client.read_until(">", 5.0))
        ```

        Manual connection management with external cancellation:

        ```python
        stop = CancellationToken()
        client = await AsyncTelnetClient.open("device.example.com", 23, stop)
        try:
            banner = await client.read(1.0)
        finally:
            await client.close()
        ```
    """

    host: str
    port: int
    cancellation: CancellationToken | None = field(default=None)
    connect_timeout: float = field(default=DEFAULT_CONNECT_TIMEOUT)
    newline: str = field(default=LINE_TERMINATOR)

    token: CancellationToken = field(init=False)
    connection: TelnetConnection = field(init=False)
    negotiator: TelnetNegotiator = field(init=False)
    _send_lock: Lock = field(init=False, default_factory=Lock)
    _read_lock: Lock = field(init=False, default_factory=Lock)

    def __post_init__(self) -> None:
        """Link the caller's cancellation to this session and build components."""
        self.token = self.cancellation.link() if self.cancellation else CancellationToken()
        self.connection = TelnetConnection(
            host=self.host, port=self.port, token=self.token, connect_timeout=self.connect_timeout
        )
        self.negotiator = TelnetNegotiator(connection=self.connection)

    @classmethod
    async def open(
        cls, host: str, port: int, cancellation: CancellationToken | None = None, **kwargs: Any
    ) -> Self:
        """Create and connect to a telnet server in one step.

        Args:
            host: The hostname or IP address of the telnet server
            port: The port number of the telnet server
            cancellation: Optional token the caller can use to stop the session
            **kwargs: Additional parameters to pass to the AsyncTelnetClient constructor

        Returns:
            A connected AsyncTelnetClient instance

        Raises:
            ConnectionError: If the connection attempt fails
        """
        client = cls(host=host, port=port, cancellation=cancellation, **kwargs)
        await client.connect()
        return client

    async def __aenter__(self) -> Self:
        """Enter the async context manager, connecting if needed.

        Returns:
            The connected client instance

        Raises:
            ConnectionError: If the connection attempt fails
        """
        if not self.is_connected:
            await self.connect()
        return self

    async def __aexit__(self, exc_type: object, exc_val: object, exc_tb: object) -> None:
        """Exit the async context manager, closing the connection."""
        await self.close()

    @property
    def is_connected(self) -> bool:
        """Check if the client is currently connected."""
        return self.connection.is_connected

    async def connect(self) -> None:
        """Establish the telnet connection.

        Raises:
            ConnectionError: If the connection attempt fails
        """
        await self.connection.open()

    def cancel(self) -> None:
        """Cancel in-progress and future operations without closing."""
        self.token.cancel()

    async def close(self) -> None:
        """Close the telnet connection. Never raises."""
        self.token.cancel()
        try:
            await self.connection.close()
        except Exception:
            log.exception("Error closing telnet connection")
        else:
            log.debug("Closed telnet connection to %s:%d", self.host, self.port)
        # Let operations still polling the token observe it before returning
        await asyncio_sleep(CLOSE_GRACE_PERIOD)

    async def read(self, time_limit: float = DEFAULT_READ_TIMEOUT) -> str:
        """Read whatever text arrives, stopping once the stream goes quiet.

        Waits up to time_limit for the first byte, then keeps reading for as
        long as each new byte arrives within time_limit / 100 of the last.

        Args:
            time_limit: Maximum time to wait for the first byte

        Returns:
            The decoded text, empty on timeout, disconnection or cancellation.
        """
        if not self.connection.is_readable or self.token.cancelled:
            return ""
        async with self._read_lock:
            return await self._read(time_limit)

    async def _read(self, time_limit: float) -> str:
        """Run the adaptive read loop; the caller holds the read lock."""
        loop = asyncio_get_running_loop()
        output = bytearray()
        rolling_width = time_limit / ROLLING_TIMEOUT_DIVISOR
        initial_deadline = loop.time() + time_limit
        rolling_deadline = loop.time() + rolling_width

        while not self.token.cancelled:
            if await self.negotiator.parse_step(output, time_limit):
                rolling_deadline = loop.time() + rolling_width
            if self.connection.available:
                continue
            if not self.connection.is_readable:
                break
            if not output and loop.time() < initial_deadline:
                await self.connection.wait_for_data(initial_deadline)
                continue
            if loop.time() < rolling_deadline:
                await self.connection.wait_for_data(rolling_deadline)
                continue
            log.debug("Rolling timeout of %.3fs exceeded", rolling_width)
            break

        return output.decode(TEXT_ENCODING)

    async def read_until(
        self,
        terminator: str,
        time_limit: float = DEFAULT_READ_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> str:
        """Read until the text, trailing whitespace ignored, ends with terminator.

        Args:
            terminator: The text expected at the end of the output
            time_limit: Maximum time to keep reading
            poll_interval: Pause between reads that returned nothing

        Returns:
            Everything read, whether or not the terminator was found.
        """
        if not self.connection.is_readable or self.token.cancelled:
            return ""

        loop = asyncio_get_running_loop()
        deadline = loop.time() + time_limit
        text = ""
        async with self._read_lock:
            while not self._is_terminated(text, terminator) and loop.time() <= deadline:
                if self.token.cancelled or not self.connection.is_readable:
                    break
                chunk = await self._read(READ_SLICE)
                if chunk:
                    text += chunk
                else:
                    await asyncio_sleep(poll_interval)

        if not self._is_terminated(text, terminator):
            log.debug("Failed to terminate %r with %r", text, terminator)
        return text

    @staticmethod
    def _is_terminated(text: str, terminator: str) -> bool:
        return text.rstrip().endswith(terminator)

    async def write(self, text: str) -> None:
        """Send text to the server, one writer at a time.

        Characters are sent as single bytes and IAC bytes are doubled. Does
        nothing when disconnected or cancelled, including while waiting for
        another write to finish.
        """
        if not self.is_connected or self.token.cancelled:
            return
        if not await self._acquire_send_lock():
            return
        try:
            data = text.encode(TEXT_ENCODING, errors="replace")
            await self.connection.send(escape_iac(data))
        finally:
            self._send_lock.release()

    async def _acquire_send_lock(self) -> bool:
        """Take the send lock unless the session is cancelled first.

        If the caller is cancelled while waiting, the lock is never left held.

        Returns:
            True if the lock is now held by the caller
        """
        if not self._send_lock.locked():
            await self._send_lock.acquire()
            return True

        acquire = asyncio_create_task(self._send_lock.acquire())
        cancelled = asyncio_create_task(self.token.wait())
        held = False
        try:
            await asyncio_wait({acquire, cancelled}, return_when=FIRST_COMPLETED)
            held = acquire.done() and not self.token.cancelled
        finally:
            cancelled.cancel()
            if not held:
                acquire.cancel()
                acquire.add_done_callback(self._release_unused)
        return held

    def _release_unused(self, acquire: Task[bool]) -> None:
        """Give back a send lock taken on behalf of a write that gave up."""
        if not acquire.cancelled():
            self._send_lock.release()

    async def write_line(self, text: str) -> None:
        """Send text followed by the line terminator."""
        await self.write(f"{text}{self.newline}")

    async def try_login(self, username: str, password: str, time_limit: float) -> bool:
        """Log in by answering the username and password prompts.

        Waits for a ``:`` prompt and sends the username, then waits for a
        second ``:`` prompt and sends the password, then waits for ``>``.
        Each wait is allowed time_limit seconds.

        Returns:
            True if the final ``>`` prompt arrived. Any failure gives False.
        """
        try:
            if not await self._is_terminated_with(":", time_limit):
                return False
            await self.write_line(username)
            if await self._is_terminated_with(":", time_limit):
                await self.write_line(password)
            return await self._is_terminated_with(">", time_limit)
        except OSError as e:
            log.debug("Telnet login to %s:%d failed: %s", self.host, self.port, e)
            return False
        except Exception:
            log.exception("Unexpected error during telnet login to %s:%d", self.host, self.port)
            return False

    async def _is_terminated_with(self, terminator: str, time_limit: float) -> bool:
        text = await self.read_until(terminator, time_limit)
        return self._is_terminated(text, terminator)
