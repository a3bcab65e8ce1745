"""Cooperative cancellation for telnet sessions.

A ``CancellationToken`` is a one-way switch shared between the caller and the
client. Once cancelled it stays cancelled; every waiting operation in the client
checks it and unwinds quietly instead of raising.
"""

from __future__ import annotations

from asyncio import Event
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable


@dataclass(slots=True)
class CancellationToken:
    """Permanent cancellation flag with callbacks and linked children."""

    _event: Event = field(init=False, default_factory=Event)
    _callbacks: list[Callable[[], None]] = field(init=False, default_factory=list)

    @property
    def cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation and run registered callbacks once."""
        if self._event.is_set():
            return
        self._event.set()
        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def register(self, callback: Callable[[], None]) -> None:
        """Run callback on cancellation, immediately if already cancelled."""
        if self.cancelled:
            callback()
        else:
            self._callbacks.append(callback)

    def link(self) -> CancellationToken:
        """Create a child token cancelled whenever this token is.

        Returns:
            The linked child token
        """
        child = CancellationToken()
        self.register(child.cancel)
        return child

    async def wait(self) -> None:
        """Wait until cancellation is requested."""
        await self._event.wait()
