"""
Debounced deadline for asyncio.

A DebouncedDeadline fires its callback once no activity has been reported
for the current window. Every call to arm() restarts the window (with a
possibly different length), so a process that keeps producing output is
never cut off while one that goes quiet is.
"""

import asyncio
import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class DebouncedDeadline:
    """Cancellable timer that is re-armed on every observed event."""

    def __init__(self, on_expire: Callable[[], None]):
        """
        Args:
            on_expire: Called from the event loop when the window elapses
        """
        self._on_expire = on_expire
        self._handle: asyncio.TimerHandle | None = None
        self._fired = False
        self._window: float | None = None

    @property
    def fired(self) -> bool:
        """Whether the deadline expired."""
        return self._fired

    @property
    def window(self) -> float | None:
        """Length of the most recently armed window in seconds."""
        return self._window

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, seconds: float) -> None:
        """Start, or restart, the inactivity window."""
        if self._fired:
            return
        self.cancel()
        self._window = seconds
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(seconds, self._expire)

    def cancel(self) -> None:
        """Stop the timer without firing."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _expire(self) -> None:
        self._handle = None
        self._fired = True
        logger.debug(f"Deadline expired after {self._window}s of inactivity")
        self._on_expire()
