"""One-shot shutdown signal shared by the event loop and external shutdown triggers."""

from __future__ import annotations

import asyncio
import threading


class TerminationSignal:
    """Set-once, multi-wait cell.

    ``set`` may be called from any thread; only the first call wins and records a
    reason. Waiters on the bound event loop are woken through
    ``call_soon_threadsafe`` so a close request from a UI or signal handler thread
    is safe.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._reason: str | None = None
        self._event = asyncio.Event()
        self._loop: asyncio.AbstractEventLoop | None = None

    @property
    def is_set(self) -> bool:
        return self._reason is not None

    @property
    def reason(self) -> str | None:
        return self._reason

    def bind(self, loop: asyncio.AbstractEventLoop) -> None:
        """Attach the loop whose waiters should be woken."""
        with self._lock:
            self._loop = loop
            already_set = self._reason is not None
        if already_set:
            loop.call_soon_threadsafe(self._event.set)

    def set(self, reason: str) -> bool:
        """Set the signal. Returns ``True`` only for the call that actually set it."""
        with self._lock:
            if self._reason is not None:
                return False
            self._reason = reason
            loop = self._loop
        if loop is not None and not loop.is_closed():
            loop.call_soon_threadsafe(self._event.set)
        return True

    async def wait(self) -> str:
        """Wait until the signal is set and return its reason."""
        if self._loop is None:
            self.bind(asyncio.get_running_loop())
        await self._event.wait()
        return self._reason or ""
