"""
In-process change notification between the loader and long-poll waiters
"""

import asyncio
import logging

logger = logging.getLogger(__name__)


class ChangeNotifier:
    """
    Broadcast "the store changed" to any number of waiters.

    ``version`` increases on every notify(). A waiter records the version it
    last saw and calls wait(); it returns at once if the version has moved,
    otherwise it blocks until the next notify() or the timeout.
    """

    def __init__(self):
        self._version = 0
        self._event = asyncio.Event()

    @property
    def version(self) -> int:
        return self._version

    def notify(self) -> None:
        self._version += 1
        # Wake current waiters, then hand later waiters a fresh event
        event, self._event = self._event, asyncio.Event()
        event.set()

    async def wait(self, seen_version: int, timeout: float) -> bool:
        """True if a change was signalled after ``seen_version``, False on timeout"""
        if self._version != seen_version:
            return True
        try:
            await asyncio.wait_for(self._event.wait(), timeout=max(timeout, 0))
        except asyncio.TimeoutError:
            return False
        return True
