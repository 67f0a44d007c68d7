"""
Bounded long-poll answers to "has the store changed since T?"
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from core.clock import Clock, utcnow, to_epoch_ms
from ingestion.notifier import ChangeNotifier
from models.property_store import PropertyStore
from schemas.api import UpdatesData
from schemas.property import PropertySummary

logger = logging.getLogger(__name__)

DisconnectCheck = Callable[[], Awaitable[bool]]


@dataclass(frozen=True)
class UpdateResult:
    timestamp: int
    data: Optional[UpdatesData] = None


class StatusPublisher:
    """
    Serve long-poll waiters from the persisted store.

    Each await_update() call is an independent waiter with its own session
    per check; waiters share nothing but the ChangeNotifier. A check reads
    the store only once ``now > since``; it resolves with a snapshot when the
    newest last_updated is after ``since`` (or when the client has never
    seen a snapshot, ``since <= 0``). Between checks the waiter sleeps on the
    notifier for at most ``poll_interval``, so a load wakes it immediately
    and writes from other processes are still seen on the next tick.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker,
        notifier: ChangeNotifier,
        recent_limit: int = 10,
        timeout: float = 30.0,
        poll_interval: float = 1.0,
        clock: Clock = utcnow
    ):
        self.session_maker = session_maker
        self.notifier = notifier
        self.recent_limit = recent_limit
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.clock = clock

    def _now_ms(self) -> int:
        return to_epoch_ms(self.clock())

    async def snapshot(self) -> UpdatesData:
        """Total count, newest last_updated and the most recently updated listings"""
        async with self.session_maker() as session:
            store = PropertyStore(session)
            total = await store.count()
            last_updated = await store.last_updated()
            recent = await store.recent(self.recent_limit)

        return UpdatesData(
            status="active",
            total_properties=total,
            last_updated=last_updated,
            properties=[PropertySummary.model_validate(p) for p in recent]
        )

    async def _check(self, since_ms: int) -> Optional[UpdatesData]:
        if self._now_ms() <= since_ms:
            return None

        if since_ms <= 0:
            return await self.snapshot()

        async with self.session_maker() as session:
            last_updated = await PropertyStore(session).last_updated()
        if last_updated is None or to_epoch_ms(last_updated) <= since_ms:
            return None

        return await self.snapshot()

    async def await_update(
        self,
        since_ms: int,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        is_disconnected: Optional[DisconnectCheck] = None
    ) -> UpdateResult:
        """
        Wait until the store changes after ``since_ms`` or ``timeout`` elapses.

        Args:
            since_ms: Client's last seen server timestamp (epoch ms)
            timeout: Maximum wait in seconds
            poll_interval: Longest sleep between store checks, in seconds
            is_disconnected: Polled between waits; True ends the wait early

        Returns:
            UpdateResult with data populated on change, data=None on timeout
            or disconnect
        """
        timeout = self.timeout if timeout is None else timeout
        poll_interval = self.poll_interval if poll_interval is None else poll_interval

        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        seen_version = self.notifier.version

        data = await self._check(since_ms)
        while data is None:
            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            if is_disconnected is not None and await is_disconnected():
                logger.debug("Long-poll client disconnected; releasing waiter")
                break

            if await self.notifier.wait(seen_version, min(poll_interval, remaining)):
                seen_version = self.notifier.version
            data = await self._check(since_ms)

        return UpdateResult(timestamp=self._now_ms(), data=data)
