"""Per-venue serialization for the booking check-then-insert sequence."""

import asyncio
import logging
import weakref
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)


class VenueLocks:
    """
    Registry of in-process ``asyncio.Lock`` objects keyed by venue ID.

    Locks are held weakly and disappear once no coroutine holds or awaits them.
    One registry is created per application and shared by every request.
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, db: AsyncSession, venue_id: str) -> AsyncIterator[None]:
        """
        Serialize writers for one venue, in-process and in the database.

        On PostgreSQL a transaction-scoped advisory lock is taken as well, so
        separate worker processes are serialized too. It is released when the
        surrounding transaction commits or rolls back.
        """
        lock = self._lock_for(venue_id)
        async with lock:
            if db.get_bind().dialect.name == "postgresql":
                await db.execute(
                    text("SELECT pg_advisory_xact_lock(hashtext(:venue_id))"),
                    {"venue_id": venue_id},
                )
                logger.debug("Acquired advisory lock for venue", extra={"venue_id": venue_id})
            yield
