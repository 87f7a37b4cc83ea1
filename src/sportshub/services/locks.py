"""Keyed asyncio locks — one mutual-exclusion scope per key.

Learn: Roster changes for the same event must not interleave at await
points. A KeyedLock hands out one asyncio.Lock per key and forgets it
as soon as nobody holds or waits on it, so the map never grows with
the number of events ever touched.

This serialises work inside one process only. The database-side
conditional UPDATE in RosterService is what keeps capacity correct
across processes.
"""

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class KeyedLock:
    """A lazily-populated map of key → asyncio.Lock."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._holders: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._holders[key] = self._holders.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[key] -= 1
            if self._holders[key] == 0:
                del self._holders[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
