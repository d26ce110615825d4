"""Per-key async mutual exclusion.

Requests for the same cache key run their lookup → transform → write
sequence one at a time; different keys never wait on each other.
Scoped to one event loop. No cross-process locking is attempted.
"""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager


class KeyedLock:
    """
    Map of cache key to asyncio.Lock, created on demand.

    A key's lock is dropped once nobody holds or waits for it, so the map
    only grows with the number of keys currently in flight.

    Example:
        >>> locks = KeyedLock()
        >>> async with locks.hold("3f2a..."):
        ...     record = await store.lookup("3f2a...")
    """

    def __init__(self) -> None:
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        """Acquire the lock for ``key`` for the duration of the block."""
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def locked(self, key: str) -> bool:
        """True while some task holds the lock for ``key``."""
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)
