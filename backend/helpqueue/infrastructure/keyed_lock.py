"""Keyed Lock — arena of asyncio locks, one per actor id.

Invariants:
    - At most one holder per key at a time; other acquirers wait in FIFO order
    - A key's lock is dropped from the arena once nobody holds or waits on it
"""

import asyncio
from collections.abc import Hashable


class KeyedLock:
    """Exclusive per-key locks created on demand."""

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._refs: dict[Hashable, int] = {}

    async def acquire(self, key: Hashable) -> None:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._refs[key] = self._refs.get(key, 0) + 1
        try:
            await lock.acquire()
        except BaseException:
            self._unref(key)
            raise

    def release(self, key: Hashable) -> None:
        self._locks[key].release()
        self._unref(key)

    def locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return lock is not None and lock.locked()

    def __len__(self) -> int:
        return len(self._locks)

    def _unref(self, key: Hashable) -> None:
        self._refs[key] -= 1
        if self._refs[key] == 0:
            del self._refs[key]
            del self._locks[key]
