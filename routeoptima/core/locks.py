"""
In-process keyed locking for dispatch transitions.

Each key ("order:12", "driver:7") maps to its own asyncio.Lock. Keys for a
single operation are always taken in sorted order so that two operations
touching overlapping records cannot deadlock.
"""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Iterable, List


class KeyedLock:
    """Reference-counted map of asyncio locks, one per key."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._waiters: Dict[str, int] = {}

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
            self._waiters[key] = 0
        self._waiters[key] += 1
        return lock

    def _checkin(self, key: str) -> None:
        self._waiters[key] -= 1
        if self._waiters[key] == 0:
            del self._waiters[key]
            del self._locks[key]

    @asynccontextmanager
    async def hold(self, keys: Iterable[str]) -> AsyncIterator[None]:
        """Acquire every key (deduplicated, sorted) for the duration of the block."""
        ordered = sorted(set(keys))
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                try:
                    await lock.acquire()
                except BaseException:
                    self._checkin(key)
                    raise
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
                self._checkin(key)

    def held_keys(self) -> List[str]:
        """Keys currently locked or awaited (for diagnostics)."""
        return sorted(self._locks)


def order_key(order_id: int) -> str:
    return f"order:{order_id}"


def driver_key(driver_id: int) -> str:
    return f"driver:{driver_id}"
