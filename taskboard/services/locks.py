# services/locks.py

import asyncio
import contextlib
from typing import AsyncIterator, Dict, Iterable


class KeyedLocks:
    """
    In-process asyncio locks keyed by entity ("tasks:<id>", "users:<id>").

    Holding an entity's lock across read-previous, primary write and
    reconciliation keeps two requests in this process from reconciling the
    same entity against the same stale snapshot. Other processes are not covered.
    Locks are dropped once nobody holds or waits on them.
    """

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._locks: Dict[str, asyncio.Lock] = {}
        self._users: Dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def hold(self, *keys: str) -> AsyncIterator[None]:
        if not self.enabled:
            yield
            return
        # sorted acquisition order so two multi-key holders cannot deadlock
        ordered = sorted(set(keys))
        checked_out = []
        acquired = []
        try:
            for key in ordered:
                lock = self._checkout(key)
                checked_out.append(key)
                await lock.acquire()
                acquired.append(key)
            yield
        finally:
            for key in reversed(acquired):
                self._locks[key].release()
            self._release(checked_out)

    def _checkout(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        self._users[key] = self._users.get(key, 0) + 1
        return lock

    def _release(self, keys: Iterable[str]) -> None:
        for key in keys:
            self._users[key] -= 1
            if self._users[key] <= 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)


def entity_key(kind: str, entity_id: str) -> str:
    return f"{kind}:{entity_id}"
