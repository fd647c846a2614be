"""Per-record serialization for workflow operations.

Database transactions with row locks and version checks protect records
across processes. Inside one process, ``RecordLocks`` additionally queues
operations on the same record so that, for example, two ``take`` calls on
one reclamation run one after the other and the second observes the first
one's result instead of failing at flush time.

Keys are ``(kind, id)`` tuples. When an operation needs both a reclamation
and its project, it takes the reclamation key first.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Hashable
from contextlib import asynccontextmanager


class RecordLocks:
    """Registry of asyncio locks keyed by record.

    Locks are created on first use and dropped once no coroutine holds or
    waits for them, so the registry does not grow with the number of
    records ever touched.
    """

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}
        self._guard = asyncio.Lock()

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        """Hold the lock for ``key`` for the duration of the block."""
        async with self._guard:
            lock = self._locks.setdefault(key, asyncio.Lock())
            self._users[key] = self._users.get(key, 0) + 1

        try:
            async with lock:
                yield
        finally:
            async with self._guard:
                self._users[key] -= 1
                if self._users[key] == 0:
                    del self._users[key]
                    del self._locks[key]

    def held(self, key: Hashable) -> bool:
        """Whether any coroutine currently holds or waits for ``key``."""
        return key in self._locks

    def __len__(self) -> int:
        return len(self._locks)
