"""
Per-user mutation serialization for a single process.

Every state-changing operation for a user runs while holding that user's
lock, so two requests can never validate against the same pre-mutation
snapshot. Multi-instance deployments additionally rely on the repository's
version check.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict


class UserLockRegistry:
    """Lazily created ``asyncio.Lock`` per user id, dropped when idle."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = {}
        self._holders: Dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(user_id, asyncio.Lock())
        self._holders[user_id] = self._holders.get(user_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[user_id] -= 1
            if self._holders[user_id] == 0:
                del self._holders[user_id]
                del self._locks[user_id]

    def active_users(self) -> int:
        return len(self._locks)


class NoLockRegistry(UserLockRegistry):
    """Registry that never blocks; concurrency is left to the version check."""

    @asynccontextmanager
    async def hold(self, user_id: str) -> AsyncIterator[None]:
        yield
