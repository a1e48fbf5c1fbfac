"""
Game-state snapshot caching for Arise.

Purpose
-------
Read-through cache for the read-only snapshot path. Mutations never read
from here; every commit and reset invalidates the user's entry so the next
read falls through to persistence.

Responsibilities
----------------
- Store full-state snapshots as JSON under a versioned key
- Invalidate a user's entry after commits
- Graceful degradation: Redis failures are logged and treated as a miss

Non-Responsibilities
--------------------
- Correctness of game state (the repository is the source of truth)
- Connection management (see arise.core.redis)

Key Format
----------
``arise:v1:game_state:{user_id}``
"""

from __future__ import annotations

import time
from typing import Any, Dict, Optional, Protocol

from arise.core.config.config import Config
from arise.core.exceptions import CacheError
from arise.core.logging.logger import get_logger
from arise.core.redis.service import RedisService

logger = get_logger(__name__)


class JsonStore(Protocol):
    async def get_json(self, key: str) -> Optional[Any]: ...

    async def set_json(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool: ...

    async def delete(self, key: str) -> int: ...


class GameStateCache:
    """
    Snapshot cache backed by ``RedisService`` (or any ``JsonStore``).

    Every method swallows ``CacheError`` after logging it: a cache outage
    costs latency, never correctness.
    """

    KEY_TEMPLATE = "arise:v1:game_state:{user_id}"

    def __init__(self, store: Any = RedisService, ttl_seconds: Optional[int] = None) -> None:
        self._store: JsonStore = store
        self._ttl = ttl_seconds if ttl_seconds is not None else Config.GAME_STATE_CACHE_TTL

    @classmethod
    def key_for(cls, user_id: str) -> str:
        return cls.KEY_TEMPLATE.format(user_id=user_id)

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        key = self.key_for(user_id)
        start = time.perf_counter()
        try:
            snapshot = await self._store.get_json(key)
        except CacheError as exc:
            logger.warning(
                "Game state cache read failed; falling back to database",
                extra={"user_id": user_id, "error": str(exc)},
            )
            return None

        logger.debug(
            "Game state cache lookup",
            extra={
                "user_id": user_id,
                "hit": snapshot is not None,
                "latency_ms": round((time.perf_counter() - start) * 1000, 2),
            },
        )
        return snapshot

    async def set(self, user_id: str, snapshot: Dict[str, Any]) -> bool:
        try:
            return await self._store.set_json(self.key_for(user_id), snapshot, ttl_seconds=self._ttl)
        except CacheError as exc:
            logger.warning(
                "Game state cache write failed",
                extra={"user_id": user_id, "error": str(exc)},
            )
            return False

    async def invalidate(self, user_id: str) -> bool:
        try:
            await self._store.delete(self.key_for(user_id))
        except CacheError as exc:
            logger.warning(
                "Game state cache invalidation failed",
                extra={"user_id": user_id, "error": str(exc)},
            )
            return False
        logger.debug("Game state cache invalidated", extra={"user_id": user_id})
        return True


class NullGameStateCache(GameStateCache):
    """Cache that never stores anything; used when Redis is not configured."""

    def __init__(self) -> None:
        super().__init__(store=None, ttl_seconds=0)

    async def get(self, user_id: str) -> Optional[Dict[str, Any]]:
        return None

    async def set(self, user_id: str, snapshot: Dict[str, Any]) -> bool:
        return False

    async def invalidate(self, user_id: str) -> bool:
        return True


def build_game_state_cache() -> GameStateCache:
    """Redis-backed cache when ``REDIS_URL`` is set, otherwise a no-op cache."""
    if RedisService.is_configured():
        return GameStateCache()
    return NullGameStateCache()
