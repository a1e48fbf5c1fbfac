"""
RedisService: async Redis access for the Arise economy

Purpose
-------
Provide a singleton ``redis.asyncio`` client with observable KV and JSON
operations. Used by the game-state cache; never required for correctness.

Responsibilities
----------------
- Initialize and manage a singleton Redis connection pool from ``REDIS_URL``
- Expose get/set/delete and whole-document JSON helpers
- Translate ``RedisError`` into ``CacheError`` with the key and operation
- Log every operation with latency at DEBUG

Non-Responsibilities
--------------------
- Deciding what a cache failure means (callers degrade to the database)
- Business logic of any kind

Configuration Keys
------------------
- REDIS_URL             : str (empty disables Redis)
- REDIS_SOCKET_TIMEOUT  : int seconds (default 5)
"""

from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Optional

from redis.asyncio.client import Redis as AsyncRedis  # type: ignore[misc]
from redis.exceptions import RedisError

from arise.core.config.config import Config
from arise.core.exceptions import CacheError, ConfigurationError
from arise.core.logging.logger import get_logger

logger = get_logger(__name__)


class RedisService:
    """
    Singleton async Redis client with logged KV/JSON operations.

    All operations raise ``CacheError`` on Redis failures and
    ``CacheError("client", ...)`` when used before ``initialize()``.
    """

    _client: Optional[AsyncRedis] = None
    _init_lock: Optional[asyncio.Lock] = None
    _is_healthy: bool = False

    # ═══════════════════════════════════════════════════════════════════════
    # LIFECYCLE MANAGEMENT
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    def is_configured(cls) -> bool:
        return bool(Config.REDIS_URL)

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._client is not None

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Connect and PING. Idempotent.

        Raises
        ------
        ConfigurationError
            If no URL is given and ``REDIS_URL`` is empty.
        CacheError
            If the server cannot be reached.
        """
        async with cls._lock():
            if cls._client is not None:
                logger.debug("RedisService already initialized, skipping")
                return

            redis_url = url or Config.REDIS_URL
            if not redis_url:
                raise ConfigurationError("REDIS_URL", "REDIS_URL is not configured")

            start_time = time.monotonic()
            client: AsyncRedis = AsyncRedis.from_url(
                redis_url,
                socket_timeout=Config.REDIS_SOCKET_TIMEOUT,
                encoding="utf-8",
                decode_responses=True,
                retry_on_timeout=False,
                health_check_interval=30,
            )
            try:
                await client.ping()  # type: ignore[misc]
            except RedisError as exc:
                await client.aclose()
                logger.critical(
                    "Failed to initialize RedisService",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "url_scheme": redis_url.split("://")[0] if "://" in redis_url else "unknown",
                    },
                    exc_info=True,
                )
                raise CacheError("initialize", "*", exc) from exc

            cls._client = client
            cls._is_healthy = True
            logger.info(
                "RedisService initialized successfully",
                extra={
                    "url_scheme": redis_url.split("://")[0] if "://" in redis_url else "unknown",
                    "socket_timeout_seconds": Config.REDIS_SOCKET_TIMEOUT,
                    "initialization_time_ms": round((time.monotonic() - start_time) * 1000, 2),
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Close the client. Safe to call even if not initialized."""
        client = cls._client
        cls._client = None
        cls._is_healthy = False
        if client is None:
            logger.debug("RedisService not initialized, nothing to shutdown")
            return
        await client.aclose()
        logger.info("RedisService shutdown complete")

    # ═══════════════════════════════════════════════════════════════════════
    # HEALTH
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def health_check(cls) -> bool:
        if cls._client is None:
            logger.warning("Health check failed: RedisService not initialized")
            cls._is_healthy = False
            return False
        try:
            await cls._client.ping()  # type: ignore[misc]
            cls._is_healthy = True
        except RedisError as exc:
            logger.warning(
                "Redis health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            cls._is_healthy = False
        return cls._is_healthy

    @classmethod
    def client(cls) -> AsyncRedis:
        if cls._client is None:
            raise CacheError("client", "*", RuntimeError("RedisService is not initialized"))
        return cls._client

    # ═══════════════════════════════════════════════════════════════════════
    # KEY-VALUE OPERATIONS
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def get(cls, key: str) -> Optional[str]:
        start_time = time.monotonic()
        try:
            result = await cls.client().get(key)
        except RedisError as exc:
            logger.error(
                "Redis GET operation failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise CacheError("get", key, exc) from exc
        logger.debug(
            "Redis GET operation",
            extra={
                "key": key,
                "found": result is not None,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return result

    @classmethod
    async def set(cls, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        start_time = time.monotonic()
        try:
            result = await cls.client().set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            logger.error(
                "Redis SET operation failed",
                extra={"key": key, "ttl_seconds": ttl_seconds, "error": str(exc)},
            )
            raise CacheError("set", key, exc) from exc
        logger.debug(
            "Redis SET operation",
            extra={
                "key": key,
                "ttl_seconds": ttl_seconds,
                "latency_ms": round((time.monotonic() - start_time) * 1000, 2),
            },
        )
        return bool(result)

    @classmethod
    async def delete(cls, key: str) -> int:
        try:
            deleted = int(await cls.client().delete(key))
        except RedisError as exc:
            logger.error(
                "Redis DELETE operation failed",
                extra={"key": key, "error": str(exc), "error_type": type(exc).__name__},
            )
            raise CacheError("delete", key, exc) from exc
        logger.debug("Redis DELETE operation", extra={"key": key, "deleted_count": deleted})
        return deleted

    # ═══════════════════════════════════════════════════════════════════════
    # JSON HELPERS (whole document)
    # ═══════════════════════════════════════════════════════════════════════

    @classmethod
    async def get_json(cls, key: str) -> Optional[Any]:
        raw = await cls.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError as exc:
            raise CacheError("get_json", key, exc) from exc

    @classmethod
    async def set_json(cls, key: str, value: Any, ttl_seconds: Optional[int] = None) -> bool:
        payload = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        return await cls.set(key, payload, ttl_seconds=ttl_seconds)
