"""
Database Service - Core Infrastructure Layer

Purpose
-------
Centralized async database engine and session management for the Arise
economy. Provides atomic transactions for the game-state repository and a
health check for infrastructure monitoring.

Responsibilities
----------------
- Initialize and manage a single AsyncEngine instance with connection pooling
- Provide async context managers for read-only sessions and atomic transactions
- Enforce transaction discipline: automatic commit on success, rollback on exception
- Translate driver failures (SQLAlchemyError) into ``DatabaseError``
- Configure statement timeouts for PostgreSQL connections
- Create tables for tests and local development (``create_all``)

Non-Responsibilities
--------------------
- Game rules, version checks or idempotency (see arise.modules.game)
- Database migrations in production

Architecture Notes
------------------
**Transaction Model**:
- `get_transaction()` is the interface for all state mutations
- Automatic commit on success, rollback on any exception
- Never call `session.commit()` inside repository code

**Connection Pooling**:
- QueuePool for PostgreSQL outside tests (pool_size, max_overflow, pool_recycle)
- NullPool for SQLite and testing environments (no connection reuse)

Usage Example
-------------
>>> async with DatabaseService.get_transaction() as session:
>>>     row = await session.get(GameStateRow, user_id)
>>>     row.essence += 10
>>>     # Automatic commit on exit

Error Handling
--------------
**DatabaseNotInitializedError** - session requested before ``initialize()``
or after ``shutdown()``.

**DatabaseError** - any SQLAlchemyError raised inside a session or
transaction block; the transaction is rolled back first.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Dict, Optional, Type

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, Pool

from arise.core.config.config import Config
from arise.core.database.base import Base
from arise.core.exceptions import ConfigurationError, DatabaseError, DatabaseNotInitializedError
from arise.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Configuration Snapshot
# ============================================================================


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Immutable view of the database settings for the lifetime of the engine."""

    url: str
    echo: bool
    pool_class: Type[Pool]
    pool_size: int
    max_overflow: int
    pool_recycle: int
    statement_timeout_ms: int

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith(("postgresql://", "postgresql+asyncpg://"))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


# ============================================================================
# DatabaseService - Core Infrastructure
# ============================================================================


class DatabaseService:
    """
    Centralized async database engine and session management.

    Public API
    ----------
    **Lifecycle**:
    - initialize(url=None) -> Initialize engine and session factory
    - shutdown() -> Dispose engine and cleanup resources
    - create_all() -> Create every table registered on ``Base``

    **Session Management**:
    - get_session() -> Read-only access
    - get_transaction() -> Atomic write transaction

    **Utilities**:
    - health_check() -> Fast database reachability check
    - is_initialized() -> Whether an engine exists
    """

    _engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _config_snapshot: Optional[_DatabaseConfigSnapshot] = None
    _init_lock: Optional[asyncio.Lock] = None

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @classmethod
    def _lock(cls) -> asyncio.Lock:
        # Created lazily so the lock binds to the running event loop
        if cls._init_lock is None:
            cls._init_lock = asyncio.Lock()
        return cls._init_lock

    @classmethod
    def _build_config_snapshot(cls, url: Optional[str] = None) -> _DatabaseConfigSnapshot:
        database_url = url or Config.DATABASE_URL
        if not database_url:
            raise ConfigurationError("DATABASE_URL", "DATABASE_URL must be a non-empty string")

        use_null_pool = Config.is_testing() or database_url.startswith("sqlite")
        snapshot = _DatabaseConfigSnapshot(
            url=database_url,
            echo=Config.DATABASE_ECHO,
            pool_class=NullPool if use_null_pool else AsyncAdaptedQueuePool,
            pool_size=Config.DATABASE_POOL_SIZE,
            max_overflow=Config.DATABASE_MAX_OVERFLOW,
            pool_recycle=Config.DATABASE_POOL_RECYCLE,
            statement_timeout_ms=Config.DATABASE_STATEMENT_TIMEOUT_MS,
        )

        logger.debug(
            "Database configuration snapshot created",
            extra={
                "url_scheme": snapshot.url_scheme,
                "pool_class": snapshot.pool_class.__name__,
                "pool_size": snapshot.pool_size,
                "max_overflow": snapshot.max_overflow,
            },
        )
        return snapshot

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Initialize the database engine and session factory.

        Idempotent: returns immediately if already initialized.

        Args:
            url: Overrides ``Config.DATABASE_URL`` (tests pass a SQLite URL)

        Raises:
            ConfigurationError: If no database URL is configured
            DatabaseError: If engine creation fails
        """
        async with cls._lock():
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            config = cls._build_config_snapshot(url)
            engine_kwargs: Dict[str, Any] = {
                "echo": config.echo,
                "poolclass": config.pool_class,
            }
            if config.pool_class is not NullPool:
                engine_kwargs.update(
                    {
                        "pool_size": config.pool_size,
                        "max_overflow": config.max_overflow,
                        "pool_recycle": config.pool_recycle,
                        "pool_pre_ping": True,
                    }
                )

            try:
                cls._engine = create_async_engine(config.url, **engine_kwargs)
            except (SQLAlchemyError, ImportError) as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseError("initialize", exc) from exc

            cls._session_factory = async_sessionmaker(
                bind=cls._engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
            cls._config_snapshot = config

            logger.info(
                "DatabaseService initialized successfully",
                extra={
                    "url_scheme": config.url_scheme,
                    "pool_class": config.pool_class.__name__,
                },
            )

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine. Safe to call multiple times."""
        async with cls._lock():
            if cls._engine is None:
                logger.debug("DatabaseService not initialized; nothing to shutdown")
                return

            logger.info("Shutting down DatabaseService")
            try:
                await cls._engine.dispose()
            finally:
                cls._engine = None
                cls._session_factory = None
                cls._config_snapshot = None
            logger.info("DatabaseService shutdown complete")

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    @classmethod
    async def create_all(cls) -> None:
        """Create all tables registered on ``Base.metadata``."""
        cls._ensure_initialized()
        assert cls._engine is not None

        # Register the ORM tables on the metadata
        import arise.database.models  # noqa: F401

        try:
            async with cls._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as exc:
            raise DatabaseError("create_all", exc) from exc
        logger.info("Database tables created", extra={"tables": sorted(Base.metadata.tables)})

    # ========================================================================
    # Health Check
    # ========================================================================

    @classmethod
    async def health_check(cls) -> bool:
        """
        Execute ``SELECT 1``.

        Returns False instead of raising when the database is unreachable.
        """
        if cls._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        start = time.perf_counter()
        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        finally:
            logger.debug(
                "Database health check completed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )

    # ========================================================================
    # Session & Transaction Context Managers
    # ========================================================================

    @classmethod
    def _ensure_initialized(cls) -> None:
        if cls._session_factory is None or cls._engine is None:
            logger.error("DatabaseService operation attempted before initialization")
            raise DatabaseNotInitializedError()

    @classmethod
    async def _apply_statement_timeout(cls, session: AsyncSession) -> None:
        config = cls._config_snapshot
        if config is not None and config.is_postgres:
            await session.execute(
                text(f"SET LOCAL statement_timeout = {config.statement_timeout_ms}")
            )

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Session without automatic commit, for reads.

        Raises:
            DatabaseNotInitializedError: Before ``initialize()``
            DatabaseError: On any SQLAlchemyError inside the block
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory() as session:
            try:
                await cls._apply_statement_timeout(session)
                yield session
            except SQLAlchemyError as exc:
                logger.error(
                    "Database error in read session",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                )
                raise DatabaseError("session", exc) from exc
            finally:
                logger.debug(
                    "Database session closed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Session wrapped in an atomic transaction.

        Commits on success. On any exception the transaction is rolled back;
        SQLAlchemy errors are re-raised as ``DatabaseError`` and everything
        else (including ``ConcurrentModificationError``) propagates unchanged.
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory() as session:
            try:
                await cls._apply_statement_timeout(session)
                yield session
                await session.commit()
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )
            except SQLAlchemyError as exc:
                await session.rollback()
                logger.error(
                    "Database error in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise DatabaseError("transaction", exc) from exc
            except BaseException:
                await session.rollback()
                logger.debug("Database transaction rolled back")
                raise
