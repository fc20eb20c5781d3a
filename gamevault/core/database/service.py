"""
Database Service - Core Infrastructure Layer

Purpose
-------
Centralized async database engine and session management for GameVault.
Provides atomic transactions, pessimistic locking, health checks and schema
bootstrap for every player-account and economy operation.

Responsibilities
----------------
- Initialize and manage a single AsyncEngine instance with connection pooling
- Provide async context managers for read sessions and atomic transactions
- Enforce transaction discipline: automatic commit on success, rollback on exception
- Serialize concurrent writers:
  - PostgreSQL: callers lock rows with ``SELECT ... FOR UPDATE``
  - SQLite: write transactions open with ``BEGIN IMMEDIATE``, taking the
    database write lock before the first read
- Configure statement timeouts (PostgreSQL) and busy timeouts (SQLite)
- Create the schema for local runs and tests

Non-Responsibilities
--------------------
- Domain logic or business rules
- Retry policies for transient failures
- Database migrations

Architecture Notes
------------------
**Transaction Model**:
- ``get_transaction()`` is the primary interface for all state mutations
- Automatic commit on success, rollback on any exception
- Never call ``session.commit()`` inside service code

**Connection Pooling**:
- AsyncAdaptedQueuePool in normal operation
- NullPool for testing environments (no connection reuse)

**Configuration** (all from ``Config``):
- DATABASE_URL, DATABASE_POOL_SIZE, DATABASE_MAX_OVERFLOW
- DATABASE_POOL_RECYCLE, DATABASE_POOL_TIMEOUT
- DATABASE_STATEMENT_TIMEOUT_MS, DATABASE_ECHO, SQLITE_BUSY_TIMEOUT

Usage Example
-------------
>>> async with DatabaseService.get_transaction() as session:
>>>     player = await session.get(Player, player_id, with_for_update=True)
>>>     player.credits -= 10
>>>     # Automatic commit on exit

>>> async with DatabaseService.get_session() as session:
>>>     result = await session.execute(select(Player).where(Player.id == player_id))
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncGenerator, Optional, Type, TypeVar

from sqlalchemy import event, text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool, Pool

from gamevault.core.config.config import Config
from gamevault.core.exceptions import (
    DatabaseInitializationError,
    DatabaseNotInitializedError,
)
from gamevault.core.logging.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

# Execution option read by the SQLite "begin" hook
_BEGIN_IMMEDIATE_OPTION = "gamevault_begin_immediate"


# ============================================================================
# Configuration Snapshot
# ============================================================================


@dataclass(frozen=True)
class _DatabaseConfigSnapshot:
    """Immutable snapshot of database configuration for the engine lifetime."""

    url: str
    echo: bool
    pool_class: Optional[Type[Pool]]
    pool_size: int
    max_overflow: int
    pool_recycle: int
    pool_timeout: int
    statement_timeout_ms: int
    sqlite_busy_timeout: int

    @property
    def is_postgres(self) -> bool:
        return self.url.startswith(("postgresql://", "postgresql+asyncpg://"))

    @property
    def is_sqlite(self) -> bool:
        return self.url.startswith("sqlite")

    @property
    def is_sqlite_memory(self) -> bool:
        return self.is_sqlite and (":memory:" in self.url or self.url.rstrip("/").endswith("sqlite+aiosqlite:"))

    @property
    def url_scheme(self) -> str:
        return self.url.split(":", 1)[0] if ":" in self.url else "unknown"


# ============================================================================
# SQLite connection hooks
# ============================================================================


def _install_sqlite_hooks(engine: AsyncEngine, config: _DatabaseConfigSnapshot) -> None:
    """
    Take over SQLite transaction control from the driver.

    The driver's implicit BEGIN is disabled so every transaction is opened
    explicitly: deferred ``BEGIN`` for reads, ``BEGIN IMMEDIATE`` for
    sessions bound to the write engine.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute(f"PRAGMA busy_timeout={config.sqlite_busy_timeout * 1000}")
        if not config.is_sqlite_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        if conn.get_execution_options().get(_BEGIN_IMMEDIATE_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


# ============================================================================
# DatabaseService - Core Infrastructure
# ============================================================================


class DatabaseService:
    """
    Centralized async database engine and session management.

    Public API
    ----------
    **Lifecycle**:
    - initialize() -> Initialize engine and session factory
    - shutdown() -> Dispose engine and cleanup resources
    - create_schema() / drop_schema() -> Bootstrap tables

    **Session Management**:
    - get_session() -> Read-only access
    - get_transaction() -> Atomic write transaction (preferred)

    **Utilities**:
    - health_check() -> Fast database reachability check
    - get_pool_metrics() -> Current connection pool statistics
    - get_locked_entity() -> Helper for pessimistic row locking
    """

    _engine: Optional[AsyncEngine] = None
    _write_engine: Optional[AsyncEngine] = None
    _session_factory: Optional[async_sessionmaker[AsyncSession]] = None
    _config_snapshot: Optional[_DatabaseConfigSnapshot] = None
    _init_lock: asyncio.Lock = asyncio.Lock()

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @classmethod
    def _build_config_snapshot(cls, url: Optional[str] = None) -> _DatabaseConfigSnapshot:
        """
        Build an immutable configuration snapshot from Config.

        Raises
        ------
        DatabaseInitializationError
            If DATABASE_URL is missing or invalid.
        """
        database_url = url or getattr(Config, "DATABASE_URL", None)
        if not database_url or not isinstance(database_url, str):
            logger.error("DATABASE_URL is not configured or invalid")
            raise DatabaseInitializationError(
                "DATABASE_URL must be configured as a non-empty string"
            )

        is_testing = Config.is_testing()
        is_memory = database_url.startswith("sqlite") and ":memory:" in database_url

        pool_class: Optional[Type[Pool]]
        if is_memory:
            # Driver default (StaticPool) keeps the single in-memory database alive
            pool_class = None
        elif is_testing:
            pool_class = NullPool
        else:
            pool_class = AsyncAdaptedQueuePool

        snapshot = _DatabaseConfigSnapshot(
            url=database_url,
            echo=bool(getattr(Config, "DATABASE_ECHO", False)),
            pool_class=pool_class,
            pool_size=int(getattr(Config, "DATABASE_POOL_SIZE", 10)),
            max_overflow=int(getattr(Config, "DATABASE_MAX_OVERFLOW", 10)),
            pool_recycle=int(getattr(Config, "DATABASE_POOL_RECYCLE", 1800)),
            pool_timeout=int(getattr(Config, "DATABASE_POOL_TIMEOUT", 30)),
            statement_timeout_ms=int(
                getattr(Config, "DATABASE_STATEMENT_TIMEOUT_MS", 30_000)
            ),
            sqlite_busy_timeout=int(getattr(Config, "SQLITE_BUSY_TIMEOUT", 30)),
        )

        logger.debug(
            "Database configuration snapshot created",
            extra={
                "url_scheme": snapshot.url_scheme,
                "pool_class": pool_class.__name__ if pool_class else "default",
                "pool_size": snapshot.pool_size,
                "statement_timeout_ms": snapshot.statement_timeout_ms,
                "is_testing": is_testing,
            },
        )

        return snapshot

    @classmethod
    async def initialize(cls, url: Optional[str] = None) -> None:
        """
        Initialize the database engine and session factory.

        Idempotent: returns immediately if already initialized.

        Args:
            url: Optional database URL overriding ``Config.DATABASE_URL``

        Raises:
            DatabaseInitializationError: If configuration is invalid or engine
                creation fails.
        """
        async with cls._init_lock:
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            logger.info("Initializing DatabaseService")

            try:
                config = cls._build_config_snapshot(url)

                engine_kwargs: dict[str, Any] = {"echo": config.echo}
                if config.pool_class is not None:
                    engine_kwargs["poolclass"] = config.pool_class

                if config.pool_class is AsyncAdaptedQueuePool:
                    engine_kwargs.update(
                        {
                            "pool_size": config.pool_size,
                            "max_overflow": config.max_overflow,
                            "pool_recycle": config.pool_recycle,
                            "pool_timeout": config.pool_timeout,
                            "pool_pre_ping": True,
                        }
                    )

                if config.is_sqlite:
                    engine_kwargs["connect_args"] = {
                        "timeout": config.sqlite_busy_timeout
                    }

                engine = create_async_engine(config.url, **engine_kwargs)
                if config.is_sqlite:
                    _install_sqlite_hooks(engine, config)

                cls._engine = engine
                cls._write_engine = engine.execution_options(
                    **{_BEGIN_IMMEDIATE_OPTION: True}
                )
                cls._session_factory = async_sessionmaker(
                    bind=engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                )
                cls._config_snapshot = config

                logger.info(
                    "DatabaseService initialized successfully",
                    extra={
                        "url_scheme": config.url_scheme,
                        "pool_class": (
                            config.pool_class.__name__ if config.pool_class else "default"
                        ),
                    },
                )

            except Exception as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                cls._engine = None
                cls._write_engine = None
                cls._session_factory = None
                cls._config_snapshot = None
                if isinstance(exc, DatabaseInitializationError):
                    raise
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

    @classmethod
    async def shutdown(cls) -> None:
        """Dispose the engine and reset state. Safe to call multiple times."""
        async with cls._init_lock:
            if cls._engine is None:
                logger.debug("DatabaseService not initialized; nothing to shutdown")
                return

            logger.info("Shutting down DatabaseService")

            try:
                await cls._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                cls._engine = None
                cls._write_engine = None
                cls._session_factory = None
                cls._config_snapshot = None

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    # ========================================================================
    # Schema
    # ========================================================================

    @classmethod
    async def create_schema(cls) -> None:
        """Create every table registered on ``Base.metadata`` (no-op if present)."""
        cls._ensure_initialized()
        assert cls._engine is not None

        from gamevault.database.models import Base

        async with cls._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        logger.info(
            "Database schema ensured",
            extra={"table_count": len(Base.metadata.tables)},
        )

    @classmethod
    async def drop_schema(cls) -> None:
        cls._ensure_initialized()
        assert cls._engine is not None

        from gamevault.database.models import Base

        async with cls._engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        logger.warning("Database schema dropped")

    # ========================================================================
    # Health Check
    # ========================================================================

    @classmethod
    async def health_check(cls) -> bool:
        """
        Perform a lightweight ``SELECT 1``.

        Returns False instead of raising when the database is unreachable.
        """
        if cls._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        start = time.perf_counter()
        success = False

        try:
            async with cls._engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            success = True
            return True

        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False

        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            logger.debug(
                "Database health check completed",
                extra={"success": success, "duration_ms": duration_ms},
            )

    @classmethod
    def get_pool_metrics(cls) -> dict[str, int]:
        """Current pool statistics; zeros for NullPool or before initialize()."""
        empty = {"pool_size": 0, "checked_out": 0, "overflow": 0}
        if cls._engine is None:
            return empty

        pool = cls._engine.pool
        if not isinstance(pool, AsyncAdaptedQueuePool):
            return empty

        return {
            "pool_size": pool.size(),
            "checked_out": pool.checkedout(),
            "overflow": pool.overflow(),
        }

    # ========================================================================
    # Session & Transaction Context Managers
    # ========================================================================

    @classmethod
    def _ensure_initialized(cls) -> None:
        if cls._session_factory is None or cls._engine is None:
            logger.error("DatabaseService operation attempted before initialization")
            raise DatabaseNotInitializedError(
                "DatabaseService must be initialized before use. "
                "Call DatabaseService.initialize() during startup."
            )

    @classmethod
    def _get_config_snapshot(cls) -> _DatabaseConfigSnapshot:
        if cls._config_snapshot is None:
            raise DatabaseNotInitializedError("DatabaseService is not initialized")
        return cls._config_snapshot

    @classmethod
    def is_postgres(cls) -> bool:
        return cls._config_snapshot is not None and cls._config_snapshot.is_postgres

    @classmethod
    @asynccontextmanager
    async def get_session(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session without automatic commit.

        For read-only operations. The session is closed on exit; any open
        transaction is discarded.

        Raises:
            DatabaseNotInitializedError: If DatabaseService has not been initialized.
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory() as session:
            config = cls._get_config_snapshot()

            try:
                if config.is_postgres:
                    await session.execute(
                        text(f"SET LOCAL statement_timeout = {config.statement_timeout_ms}")
                    )

                yield session

            finally:
                await session.close()
                logger.debug(
                    "Database session closed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

    @classmethod
    @asynccontextmanager
    async def get_transaction(cls) -> AsyncGenerator[AsyncSession, None]:
        """
        Create a database session wrapped in an atomic transaction.

        This is the **primary interface for all state mutations**.

        On success the transaction commits; on any exception it rolls back
        and the original exception is re-raised. On SQLite the transaction
        holds the database write lock from its first statement.

        Raises:
            DatabaseNotInitializedError: If DatabaseService has not been initialized.
            IntegrityError: When a unique/check constraint rejects the write.
            OperationalError: For connection or lock-timeout problems.
        """
        cls._ensure_initialized()
        assert cls._session_factory is not None

        start = time.perf_counter()
        async with cls._session_factory(bind=cls._write_engine) as session:
            config = cls._get_config_snapshot()

            try:
                if config.is_postgres:
                    await session.execute(
                        text(f"SET LOCAL statement_timeout = {config.statement_timeout_ms}")
                    )

                yield session

                await session.commit()
                logger.debug(
                    "Database transaction committed",
                    extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
                )

            except IntegrityError as exc:
                await session.rollback()
                logger.warning(
                    "IntegrityError in transaction; rolled back",
                    extra={
                        "error": str(exc.orig),
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

            except (OperationalError, DBAPIError) as exc:
                await session.rollback()
                logger.error(
                    f"{type(exc).__name__} in transaction; rolled back",
                    extra={
                        "error": str(exc),
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                    exc_info=True,
                )
                raise

            except Exception as exc:
                await session.rollback()
                logger.debug(
                    "Transaction aborted; rolled back",
                    extra={
                        "error_type": type(exc).__name__,
                        "duration_ms": (time.perf_counter() - start) * 1000.0,
                    },
                )
                raise

            finally:
                await session.close()

    # ========================================================================
    # Pessimistic Locking Helper
    # ========================================================================

    @classmethod
    async def get_locked_entity(
        cls,
        session: AsyncSession,
        model: Type[T],
        primary_key: Any,
    ) -> Optional[T]:
        """
        Fetch an entity with ``SELECT ... FOR UPDATE``.

        Must be used within a ``get_transaction()`` context. SQLite ignores
        the row lock; the surrounding ``BEGIN IMMEDIATE`` already holds the
        database write lock.
        """
        return await session.get(model, primary_key, with_for_update=True)
