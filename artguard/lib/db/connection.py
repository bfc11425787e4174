"""Database connection management.

Provides async database operations using aiosqlite for non-blocking
database access throughout the application.

Connection Patterns
-------------------
Two connection patterns are supported, chosen automatically by get_db():

1. **Persistent Connection** (dispatch service)
   - Call init_db() once at startup to open a long-lived connection
   - All subsequent get_db() calls reuse this connection
   - Call close_db() on shutdown to close the connection

2. **Connection Pool** (web server)
   - If init_db() was NOT called, get_db() uses a connection pool
   - Connections are reused across requests (up to db_pool_size)
   - Pool is closed when close_db() is called

The pattern is transparent to calling code - just use get_db() and the
appropriate connection type is selected based on whether init_db() was called.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import cache
from pathlib import Path
from typing import Any, cast

import aiosqlite

from artguard.lib.config import get_settings
from artguard.lib.db.types import SQLParams
from artguard.lib.exceptions import DatabaseNotConnectedError, StorageError
from artguard.logging import get_logger

_logger = get_logger("lib.db")

# SQL templates directory
_SQL_DIR = Path(__file__).resolve().parent.parent / "sql"

SCHEMA_TEMPLATES = (
    "init_artifact_table.sql",
    "init_material_table.sql",
    "init_artifact_material_table.sql",
    "init_alert_table.sql",
    "idx_alert.sql",
    "init_notification_log_table.sql",
)

_DRIVER_ERRORS = (aiosqlite.Error, OSError)


@cache
def load_template(name: str) -> str:
    """Load and cache a SQL template file.

    Templates are lazy-loaded on first access and cached for subsequent calls.

    Raises:
        FileNotFoundError: If the template file does not exist, with a message
            indicating the expected location.
    """
    path = _SQL_DIR / name
    if not path.exists():
        raise FileNotFoundError(f"SQL template not found: {path}")
    return path.read_text()


def _dict_factory(
    cursor: aiosqlite.Cursor, row: tuple[Any, ...]
) -> dict[str, Any]:
    """Convert a row to a dictionary using column names."""
    desc: tuple[Any, ...] = cursor.description or ()
    return {col[0]: row[idx] for idx, col in enumerate(desc)}


@asynccontextmanager
async def storage_errors(operation: str) -> AsyncIterator[None]:
    """Re-raise driver failures as StorageError."""
    try:
        yield
    except _DRIVER_ERRORS as e:
        raise StorageError(f"{operation} failed: {e}") from e


class Database:
    """Async database connection wrapper."""

    def __init__(self, db_path: str | None = None):
        self._db_path = db_path or get_settings().db_path
        self._connection: aiosqlite.Connection | None = None
        self._in_transaction = False

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    async def connect(self) -> None:
        """Open the database connection."""
        if self._connection is None:
            self._connection = await aiosqlite.connect(
                self._db_path,
                timeout=get_settings().db_timeout_sec,
            )
            self._connection.row_factory = _dict_factory  # type: ignore[assignment]

    async def close(self) -> None:
        """Close the database connection."""
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    async def __aenter__(self) -> Database:
        await self.connect()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[None]:
        """Context manager for database transactions.

        All operations within the context are committed together on success,
        or rolled back if an exception occurs.
        """
        if self._connection is None:
            raise DatabaseNotConnectedError()
        self._in_transaction = True
        await self._connection.execute("BEGIN")
        try:
            yield
            await self._connection.commit()
        except Exception:
            await self._connection.rollback()
            raise
        finally:
            self._in_transaction = False

    async def execute(self, sql: str, params: SQLParams = ()) -> int:
        """Execute a SQL statement.

        Auto-commits unless inside a transaction() context.

        Returns:
            Number of rows affected by the statement.
        """
        if self._connection is None:
            raise DatabaseNotConnectedError()
        cursor = await self._connection.execute(sql, params)
        if not self._in_transaction:
            await self._connection.commit()
        return cursor.rowcount

    async def executescript(self, sql: str) -> None:
        """Execute multiple SQL statements."""
        if self._connection is None:
            raise DatabaseNotConnectedError()
        await self._connection.executescript(sql)

    async def fetchone(
        self, sql: str, params: SQLParams = ()
    ) -> dict[str, Any] | None:
        """Fetch a single row."""
        if self._connection is None:
            raise DatabaseNotConnectedError()
        async with self._connection.execute(sql, params) as cursor:
            row = await cursor.fetchone()
            return cast(dict[str, Any] | None, row)

    async def fetchall(
        self, sql: str, params: SQLParams = ()
    ) -> list[dict[str, Any]]:
        """Fetch all rows."""
        if self._connection is None:
            raise DatabaseNotConnectedError()
        async with self._connection.execute(sql, params) as cursor:
            rows = await cursor.fetchall()
            return cast(list[dict[str, Any]], rows)

    async def execute_pragma(self, pragma: str) -> None:
        """Execute a PRAGMA statement directly on the connection."""
        if self._connection is None:
            raise DatabaseNotConnectedError()
        await self._connection.execute(pragma)


class ConnectionPool:
    """Async connection pool with bounded concurrency.

    Limits concurrent database connections using a semaphore. Connections
    are reused when available, created on demand up to max_size.
    """

    def __init__(self, max_size: int | None = None) -> None:
        self._max_size = max_size
        self._connections: list[Database] = []
        self._semaphore: asyncio.Semaphore | None = None
        self._closed = False

    def _get_semaphore(self) -> asyncio.Semaphore:
        # Lazy init: asyncio.Semaphore requires running event loop
        if self._semaphore is None:
            size = self._max_size or get_settings().db_pool_size
            self._semaphore = asyncio.Semaphore(size)
        return self._semaphore

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[Database]:
        """Acquire a connection from the pool."""
        if self._closed:
            raise DatabaseNotConnectedError("Connection pool is closed")
        async with self._get_semaphore():
            conn = self._connections.pop() if self._connections else Database()
            healthy = True
            try:
                if not conn.is_connected:
                    await conn.connect()
                yield conn
            except _DRIVER_ERRORS:
                # Driver-level failure, don't hand this connection out again
                healthy = False
                await conn.close()
                raise
            finally:
                if healthy:
                    self._connections.append(conn)

    async def close(self) -> None:
        """Close all pooled connections."""
        self._closed = True
        for conn in self._connections:
            await conn.close()
        count = len(self._connections)
        self._connections = []
        self._semaphore = None
        self._closed = False  # Allow pool reuse after close
        if count:
            _logger.info("Closed %d pooled connections", count)


# Module singletons
_persistent: Database | None = None
_pool = ConnectionPool()


@asynccontextmanager
async def get_db() -> AsyncIterator[Database]:
    """Get a database connection.

    Uses persistent connection if init_db() was called, otherwise uses pool.

    Usage:
        async with get_db() as db:
            await db.execute("INSERT INTO ...")
    """
    if _persistent is not None:
        yield _persistent
    else:
        async with _pool.acquire() as db:
            yield db


async def create_schema(db: Database) -> None:
    """Create every table and index if missing."""
    for name in SCHEMA_TEMPLATES:
        await db.executescript(load_template(name))


async def init_db() -> None:
    """Initialize database with persistent connection and schema.

    Call this once at startup for long-running services. Opens a long-lived
    connection reused by all get_db() calls.
    """
    global _persistent
    if _persistent is None:
        _persistent = Database()
        await _persistent.connect()
        _logger.info(
            "Opened persistent database connection: %s", get_settings().db_path
        )

    await _persistent.execute_pragma("PRAGMA journal_mode=WAL")
    await create_schema(_persistent)


async def close_db() -> None:
    """Close the persistent connection and connection pool."""
    global _persistent
    if _persistent is not None:
        await _persistent.close()
        _logger.info("Closed persistent database connection")
        _persistent = None

    await _pool.close()
