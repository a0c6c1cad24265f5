from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, List, Optional, Sequence

import anyio
import anyio.to_thread

logger = logging.getLogger(__name__)

Params = Sequence[Any]


@dataclass(frozen=True)
class _Cols:
    table: str = "tasks"
    id: str = "id"
    title: str = "title"
    description: str = "description"
    due_date: str = "due_date"
    priority: str = "priority"
    completed: str = "completed"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


COLS = _Cols()

_CREATE_TASKS_TABLE = f"""
CREATE TABLE IF NOT EXISTS {COLS.table} (
    {COLS.id} INTEGER PRIMARY KEY AUTOINCREMENT,
    {COLS.title} TEXT NOT NULL CHECK (length({COLS.title}) <= 255),
    {COLS.description} TEXT NULL,
    {COLS.due_date} TEXT NOT NULL,
    {COLS.priority} TEXT NOT NULL CHECK ({COLS.priority} IN ('Low', 'Medium', 'High')),
    {COLS.completed} INTEGER NOT NULL DEFAULT 0 CHECK ({COLS.completed} IN (0, 1)),
    {COLS.created_at} TEXT NOT NULL,
    {COLS.updated_at} TEXT NOT NULL
)
"""

_CREATE_DUE_INDEX = (
    f"CREATE INDEX IF NOT EXISTS idx_{COLS.table}_due_priority "
    f"ON {COLS.table}({COLS.due_date}, {COLS.priority})"
)


class DatabaseError(Exception):
    """A statement failed inside the storage engine."""


class DatabaseUnavailable(DatabaseError):
    """No connection could be obtained (pool closed or acquire timed out)."""


@dataclass(frozen=True)
class QueryResult:
    """Outcome of a write statement."""

    insert_id: Optional[int]
    affected_rows: int


# PUBLIC_INTERFACE
class Database:
    """
    Bounded pool of SQLite connections with an async query interface.

    Each statement borrows one connection for its duration and runs in a worker
    thread, so the event loop keeps serving other requests meanwhile. At most
    ``pool_size`` statements run at once; further callers wait up to
    ``acquire_timeout`` seconds and then get DatabaseUnavailable.
    """

    def __init__(self, db_path: str, pool_size: int = 10, acquire_timeout: float = 60.0) -> None:
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self._db_path = db_path
        self._pool_size = pool_size
        self._acquire_timeout = acquire_timeout
        self._idle: List[sqlite3.Connection] = []
        self._limiter: Optional[anyio.CapacityLimiter] = None

    @property
    def db_path(self) -> str:
        return self._db_path

    @property
    def pool_size(self) -> int:
        return self._pool_size

    @property
    def is_open(self) -> bool:
        return self._limiter is not None

    def _open_connection(self) -> sqlite3.Connection:
        # Worker threads change between statements; a connection is still only
        # used by one statement at a time.
        conn = sqlite3.connect(self._db_path, timeout=30.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    async def connect(self) -> None:
        """Open the pool and check that a connection can be established."""
        if self.is_open:
            return
        os.makedirs(os.path.dirname(self._db_path) or ".", exist_ok=True)
        self._limiter = anyio.CapacityLimiter(self._pool_size)
        await self.fetch_one("SELECT 1 AS ok")
        logger.info("Connected to SQLite database %s (pool size %d)", self._db_path, self._pool_size)

    async def create_tables(self) -> None:
        await self.execute(_CREATE_TASKS_TABLE)
        await self.execute(_CREATE_DUE_INDEX)
        logger.info("Tables created/verified")

    async def initialize(self) -> None:
        await self.connect()
        await self.create_tables()

    async def close(self) -> None:
        if not self.is_open:
            return
        self._limiter = None
        idle, self._idle = self._idle, []
        for conn in idle:
            conn.close()
        logger.info("Database connection pool closed")

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[sqlite3.Connection]:
        limiter = self._limiter
        if limiter is None:
            raise DatabaseUnavailable("Database pool is not open")
        try:
            with anyio.fail_after(self._acquire_timeout):
                await limiter.acquire()
        except TimeoutError:
            raise DatabaseUnavailable(
                f"Timed out after {self._acquire_timeout}s waiting for a database connection"
            ) from None

        try:
            try:
                if self._idle:
                    conn = self._idle.pop()
                else:
                    conn = await anyio.to_thread.run_sync(self._open_connection)
            except sqlite3.Error as exc:
                logger.error("Could not open database %s: %s", self._db_path, exc)
                raise DatabaseUnavailable(str(exc)) from exc
            try:
                yield conn
            finally:
                if self._limiter is limiter:
                    self._idle.append(conn)
                else:
                    # Pool was closed while this statement was running
                    conn.close()
        finally:
            limiter.release()

    @staticmethod
    def _run(conn: sqlite3.Connection, sql: str, params: Params, fetch: bool) -> Any:
        try:
            cur = conn.execute(sql, tuple(params))
            if fetch:
                rows = cur.fetchall()
                conn.commit()
                return [dict(r) for r in rows]
            conn.commit()
            return QueryResult(insert_id=cur.lastrowid, affected_rows=max(cur.rowcount, 0))
        except BaseException:
            conn.rollback()
            raise

    async def _dispatch(self, sql: str, params: Params, fetch: bool) -> Any:
        async with self._acquire() as conn:
            try:
                return await anyio.to_thread.run_sync(self._run, conn, sql, params, fetch)
            except (sqlite3.Error, OverflowError, ValueError) as exc:
                logger.error("Database query error: %s", exc)
                raise DatabaseError(str(exc)) from exc

    # PUBLIC_INTERFACE
    async def execute(self, sql: str, params: Params = ()) -> QueryResult:
        """Run a write statement; return the last insert id and affected row count."""
        return await self._dispatch(sql, params, fetch=False)

    # PUBLIC_INTERFACE
    async def fetch_all(self, sql: str, params: Params = ()) -> List[Dict[str, Any]]:
        """Run a query and return every row as a plain dict."""
        return await self._dispatch(sql, params, fetch=True)

    # PUBLIC_INTERFACE
    async def fetch_one(self, sql: str, params: Params = ()) -> Optional[Dict[str, Any]]:
        """Run a query and return the first row, or None when there is none."""
        rows = await self.fetch_all(sql, params)
        return rows[0] if rows else None
