from __future__ import annotations

import asyncio
import logging
import sqlite3
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiosqlite
import asyncpg

LOGGER = logging.getLogger(__name__)

_DRIVER_ERRORS = (sqlite3.Error, asyncpg.PostgresError, OSError)


class DatabaseError(RuntimeError):
    pass


@dataclass(slots=True)
class DatabaseDsn:
    driver: str
    value: str


def parse_database_dsn(url: str) -> DatabaseDsn:
    if url.startswith("sqlite:///"):
        return DatabaseDsn(driver="sqlite", value=url.removeprefix("sqlite:///"))
    if url.startswith(("postgresql://", "postgres://")):
        return DatabaseDsn(driver="postgresql", value=url)
    raise ValueError("Unsupported database URL. Use sqlite:/// or postgresql://")


def _qmark_to_dollar(query: str) -> str:
    parts = query.split("?")
    out = [parts[0]]
    for idx, part in enumerate(parts[1:], start=1):
        out.append(f"${idx}{part}")
    return "".join(out)


class Database:
    """Thin async facade over aiosqlite or an asyncpg pool.

    Queries are written with `?` placeholders; they are rewritten to `$n` for
    PostgreSQL. SQLite access is serialized through a lock because a single
    aiosqlite connection is shared. Driver failures surface as DatabaseError.
    """

    def __init__(self, url: str, timeout_seconds: int = 30, pool_min_size: int = 1, pool_max_size: int = 5) -> None:
        self._dsn = parse_database_dsn(url)
        self._timeout_seconds = timeout_seconds
        self._pool_min_size = pool_min_size
        self._pool_max_size = pool_max_size
        self._sqlite: aiosqlite.Connection | None = None
        self._pg_pool: asyncpg.Pool | None = None
        self._sqlite_lock = asyncio.Lock()

    @property
    def driver(self) -> str:
        return self._dsn.driver

    async def connect(self) -> None:
        if self.driver == "postgresql":
            self._pg_pool = await asyncpg.create_pool(
                dsn=self._dsn.value,
                min_size=self._pool_min_size,
                max_size=self._pool_max_size,
                timeout=self._timeout_seconds,
            )
            LOGGER.info("Connected to PostgreSQL")
            return
        sqlite_path = Path(self._dsn.value)
        sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self._sqlite = await aiosqlite.connect(sqlite_path, timeout=self._timeout_seconds)
        self._sqlite.row_factory = aiosqlite.Row
        await self._sqlite.execute("PRAGMA journal_mode = WAL;")
        await self._sqlite.commit()
        LOGGER.info("Connected to SQLite: %s", sqlite_path)

    async def close(self) -> None:
        if self._sqlite:
            await self._sqlite.close()
            self._sqlite = None
        if self._pg_pool:
            await self._pg_pool.close()
            self._pg_pool = None

    def _require_sqlite(self) -> aiosqlite.Connection:
        if self._sqlite is None:
            raise DatabaseError("Database is not connected")
        return self._sqlite

    def _require_pool(self) -> asyncpg.Pool:
        if self._pg_pool is None:
            raise DatabaseError("Database is not connected")
        return self._pg_pool

    async def execute(self, query: str, params: Sequence[Any] | None = None) -> None:
        params = params or []
        try:
            if self.driver == "sqlite":
                conn = self._require_sqlite()
                async with self._sqlite_lock:
                    await conn.execute(query, tuple(params))
                    await conn.commit()
                return
            async with self._require_pool().acquire() as pg_conn:
                await pg_conn.execute(_qmark_to_dollar(query), *params)
        except _DRIVER_ERRORS as exc:
            raise DatabaseError(str(exc)) from exc

    async def fetchone(self, query: str, params: Sequence[Any] | None = None) -> dict[str, Any] | None:
        rows = await self.fetchall(query, params)
        return rows[0] if rows else None

    async def fetchall(self, query: str, params: Sequence[Any] | None = None) -> list[dict[str, Any]]:
        params = params or []
        try:
            if self.driver == "sqlite":
                conn = self._require_sqlite()
                async with self._sqlite_lock:
                    cursor = await conn.execute(query, tuple(params))
                    rows = await cursor.fetchall()
                return [dict(row) for row in rows]
            async with self._require_pool().acquire() as pg_conn:
                records = await pg_conn.fetch(_qmark_to_dollar(query), *params)
            return [dict(record) for record in records]
        except _DRIVER_ERRORS as exc:
            raise DatabaseError(str(exc)) from exc

    async def executescript(self, sql_script: str) -> None:
        try:
            if self.driver == "sqlite":
                conn = self._require_sqlite()
                async with self._sqlite_lock:
                    await conn.executescript(sql_script)
                    await conn.commit()
                return
            async with self._require_pool().acquire() as pg_conn:
                await pg_conn.execute(sql_script)
        except _DRIVER_ERRORS as exc:
            raise DatabaseError(str(exc)) from exc
