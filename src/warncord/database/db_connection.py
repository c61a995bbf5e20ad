"""
Single-connection access to the SQLite file.

Warncord keeps one aiosqlite connection open for the bot's lifetime in WAL
mode. Writers take ``transaction()``, which queues them on a semaphore so
only one write transaction is in flight; readers take ``read()`` and never
wait.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional

import aiosqlite

from warncord.util.logger import get_logger

logger = get_logger("database_connection")

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA foreign_keys = ON",
    "PRAGMA synchronous = NORMAL",
    "PRAGMA temp_store = MEMORY",
)


class ConnectionManager:
    """Owns the connection and the write queue."""

    def __init__(self) -> None:
        self._conn: Optional[aiosqlite.Connection] = None
        self._writer = asyncio.Semaphore(1)

    @property
    def connection(self) -> aiosqlite.Connection:
        """Raises ``RuntimeError`` before :meth:`open` has run."""
        if self._conn is None:
            raise RuntimeError("Database connection is not open; call open() at startup.")
        return self._conn

    async def open(self, path: Path) -> None:
        if self._conn is not None:
            logger.warning("[DB CONNECTION] Connection to %s already open", path)
            return

        path.parent.mkdir(parents=True, exist_ok=True)
        conn = await aiosqlite.connect(path)
        conn.row_factory = aiosqlite.Row
        for pragma in _PRAGMAS:
            await conn.execute(pragma)
        await conn.commit()

        self._conn = conn
        logger.info("[DB CONNECTION] Opened %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL into the main file, then close."""
        conn, self._conn = self._conn, None
        if conn is None:
            return

        try:
            await conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await conn.commit()
        except aiosqlite.Error as exc:
            logger.error("[DB CONNECTION] WAL checkpoint failed: %s", exc)
        finally:
            await conn.close()
        logger.info("[DB CONNECTION] Closed")

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the connection for one write transaction.

        The body's writes are committed when it returns and rolled back when
        it raises.
        """
        conn = self.connection
        async with self._writer:
            try:
                yield conn
            except BaseException:
                await conn.rollback()
                raise
            await conn.commit()

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        yield self.connection
