"""
Database coordinator for Warncord.

The Database class owns the single :class:`ConnectionManager` and the table
repositories. Services never touch SQL directly; they open a read or a
transaction here and hand the connection to a repository.

Lifecycle:
    1. ``await database.initialize()`` at program startup
    2. ``async with database.transaction() as conn`` / ``database.read()``
    3. ``await database.shutdown()`` at program end
"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from pathlib import Path

import aiosqlite

from warncord.database.db_connection import ConnectionManager
from warncord.database.db_schema import SchemaManager
from warncord.repositories.filter_term_repo import FilterTermRepository
from warncord.repositories.group_policy_repo import GroupPolicyRepository
from warncord.repositories.moderation_event_repo import ModerationEventRepository
from warncord.repositories.user_state_repo import UserStateRepository
from warncord.util.logger import get_logger

logger = get_logger("database")

# Default database file path, relative to the working directory
DB_PATH = Path("./data/warncord.db")


class Database:
    """Central database coordinator.

    Attributes:
        filter_terms: Repository for filter terms.
        policies: Repository for per-guild policies.
        user_states: Repository for per-user violation state.
        events: Repository for the moderation audit trail.
    """

    def __init__(self, db_path: Path = DB_PATH):
        self.db_path = db_path
        self._initialized = False
        self._connections = ConnectionManager()

        self.filter_terms = FilterTermRepository()
        self.policies = GroupPolicyRepository()
        self.user_states = UserStateRepository()
        self.events = ModerationEventRepository()

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def initialize(self) -> bool:
        """Open the connection and create the schema.

        Returns:
            True if initialization succeeded, False otherwise.
        """
        if self._initialized:
            logger.debug("[DATABASE] Already initialized, skipping")
            return True

        try:
            await self._connections.open(self.db_path)
            await SchemaManager.initialize_schema(self._connections.connection)
        except (aiosqlite.Error, OSError) as e:
            logger.error("[DATABASE] Database initialization failed: %s", e)
            await self._connections.close()
            return False

        self._initialized = True
        logger.info("[DATABASE] Database initialized at %s", self.db_path)
        return True

    async def shutdown(self) -> None:
        """Checkpoint and close the connection."""
        if not self._initialized:
            return

        await self._connections.close()
        self._initialized = False
        logger.info("[DATABASE] Database shutdown complete")

    def transaction(self) -> AbstractAsyncContextManager[aiosqlite.Connection]:
        """Serialised write transaction; see :meth:`ConnectionManager.transaction`."""
        return self._connections.transaction()

    def read(self) -> AbstractAsyncContextManager[aiosqlite.Connection]:
        return self._connections.read()
