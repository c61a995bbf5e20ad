"""
Database schema initialization.

Handles creation of tables, indexes, triggers, and schema version tracking.
Timestamps that the moderation core compares (mute expiry, event time) are
stored as INTEGER unix seconds so no string parsing is needed.
"""

import aiosqlite
from warncord.util.logger import get_logger

logger = get_logger("database_schema")

SCHEMA_VERSION = 1


class SchemaManager:
    """Creates the tables, indexes and triggers Warncord needs."""

    @staticmethod
    async def initialize_schema(db: aiosqlite.Connection) -> None:
        """
        Create all database tables, indexes, and triggers if missing.

        Args:
            db: Open database connection
        """
        await SchemaManager._create_tables(db)
        await SchemaManager._create_indexes(db)
        await SchemaManager._create_triggers(db)
        await SchemaManager._update_schema_version(db)
        await db.commit()
        logger.info("[SCHEMA] Database schema initialized")

    @staticmethod
    async def _create_tables(db: aiosqlite.Connection) -> None:
        """Create all required database tables."""
        await db.execute("""
            CREATE TABLE IF NOT EXISTS filter_terms (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                term TEXT NOT NULL,
                category TEXT NOT NULL DEFAULT 'custom',
                delete_on_match INTEGER NOT NULL DEFAULT 1,
                warn_on_match INTEGER NOT NULL DEFAULT 1,
                auto_mute INTEGER NOT NULL DEFAULT 0,
                mute_after INTEGER NOT NULL DEFAULT 3,
                auto_ban INTEGER NOT NULL DEFAULT 0,
                ban_after INTEGER NOT NULL DEFAULT 5,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS group_policies (
                guild_id INTEGER PRIMARY KEY,
                default_mute_minutes INTEGER NOT NULL DEFAULT 1440,
                warn_threshold INTEGER NOT NULL DEFAULT 3,
                mute_threshold INTEGER NOT NULL DEFAULT 5,
                ban_threshold INTEGER NOT NULL DEFAULT 8,
                delete_on_filter_match INTEGER NOT NULL DEFAULT 1,
                warn_on_filter_match INTEGER NOT NULL DEFAULT 1,
                notify_admins INTEGER NOT NULL DEFAULT 1,
                welcome_message TEXT,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS user_violation_states (
                user_id TEXT PRIMARY KEY,
                username TEXT,
                warning_count INTEGER NOT NULL DEFAULT 0,
                is_muted INTEGER NOT NULL DEFAULT 0,
                is_banned INTEGER NOT NULL DEFAULT 0,
                mute_expires_at INTEGER,
                updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS moderation_events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                timestamp INTEGER NOT NULL DEFAULT (CAST(strftime('%s', 'now') AS INTEGER)),
                user_id TEXT NOT NULL,
                action_type TEXT NOT NULL,
                details TEXT NOT NULL DEFAULT '',
                performed_by TEXT NOT NULL,
                source_message_text TEXT,
                filter_term_id INTEGER,
                extra TEXT NOT NULL DEFAULT '{}'
            )
        """)

        await db.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY,
                applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
        """)

    @staticmethod
    async def _create_indexes(db: aiosqlite.Connection) -> None:
        """Create indexes for the event listing and stats queries."""
        await db.execute("CREATE INDEX IF NOT EXISTS idx_moderation_events_timestamp ON moderation_events(timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_moderation_events_user ON moderation_events(user_id, timestamp DESC)")
        await db.execute("CREATE INDEX IF NOT EXISTS idx_moderation_events_action ON moderation_events(action_type, timestamp)")

    @staticmethod
    async def _create_triggers(db: aiosqlite.Connection) -> None:
        """Create triggers for automatic timestamp updates."""
        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS update_group_policies_timestamp
            AFTER UPDATE ON group_policies
            FOR EACH ROW
            BEGIN
                UPDATE group_policies SET updated_at = CURRENT_TIMESTAMP
                WHERE guild_id = NEW.guild_id;
            END
        """)

        await db.execute("""
            CREATE TRIGGER IF NOT EXISTS update_user_violation_states_timestamp
            AFTER UPDATE ON user_violation_states
            FOR EACH ROW
            BEGIN
                UPDATE user_violation_states SET updated_at = CURRENT_TIMESTAMP
                WHERE user_id = NEW.user_id;
            END
        """)

    @staticmethod
    async def _update_schema_version(db: aiosqlite.Connection) -> None:
        """Record the schema version."""
        await db.execute("INSERT OR IGNORE INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,))
