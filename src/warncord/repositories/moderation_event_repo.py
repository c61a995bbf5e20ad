"""
Repository for the append-only moderation_events table.

Rows are only ever inserted; the id and timestamp come from SQLite.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import List, Tuple

import aiosqlite

from warncord.datatypes.discord_datatypes import UserID
from warncord.datatypes.moderation_datatypes import EventType, ModerationEvent

_COLUMNS = "id, timestamp, user_id, action_type, details, performed_by, source_message_text, filter_term_id, extra"


def _row_to_event(row: aiosqlite.Row) -> ModerationEvent:
    return ModerationEvent(
        id=row[0],
        timestamp=datetime.fromtimestamp(row[1], tz=timezone.utc),
        user_id=UserID(row[2]),
        action_type=EventType(row[3]),
        details=row[4],
        performed_by=row[5],
        source_message_text=row[6],
        filter_term_id=row[7],
        extra=json.loads(row[8] or "{}"),
    )


class ModerationEventRepository:
    """Insert and query moderation events."""

    async def insert(self, conn: aiosqlite.Connection, event: ModerationEvent) -> ModerationEvent:
        """Insert an event and return the stored copy with id and timestamp."""
        cursor = await conn.execute(
            """
            INSERT INTO moderation_events (user_id, action_type, details, performed_by, source_message_text, filter_term_id, extra)
            VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (
                str(event.user_id),
                event.action_type.value,
                event.details,
                event.performed_by,
                event.source_message_text,
                event.filter_term_id,
                json.dumps(event.extra, ensure_ascii=False),
            ),
        )
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM moderation_events WHERE id = ?", (cursor.lastrowid,)
        ) as select_cursor:
            row = await select_cursor.fetchone()
        return _row_to_event(row)

    async def list_recent(self, conn: aiosqlite.Connection, limit: int = 100, offset: int = 0) -> List[ModerationEvent]:
        """Newest first."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM moderation_events ORDER BY timestamp DESC, id DESC LIMIT ? OFFSET ?",
            (limit, offset),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_event(row) for row in rows]

    async def list_for_user(self, conn: aiosqlite.Connection, user_id: UserID) -> List[ModerationEvent]:
        """Newest first."""
        async with conn.execute(
            f"SELECT {_COLUMNS} FROM moderation_events WHERE user_id = ? ORDER BY timestamp DESC, id DESC",
            (str(user_id),),
        ) as cursor:
            rows = await cursor.fetchall()
        return [_row_to_event(row) for row in rows]

    async def count_since(
        self, conn: aiosqlite.Connection, since: int
    ) -> List[Tuple[str, int]]:
        """Return ``(action_type, count)`` pairs for events at or after ``since`` (unix seconds)."""
        async with conn.execute(
            "SELECT action_type, COUNT(*) FROM moderation_events WHERE timestamp >= ? GROUP BY action_type",
            (since,),
        ) as cursor:
            rows = await cursor.fetchall()
        return [(row[0], row[1]) for row in rows]
