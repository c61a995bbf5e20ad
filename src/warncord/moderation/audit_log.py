"""Append-only moderation audit trail, plus the counts behind ``/stats``."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable, List

from warncord.database.database import Database
from warncord.datatypes.discord_datatypes import UserID
from warncord.datatypes.moderation_datatypes import EventType, ModerationEvent, ModerationStats, StatWindow
from warncord.util.logger import get_logger

logger = get_logger("audit_log")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLog:
    """Records moderation events. Events are never updated or deleted."""

    def __init__(self, database: Database, clock: Callable[[], datetime] = _utcnow):
        self._db = database
        self._clock = clock

    async def record(self, event: ModerationEvent) -> ModerationEvent:
        """Store ``event`` and return the stored copy carrying its id and timestamp."""
        async with self._db.transaction() as conn:
            stored = await self._db.events.insert(conn, event)
        logger.info(
            "[AUDIT] #%s %s user=%s by=%s: %s",
            stored.id, stored.action_type, stored.user_id, stored.performed_by, stored.details,
        )
        return stored

    async def recent(self, limit: int = 100, offset: int = 0) -> List[ModerationEvent]:
        async with self._db.read() as conn:
            return await self._db.events.list_recent(conn, limit=limit, offset=offset)

    async def for_user(self, user_id: UserID) -> List[ModerationEvent]:
        async with self._db.read() as conn:
            return await self._db.events.list_for_user(conn, user_id)

    async def stats(self) -> ModerationStats:
        """Count delete/warn/mute/ban events for today (UTC), the last 7 days and all time."""
        now = self._clock()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        week_ago = now - timedelta(days=7)

        async with self._db.read() as conn:
            today = dict(await self._db.events.count_since(conn, int(start_of_day.timestamp())))
            week = dict(await self._db.events.count_since(conn, int(week_ago.timestamp())))
            total = dict(await self._db.events.count_since(conn, 0))

        def window(event_type: EventType) -> StatWindow:
            key = event_type.value
            return StatWindow(today=today.get(key, 0), week=week.get(key, 0), total=total.get(key, 0))

        return ModerationStats(
            messages_filtered=window(EventType.DELETE),
            warnings_issued=window(EventType.WARN),
            users_muted=window(EventType.MUTE),
            users_banned=window(EventType.BAN),
        )
