"""
Repository for the user_violation_states table.

``mute_expires_at`` is stored as INTEGER unix seconds (UTC).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from warncord.datatypes.discord_datatypes import UserID
from warncord.datatypes.moderation_datatypes import UserViolationState


def _to_unix(value: Optional[datetime]) -> Optional[int]:
    return int(value.timestamp()) if value is not None else None


def _from_unix(value: Optional[int]) -> Optional[datetime]:
    return datetime.fromtimestamp(value, tz=timezone.utc) if value is not None else None


class UserStateRepository:
    """Low-level reads and writes of per-user violation state."""

    async def get(self, conn: aiosqlite.Connection, user_id: UserID) -> Optional[UserViolationState]:
        async with conn.execute(
            """
            SELECT username, warning_count, is_muted, is_banned, mute_expires_at
            FROM user_violation_states WHERE user_id = ?
            """,
            (str(user_id),),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        return UserViolationState(
            user_id=user_id,
            username=row[0],
            warning_count=row[1],
            is_muted=bool(row[2]),
            is_banned=bool(row[3]),
            mute_expires_at=_from_unix(row[4]),
        )

    async def upsert(self, conn: aiosqlite.Connection, state: UserViolationState) -> None:
        await conn.execute(
            """
            INSERT INTO user_violation_states (user_id, username, warning_count, is_muted, is_banned, mute_expires_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(user_id) DO UPDATE SET
                username = excluded.username,
                warning_count = excluded.warning_count,
                is_muted = excluded.is_muted,
                is_banned = excluded.is_banned,
                mute_expires_at = excluded.mute_expires_at
            """,
            (
                str(state.user_id),
                state.username,
                state.warning_count,
                1 if state.is_muted else 0,
                1 if state.is_banned else 0,
                _to_unix(state.mute_expires_at),
            ),
        )
