"""
Repository for the group_policies table.
"""

from __future__ import annotations

from typing import Optional

import aiosqlite

from warncord.datatypes.discord_datatypes import GuildID
from warncord.datatypes.moderation_datatypes import GroupPolicy


class GroupPolicyRepository:
    """Read and upsert per-guild policies."""

    async def get(self, conn: aiosqlite.Connection, guild_id: GuildID) -> Optional[GroupPolicy]:
        async with conn.execute(
            """
            SELECT default_mute_minutes, warn_threshold, mute_threshold, ban_threshold,
                   delete_on_filter_match, warn_on_filter_match, notify_admins, welcome_message
            FROM group_policies WHERE guild_id = ?
            """,
            (guild_id.to_int(),),
        ) as cursor:
            row = await cursor.fetchone()

        if row is None:
            return None

        return GroupPolicy(
            guild_id=guild_id,
            default_mute_minutes=row[0],
            warn_threshold=row[1],
            mute_threshold=row[2],
            ban_threshold=row[3],
            delete_on_filter_match=bool(row[4]),
            warn_on_filter_match=bool(row[5]),
            notify_admins=bool(row[6]),
            welcome_message=row[7],
        )

    async def upsert(self, conn: aiosqlite.Connection, policy: GroupPolicy) -> None:
        await conn.execute(
            """
            INSERT INTO group_policies (
                guild_id, default_mute_minutes, warn_threshold, mute_threshold, ban_threshold,
                delete_on_filter_match, warn_on_filter_match, notify_admins, welcome_message
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(guild_id) DO UPDATE SET
                default_mute_minutes = excluded.default_mute_minutes,
                warn_threshold = excluded.warn_threshold,
                mute_threshold = excluded.mute_threshold,
                ban_threshold = excluded.ban_threshold,
                delete_on_filter_match = excluded.delete_on_filter_match,
                warn_on_filter_match = excluded.warn_on_filter_match,
                notify_admins = excluded.notify_admins,
                welcome_message = excluded.welcome_message
            """,
            (
                policy.guild_id.to_int(),
                policy.default_mute_minutes,
                policy.warn_threshold,
                policy.mute_threshold,
                policy.ban_threshold,
                1 if policy.delete_on_filter_match else 0,
                1 if policy.warn_on_filter_match else 0,
                1 if policy.notify_admins else 0,
                policy.welcome_message,
            ),
        )
