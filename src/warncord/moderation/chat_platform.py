"""Contract between the moderation core and the chat platform.

The core only ever talks to the platform through :class:`ChatPlatformClient`.
The py-cord implementation lives in :mod:`warncord.bot.discord_platform`;
tests substitute an ``AsyncMock``.

Every method may raise :class:`warncord.moderation.errors.PlatformError`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from warncord.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID


@runtime_checkable
class ChatPlatformClient(Protocol):
    async def is_admin(self, guild_id: GuildID, user_id: UserID) -> bool:
        """Live administrator check; never served from a cache."""
        ...

    async def delete_message(self, guild_id: GuildID, channel_id: ChannelID, message_id: MessageID) -> None:
        ...

    async def restrict_member(self, guild_id: GuildID, user_id: UserID, until: datetime, reason: str) -> None:
        """Stop the member from talking until ``until`` (UTC)."""
        ...

    async def unrestrict_member(self, guild_id: GuildID, user_id: UserID) -> None:
        ...

    async def remove_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        """Ban the member from the guild."""
        ...

    async def unban_member(self, guild_id: GuildID, user_id: UserID) -> None:
        ...

    async def send_message(self, guild_id: GuildID, channel_id: ChannelID, text: str) -> None:
        ...

    async def notify_admins(self, guild_id: GuildID, text: str) -> None:
        """Post a notice where the guild's admins will see it."""
        ...
