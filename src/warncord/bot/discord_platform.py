"""
py-cord implementation of :class:`warncord.moderation.chat_platform.ChatPlatformClient`.

Mutes map to Discord member timeouts and bans to guild bans. Every
``discord.HTTPException`` (including ``Forbidden`` and ``NotFound``) is
re-raised as :class:`PlatformError` so the moderation core sees one error
type.
"""

from __future__ import annotations

import datetime
from contextlib import contextmanager
from typing import Iterator, Optional

import discord

from warncord.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from warncord.moderation.errors import PlatformError
from warncord.util.logger import get_logger

logger = get_logger("discord_platform")

# Discord refuses timeouts longer than 28 days
MAX_TIMEOUT = datetime.timedelta(days=28)
_TIMEOUT_MARGIN = datetime.timedelta(minutes=1)

_ANNOUNCE_MENTIONS = discord.AllowedMentions(everyone=False, roles=False, users=True)


@contextmanager
def _platform_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except discord.Forbidden as exc:
        raise PlatformError(f"Missing permissions to {operation}: {exc.text or exc}") from exc
    except discord.NotFound as exc:
        raise PlatformError(f"Could not {operation}: target not found") from exc
    except discord.HTTPException as exc:
        raise PlatformError(f"Discord rejected {operation}: {exc}") from exc


def clamp_timeout(until: datetime.datetime, now: Optional[datetime.datetime] = None) -> datetime.datetime:
    """Limit ``until`` to Discord's maximum timeout length."""
    now = now or discord.utils.utcnow()
    latest = now + MAX_TIMEOUT - _TIMEOUT_MARGIN
    return min(until, latest)


class DiscordPlatform:
    """Chat platform client backed by a live ``discord.Bot``."""

    def __init__(self, bot: discord.Bot):
        self.bot = bot

    async def _guild(self, guild_id: GuildID) -> discord.Guild:
        guild = self.bot.get_guild(guild_id.to_int())
        if guild is not None:
            return guild
        with _platform_errors("fetch the server"):
            return await self.bot.fetch_guild(guild_id.to_int())

    async def _channel(self, channel_id: ChannelID) -> discord.abc.Messageable:
        channel = self.bot.get_channel(channel_id.to_int())
        if channel is None:
            with _platform_errors("fetch the channel"):
                channel = await self.bot.fetch_channel(channel_id.to_int())
        if not isinstance(channel, discord.abc.Messageable):
            raise PlatformError(f"Channel {channel_id} cannot hold messages")
        return channel

    async def _member(self, guild: discord.Guild, user_id: UserID) -> discord.Member:
        # Always fetched so permission checks see current roles
        with _platform_errors("fetch the member"):
            return await guild.fetch_member(user_id.to_int())

    async def is_admin(self, guild_id: GuildID, user_id: UserID) -> bool:
        guild = await self._guild(guild_id)
        if guild.owner_id == user_id.to_int():
            return True
        member = await self._member(guild, user_id)
        return member.guild_permissions.administrator

    async def delete_message(self, guild_id: GuildID, channel_id: ChannelID, message_id: MessageID) -> None:
        channel = await self._channel(channel_id)
        get_partial_message = getattr(channel, "get_partial_message", None)
        if get_partial_message is None:
            raise PlatformError(f"Cannot delete messages in channel {channel_id}")
        with _platform_errors("delete the message"):
            await get_partial_message(message_id.to_int()).delete()
        logger.debug("[DISCORD] Deleted message %s in channel %s", message_id, channel_id)

    async def restrict_member(self, guild_id: GuildID, user_id: UserID, until: datetime.datetime, reason: str) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        clamped = clamp_timeout(until)
        if clamped != until:
            logger.info("[DISCORD] Timeout for %s clamped to Discord's 28 day limit", user_id)
        with _platform_errors("time out the member"):
            await member.timeout(clamped, reason=f"Warncord: {reason}")

    async def unrestrict_member(self, guild_id: GuildID, user_id: UserID) -> None:
        guild = await self._guild(guild_id)
        member = await self._member(guild, user_id)
        with _platform_errors("remove the timeout"):
            await member.remove_timeout(reason="Warncord: unmuted")

    async def remove_member(self, guild_id: GuildID, user_id: UserID, reason: str) -> None:
        guild = await self._guild(guild_id)
        with _platform_errors("ban the member"):
            await guild.ban(discord.Object(id=user_id.to_int()), reason=f"Warncord: {reason}")

    async def unban_member(self, guild_id: GuildID, user_id: UserID) -> None:
        guild = await self._guild(guild_id)
        with _platform_errors("unban the user"):
            await guild.unban(discord.Object(id=user_id.to_int()), reason="Warncord: unbanned")

    async def send_message(self, guild_id: GuildID, channel_id: ChannelID, text: str) -> None:
        channel = await self._channel(channel_id)
        with _platform_errors("send the message"):
            await channel.send(text, allowed_mentions=_ANNOUNCE_MENTIONS)

    async def notify_admins(self, guild_id: GuildID, text: str) -> None:
        """Post to the server's community updates channel, falling back to the system channel."""
        guild = await self._guild(guild_id)
        channel = guild.public_updates_channel or guild.system_channel
        if channel is None:
            logger.debug("[DISCORD] Guild %s has no channel for admin notices; skipping", guild_id)
            return
        with _platform_errors("notify the admins"):
            await channel.send(f"**Moderation notice:** {text}", allowed_mentions=discord.AllowedMentions.none())
