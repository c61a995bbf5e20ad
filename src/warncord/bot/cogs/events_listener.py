"""Event listener Cog for Warncord.

Handles bot startup (presence) and greets members who join a guild that has
a welcome message configured.
"""

import discord
from discord.ext import commands

from warncord.datatypes.discord_datatypes import ChannelID, GuildID
from warncord.moderation.errors import PlatformError
from warncord.moderation.services import ModerationServices
from warncord.util.format_utils import render_welcome
from warncord.util.logger import get_logger

logger = get_logger("events_listener_cog")


class EventsListenerCog(commands.Cog):
    """Cog containing bot lifecycle and member join handlers."""

    def __init__(self, discord_bot_instance, services: ModerationServices, presence_text: str):
        self.bot = discord_bot_instance
        self.services = services
        self.presence_text = presence_text
        logger.info("Events listener cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        if self.bot.user:
            await self.bot.change_presence(
                status=discord.Status.online,
                activity=discord.Activity(type=discord.ActivityType.watching, name=self.presence_text),
            )
            logger.info("Bot connected as %s (ID: %s)", self.bot.user, self.bot.user.id)
        else:
            logger.warning("Bot partially connected, but user information not yet available.")

        logger.info("--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--==--")

    @commands.Cog.listener(name="on_member_join")
    async def on_member_join(self, member: discord.Member):
        if member.bot:
            return

        guild_id = GuildID.from_guild(member.guild)
        policy = await self.services.policies.get_policy(guild_id)
        if not policy.welcome_message:
            return

        channel = member.guild.system_channel
        if channel is None:
            logger.debug("[WELCOME] Guild %s has no system channel; skipping welcome", guild_id)
            return

        try:
            await self.services.platform.send_message(
                guild_id,
                ChannelID.from_channel(channel),
                render_welcome(policy.welcome_message, member.mention),
            )
        except PlatformError as exc:
            logger.warning("[WELCOME] Could not greet %s in guild %s: %s", member.id, guild_id, exc)


def setup(discord_bot_instance, services: ModerationServices, presence_text: str):
    discord_bot_instance.add_cog(EventsListenerCog(discord_bot_instance, services, presence_text))
