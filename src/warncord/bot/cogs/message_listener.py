"""Message listener Cog for Warncord.

Scans every guild message from a human author against the filter terms and
applies whatever the escalation engine decides.
"""

import discord
from discord.ext import commands

from warncord.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID
from warncord.datatypes.moderation_datatypes import InboundMessage
from warncord.moderation.services import ModerationServices
from warncord.util.logger import get_logger

logger = get_logger("message_listener_cog")


class MessageListenerCog(commands.Cog):
    """Cog responsible for scanning new messages."""

    def __init__(self, discord_bot_instance, services: ModerationServices):
        self.bot = discord_bot_instance
        self.services = services
        logger.info("Message listener cog loaded")

    @staticmethod
    def to_inbound(message: discord.Message) -> InboundMessage:
        return InboundMessage(
            guild_id=GuildID.from_guild(message.guild),
            channel_id=ChannelID.from_channel(message.channel),
            message_id=MessageID.from_message(message),
            author_id=UserID.from_user(message.author),
            author_name=str(message.author),
            content=message.content or "",
        )

    @commands.Cog.listener(name="on_message")
    async def on_message(self, message: discord.Message) -> None:
        # Ignore DMs, bots and webhooks
        if message.guild is None or message.author.bot or message.webhook_id is not None:
            return
        if not message.content:
            return

        inbound = self.to_inbound(message)
        try:
            actions = await self.services.engine.scan_message(inbound)
            if not actions:
                return
            report = await self.services.executor.execute(actions)
        except Exception:
            logger.exception("[MESSAGE LISTENER] Failed to moderate message %s", message.id)
            return

        if report.incomplete:
            logger.warning(
                "[MESSAGE LISTENER] Enforcement incomplete for message %s: %d failure(s)",
                message.id, len(report.failures),
            )


def setup(discord_bot_instance, services: ModerationServices):
    discord_bot_instance.add_cog(MessageListenerCog(discord_bot_instance, services))
