"""
Moderation cog: slash commands for filter terms, discipline and settings.

Each command converts the py-cord context into a :class:`CommandContext` and
delegates to :class:`warncord.moderation.command_handler.CommandHandler`,
which performs the admin check, validation and the actual work.

Replies go to the invoker ephemerally. Replies describing an applied
moderation action are also posted to the channel so members see them.
"""

from typing import Awaitable, Callable, Optional, Union

import discord
from discord import Option
from discord.ext import commands

from warncord.datatypes.command_datatypes import CommandContext, CommandResult, CommandTarget
from warncord.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from warncord.datatypes.moderation_datatypes import FILTER_TERM_EDITABLE_FIELDS, FilterCategory
from warncord.moderation.policy_store import POLICY_EDITABLE_FIELDS
from warncord.moderation.services import ModerationServices
from warncord.util.logger import get_logger

logger = get_logger("moderation_cog")

CATEGORY_CHOICES = [category.value for category in FilterCategory]
FILTER_FIELD_CHOICES = list(FILTER_TERM_EDITABLE_FIELDS)
SETTING_CHOICES = list(POLICY_EDITABLE_FIELDS)

_PUBLIC_MENTIONS = discord.AllowedMentions(everyone=False, roles=False, users=True)


def command_context(ctx: discord.ApplicationContext) -> CommandContext:
    return CommandContext(
        guild_id=GuildID(ctx.guild_id),
        channel_id=ChannelID(ctx.channel_id),
        issuer_id=UserID.from_user(ctx.user),
        issuer_name=str(ctx.user),
    )


def member_target(user: Optional[Union[discord.Member, discord.User]]) -> Optional[CommandTarget]:
    if user is None:
        return None
    return CommandTarget(user_id=UserID.from_user(user), label=user.mention, name=str(user))


def id_target(raw_user_id: Optional[str]) -> Optional[CommandTarget]:
    """Build a target from a pasted user ID or mention; ``None`` when unreadable."""
    text = (raw_user_id or "").strip().removeprefix("<@").removeprefix("!").removesuffix(">")
    if not text.isdigit():
        return None
    return CommandTarget.from_id(UserID(text))


class ModerationCommandsCog(commands.Cog):
    """Cog containing every Warncord slash command."""

    def __init__(self, discord_bot_instance, services: ModerationServices):
        self.discord_bot_instance = discord_bot_instance
        self.handler = services.commands
        logger.info("Moderation cog loaded")

    async def run_command(
        self,
        ctx: discord.ApplicationContext,
        run: Callable[[CommandContext], Awaitable[CommandResult]],
    ) -> None:
        """Defer, run the handler, and deliver its reply."""
        if not ctx.guild_id:
            await ctx.respond("This command can only be used in a server.", ephemeral=True)
            return

        await ctx.defer(ephemeral=True)
        try:
            result = await run(command_context(ctx))
        except Exception as e:
            logger.exception("Error executing /%s: %s", ctx.command.name if ctx.command else "?", e)
            await ctx.send_followup("An error occurred while processing the command.", ephemeral=True)
            return

        await ctx.send_followup(result.reply, ephemeral=True)

        if not result.ephemeral and ctx.channel is not None:
            try:
                await ctx.channel.send(result.reply, allowed_mentions=_PUBLIC_MENTIONS)
            except discord.HTTPException as exc:
                logger.warning("Failed to post moderation reply in channel %s: %s", ctx.channel_id, exc)

    # ------------------------------------------------------------------
    # Filter terms
    # ------------------------------------------------------------------

    @commands.slash_command(name="addfilter", description="Add a word or phrase to the filter list.")
    async def addfilter(
        self,
        ctx: discord.ApplicationContext,
        term: Option(str, "Word or phrase to filter (matched anywhere, any case).", required=True),  # type: ignore
        category: Option(str, "Category of the term.", choices=CATEGORY_CHOICES, default="custom"),  # type: ignore
        delete_on_match: Option(bool, "Delete matching messages.", default=None),  # type: ignore
        warn_on_match: Option(bool, "Warn users who post the term.", default=None),  # type: ignore
        auto_mute: Option(bool, "Mute automatically after enough warnings.", default=None),  # type: ignore
        mute_after: Option(int, "Warnings before the automatic mute.", min_value=1, default=None),  # type: ignore
        auto_ban: Option(bool, "Ban automatically after enough warnings.", default=None),  # type: ignore
        ban_after: Option(int, "Warnings before the automatic ban.", min_value=1, default=None),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.addfilter(
            c,
            term,
            category,
            delete_on_match=delete_on_match,
            warn_on_match=warn_on_match,
            auto_mute=auto_mute,
            mute_after=mute_after,
            auto_ban=auto_ban,
            ban_after=ban_after,
        ))

    @commands.slash_command(name="removefilter", description="Remove a filter term by id.")
    async def removefilter(
        self,
        ctx: discord.ApplicationContext,
        term_id: Option(int, "Id shown by /filters.", required=True),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.removefilter(c, term_id))

    @commands.slash_command(name="updatefilter", description="Change one field of a filter term.")
    async def updatefilter(
        self,
        ctx: discord.ApplicationContext,
        term_id: Option(int, "Id shown by /filters.", required=True),  # type: ignore
        field: Option(str, "Field to change.", choices=FILTER_FIELD_CHOICES, required=True),  # type: ignore
        value: Option(str, "New value (true/false, a number, or text).", required=True),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.updatefilter(c, term_id, field, value))

    @commands.slash_command(name="filters", description="List filter terms in the order they are checked.")
    async def filters(self, ctx: discord.ApplicationContext) -> None:
        await self.run_command(ctx, self.handler.filters)

    # ------------------------------------------------------------------
    # Discipline
    # ------------------------------------------------------------------

    @commands.slash_command(name="warn", description="Warn a user.")
    async def warn(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to warn.", required=True),  # type: ignore
        reason: Option(str, "Reason for the warning.", default=None),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.warn(c, member_target(user), reason))

    @commands.slash_command(name="mute", description="Mute (time out) a user.")
    async def mute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to mute.", required=True),  # type: ignore
        duration: Option(str, "Duration such as 30m, 2h, 1d or 1w (default 24h).", default=None),  # type: ignore
        reason: Option(str, "Reason for the mute.", default=None),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.mute(c, member_target(user), duration, reason))

    @commands.slash_command(name="ban", description="Ban a user from the server.")
    async def ban(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to ban.", required=True),  # type: ignore
        reason: Option(str, "Reason for the ban.", default=None),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.ban(c, member_target(user), reason))

    @commands.slash_command(name="unmute", description="Unmute a previously muted user.")
    async def unmute(
        self,
        ctx: discord.ApplicationContext,
        user: Option(discord.Member, "The user to unmute.", required=True),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.unmute(c, member_target(user)))

    @commands.slash_command(name="unban", description="Unban a previously banned user.")
    async def unban(
        self,
        ctx: discord.ApplicationContext,
        user_id: Option(str, "ID of the banned user.", required=True),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.unban(c, id_target(user_id)))

    # ------------------------------------------------------------------
    # Settings and reporting
    # ------------------------------------------------------------------

    @commands.slash_command(name="settings", description="View or change this server's moderation settings.")
    async def settings(
        self,
        ctx: discord.ApplicationContext,
        field: Option(str, "Setting to change.", choices=SETTING_CHOICES, default=None),  # type: ignore
        value: Option(str, "New value.", default=None),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.settings(c, field, value))

    @commands.slash_command(name="stats", description="View moderation statistics.")
    async def stats(self, ctx: discord.ApplicationContext) -> None:
        await self.run_command(ctx, self.handler.stats)

    @commands.slash_command(name="logs", description="Show the most recent moderation events.")
    async def logs(
        self,
        ctx: discord.ApplicationContext,
        limit: Option(int, "How many events to show.", min_value=1, max_value=50, default=10),  # type: ignore
    ) -> None:
        await self.run_command(ctx, lambda c: self.handler.logs(c, limit))

    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------

    @commands.slash_command(name="help", description="Show Warncord's commands.")
    async def help(self, ctx: discord.ApplicationContext) -> None:
        await self.run_command(ctx, self.handler.help)

    @commands.slash_command(name="status", description="Check your warning status.")
    async def status(self, ctx: discord.ApplicationContext) -> None:
        await self.run_command(ctx, self.handler.status)


def setup(discord_bot_instance, services: ModerationServices):
    discord_bot_instance.add_cog(ModerationCommandsCog(discord_bot_instance, services))
