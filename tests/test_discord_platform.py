"""Tests for the py-cord platform adapter, using mocked Discord objects."""

import datetime
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest

from conftest import CHANNEL, GUILD, MEMBER
from warncord.bot.discord_platform import MAX_TIMEOUT, DiscordPlatform, _platform_errors, clamp_timeout
from warncord.datatypes.discord_datatypes import MessageID
from warncord.moderation.errors import PlatformError

NOW = datetime.datetime(2026, 3, 1, tzinfo=datetime.timezone.utc)


def http_error(cls, status, text):
    response = MagicMock(status=status, reason=text)
    return cls(response, text)


@pytest.fixture
def guild():
    guild = MagicMock(spec=discord.Guild)
    guild.owner_id = 1
    guild.ban = AsyncMock()
    guild.unban = AsyncMock()
    guild.fetch_member = AsyncMock()
    return guild


@pytest.fixture
def channel():
    channel = MagicMock(spec=discord.TextChannel)
    channel.send = AsyncMock()
    channel.get_partial_message.return_value.delete = AsyncMock()
    return channel


@pytest.fixture
def adapter(guild, channel):
    bot = MagicMock()
    bot.get_guild.return_value = guild
    bot.get_channel.return_value = channel
    return DiscordPlatform(bot)


class TestClampTimeout:

    def test_short_timeouts_are_untouched(self):
        until = NOW + datetime.timedelta(hours=1)
        assert clamp_timeout(until, now=NOW) == until

    def test_long_timeouts_are_capped(self):
        until = NOW + datetime.timedelta(days=365)
        clamped = clamp_timeout(until, now=NOW)
        assert clamped < NOW + MAX_TIMEOUT
        assert clamped > NOW + MAX_TIMEOUT - datetime.timedelta(minutes=5)


class TestErrorMapping:

    @pytest.mark.parametrize("cls, status", [(discord.Forbidden, 403), (discord.NotFound, 404), (discord.HTTPException, 500)])
    def test_http_errors_become_platform_errors(self, cls, status):
        with pytest.raises(PlatformError):
            with _platform_errors("do something"):
                raise http_error(cls, status, "nope")

    def test_other_errors_pass_through(self):
        with pytest.raises(ValueError):
            with _platform_errors("do something"):
                raise ValueError("bug")


class TestDiscordPlatform:

    @pytest.mark.asyncio
    async def test_owner_is_admin_without_fetch(self, adapter, guild):
        guild.owner_id = MEMBER.to_int()
        assert await adapter.is_admin(GUILD, MEMBER)
        guild.fetch_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_permission_checked_live(self, adapter, guild):
        guild.fetch_member.return_value = MagicMock(guild_permissions=MagicMock(administrator=False))
        assert not await adapter.is_admin(GUILD, MEMBER)
        guild.fetch_member.assert_awaited_once_with(MEMBER.to_int())

    @pytest.mark.asyncio
    async def test_missing_member_is_platform_error(self, adapter, guild):
        guild.fetch_member.side_effect = http_error(discord.NotFound, 404, "Unknown Member")
        with pytest.raises(PlatformError):
            await adapter.is_admin(GUILD, MEMBER)

    @pytest.mark.asyncio
    async def test_delete_message(self, adapter, channel):
        await adapter.delete_message(GUILD, CHANNEL, MessageID(77))
        channel.get_partial_message.assert_called_once_with(77)
        channel.get_partial_message.return_value.delete.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_restrict_member_clamps_timeout(self, adapter, guild):
        member = MagicMock()
        member.timeout = AsyncMock()
        guild.fetch_member.return_value = member

        await adapter.restrict_member(GUILD, MEMBER, discord.utils.utcnow() + datetime.timedelta(days=90), "spam")

        until = member.timeout.await_args.args[0]
        assert until <= discord.utils.utcnow() + MAX_TIMEOUT
        assert member.timeout.await_args.kwargs["reason"] == "Warncord: spam"

    @pytest.mark.asyncio
    async def test_ban_and_unban_by_id(self, adapter, guild):
        await adapter.remove_member(GUILD, MEMBER, "spam")
        await adapter.unban_member(GUILD, MEMBER)

        banned = guild.ban.await_args.args[0]
        assert banned.id == MEMBER.to_int()
        assert guild.ban.await_args.kwargs["reason"] == "Warncord: spam"
        assert guild.unban.await_args.args[0].id == MEMBER.to_int()

    @pytest.mark.asyncio
    async def test_forbidden_ban(self, adapter, guild):
        guild.ban.side_effect = http_error(discord.Forbidden, 403, "Missing Permissions")
        with pytest.raises(PlatformError, match="Missing permissions"):
            await adapter.remove_member(GUILD, MEMBER, "spam")

    @pytest.mark.asyncio
    async def test_send_message(self, adapter, channel):
        await adapter.send_message(GUILD, CHANNEL, "hello")
        assert channel.send.await_args.args == ("hello",)

    @pytest.mark.asyncio
    async def test_notify_admins_prefers_updates_channel(self, adapter, guild):
        updates = MagicMock()
        updates.send = AsyncMock()
        guild.public_updates_channel = updates
        guild.system_channel = MagicMock()

        await adapter.notify_admins(GUILD, "user banned")

        assert updates.send.await_args.args == ("**Moderation notice:** user banned",)

    @pytest.mark.asyncio
    async def test_notify_admins_without_channel_is_skipped(self, adapter, guild):
        guild.public_updates_channel = None
        guild.system_channel = None
        await adapter.notify_admins(GUILD, "user banned")
