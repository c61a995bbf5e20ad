"""Tests for the platform-neutral command handler."""

from dataclasses import replace

import pytest

from conftest import ADMIN, GUILD, MEMBER, make_message
from warncord.datatypes.command_datatypes import CommandTarget
from warncord.datatypes.moderation_datatypes import EventType
from warncord.moderation.command_handler import HELP_TEXT, NOT_ADMIN_REPLY
from warncord.moderation.errors import PlatformError


@pytest.fixture
def commands(services):
    return services.commands


class TestAuthorization:

    @pytest.mark.asyncio
    async def test_non_admin_is_rejected_without_side_effects(self, commands, services, platform, admin_ctx, member_target):
        platform.is_admin.return_value = False

        result = await commands.ban(admin_ctx, member_target, "bye")

        assert result.reply == NOT_ADMIN_REPLY
        assert result.ephemeral
        assert await services.tracker.get_state(MEMBER) is None
        assert await services.audit.recent() == []
        platform.remove_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_check_failure_counts_as_not_admin(self, commands, services, platform, admin_ctx):
        platform.is_admin.side_effect = PlatformError("Unknown Member")
        result = await commands.addfilter(admin_ctx, "badword")
        assert result.reply == NOT_ADMIN_REPLY
        assert await services.policies.list_terms() == []

    @pytest.mark.asyncio
    async def test_admin_check_uses_guild_and_issuer(self, commands, platform, admin_ctx):
        await commands.filters(admin_ctx)
        platform.is_admin.assert_awaited_once_with(GUILD, ADMIN)

    @pytest.mark.asyncio
    async def test_user_commands_need_no_admin(self, commands, platform, admin_ctx):
        platform.is_admin.return_value = False
        assert (await commands.help(admin_ctx)).reply == HELP_TEXT
        assert (await commands.status(admin_ctx)).reply == "You have no warnings."
        platform.is_admin.assert_not_awaited()


class TestTargets:

    @pytest.mark.asyncio
    async def test_missing_target(self, commands, admin_ctx):
        assert (await commands.warn(admin_ctx, None)).reply == "Please specify a user."

    @pytest.mark.parametrize("command", ["warn", "mute", "ban", "unmute", "unban"])
    @pytest.mark.asyncio
    async def test_cannot_target_self(self, commands, services, admin_ctx, command):
        result = await getattr(commands, command)(admin_ctx, CommandTarget.from_id(ADMIN))
        assert result.reply == "You cannot perform moderation actions on yourself."
        assert await services.tracker.get_state(ADMIN) is None


class TestFilterCommands:

    @pytest.mark.asyncio
    async def test_add_list_update_remove(self, commands, admin_ctx):
        added = await commands.addfilter(admin_ctx, "badword", "spam", auto_mute="yes", mute_after="2")
        assert added.reply == "Added filter term `#1` **badword** [spam] delete warn mute@2"

        listed = await commands.filters(admin_ctx)
        assert "`#1` **badword**" in listed.reply

        updated = await commands.updatefilter(admin_ctx, 1, "auto_ban", "true")
        assert updated.reply.endswith("mute@2 ban@5")

        removed = await commands.removefilter(admin_ctx, 1)
        assert removed.reply == "Removed filter term #1."
        assert (await commands.filters(admin_ctx)).reply == "No filter terms configured."

    @pytest.mark.asyncio
    async def test_unknown_term_id(self, commands, admin_ctx):
        assert (await commands.removefilter(admin_ctx, 42)).reply == "Filter term 42 not found"
        assert (await commands.updatefilter(admin_ctx, 42, "auto_ban", "true")).reply == "Filter term 42 not found"

    @pytest.mark.asyncio
    async def test_bad_input_is_a_reply(self, commands, admin_ctx):
        assert (await commands.addfilter(admin_ctx, "")).reply == "Please specify a word or phrase to filter."
        assert "not a valid category" in (await commands.addfilter(admin_ctx, "x", "weird")).reply
        assert "Unexpected filter options" in (await commands.addfilter(admin_ctx, "x", colour="red")).reply

    @pytest.mark.asyncio
    async def test_none_flags_use_defaults(self, commands, services, admin_ctx):
        await commands.addfilter(admin_ctx, "x", None, auto_mute=None, mute_after=None)
        [term] = await services.policies.list_terms()
        assert term.auto_mute is False and term.mute_after == 3


class TestModerationCommands:

    @pytest.mark.asyncio
    async def test_warn_reply_and_event(self, commands, services, admin_ctx, member_target):
        result = await commands.warn(admin_ctx, member_target, "spamming")

        assert result.reply == f"User <@{MEMBER}> has been warned (1 warnings) for: spamming"
        assert not result.ephemeral
        [event] = await services.audit.recent()
        assert event.action_type is EventType.WARN
        assert event.performed_by == "admin#0001"

    @pytest.mark.asyncio
    async def test_warn_default_reason(self, commands, admin_ctx, member_target):
        result = await commands.warn(admin_ctx, member_target, "   ")
        assert result.reply.endswith("for: No reason provided")

    @pytest.mark.asyncio
    async def test_warn_escalates_to_mute_then_ban(self, commands, services, platform, admin_ctx, member_target):
        await services.policies.update_policy(GUILD, {"mute_threshold": 2, "ban_threshold": 3})

        await commands.warn(admin_ctx, member_target, "one")
        muted = await commands.warn(admin_ctx, member_target, "two")
        assert muted.reply == f"User <@{MEMBER}> has been warned (2 warnings) and muted for 1 days for: two"
        platform.restrict_member.assert_awaited_once()

        banned = await commands.warn(admin_ctx, member_target, "three")
        assert banned.reply == f"User <@{MEMBER}> has been warned (3 warnings) and banned for: three"
        platform.remove_member.assert_awaited_once()

        types = [e.action_type for e in await services.audit.recent()]
        assert types == [EventType.BAN, EventType.WARN, EventType.MUTE, EventType.WARN, EventType.WARN]

    @pytest.mark.asyncio
    async def test_mute_with_duration(self, commands, services, platform, admin_ctx, member_target):
        result = await commands.mute(admin_ctx, member_target, "2h", "calm down")

        assert result.reply == f"User <@{MEMBER}> has been muted for 2 hours."
        state = await services.tracker.get_state(MEMBER)
        assert state.is_muted and state.username == "member#0002"
        [event] = await services.audit.recent()
        assert event.extra["mute_duration_minutes"] == 120
        assert event.details == "calm down"

    @pytest.mark.asyncio
    async def test_mute_bad_token_falls_back_to_a_day(self, commands, admin_ctx, member_target):
        result = await commands.mute(admin_ctx, member_target, "soon")
        assert result.reply == f"User <@{MEMBER}> has been muted for 1 days."

    @pytest.mark.asyncio
    async def test_mute_zero_duration_rejected(self, commands, services, admin_ctx, member_target):
        result = await commands.mute(admin_ctx, member_target, "0m")
        assert result.reply == "Please specify a valid duration (e.g., 1h, 30m, 2d)"
        assert await services.tracker.get_state(MEMBER) is None

    @pytest.mark.asyncio
    async def test_mute_default_reason(self, commands, services, admin_ctx, member_target):
        await commands.mute(admin_ctx, member_target)
        [event] = await services.audit.recent()
        assert event.details == "Manual mute by admin"

    @pytest.mark.asyncio
    async def test_ban_unban_unmute(self, commands, services, admin_ctx, member_target):
        assert (await commands.ban(admin_ctx, member_target)).reply == (
            f"User <@{MEMBER}> has been banned for: No reason provided"
        )
        assert (await services.tracker.get_state(MEMBER)).is_banned

        assert (await commands.unban(admin_ctx, member_target)).reply == f"User <@{MEMBER}> has been unbanned."
        assert (await commands.unmute(admin_ctx, member_target)).reply == f"User <@{MEMBER}> has been unmuted."
        assert not (await services.tracker.get_state(MEMBER)).is_banned

    @pytest.mark.asyncio
    async def test_enforcement_failure_is_reported(self, commands, services, platform, admin_ctx, member_target):
        platform.remove_member.side_effect = PlatformError("Missing Permissions")

        result = await commands.ban(admin_ctx, member_target, "spam")

        assert result.reply.startswith(f"User <@{MEMBER}> has been banned for: spam")
        assert "enforcement may be incomplete (Missing Permissions)" in result.reply
        assert result.report.incomplete
        assert (await services.tracker.get_state(MEMBER)).is_banned


class TestSettingsAndReports:

    @pytest.mark.asyncio
    async def test_view_settings(self, commands, admin_ctx):
        reply = (await commands.settings(admin_ctx)).reply
        assert reply.startswith("**Moderation settings**")
        assert "`default_mute_minutes`: 1440 (1 days)" in reply
        assert "`ban_threshold`: 8" in reply
        assert "`welcome_message`: not set" in reply

    @pytest.mark.asyncio
    async def test_update_setting(self, commands, services, admin_ctx):
        reply = (await commands.settings(admin_ctx, "mute_threshold", "4")).reply
        assert reply.startswith("Updated `mute_threshold`.")
        assert "`mute_threshold`: 4" in reply
        assert (await services.policies.get_policy(GUILD)).mute_threshold == 4

    @pytest.mark.asyncio
    async def test_invalid_setting_leaves_policy_unchanged(self, commands, services, admin_ctx):
        reply = (await commands.settings(admin_ctx, "ban_threshold", "0")).reply
        assert reply == "ban_threshold must be greater than 0."
        assert (await services.policies.get_policy(GUILD)).ban_threshold == 8

    @pytest.mark.asyncio
    async def test_setting_needs_both_arguments(self, commands, admin_ctx):
        reply = (await commands.settings(admin_ctx, "ban_threshold")).reply
        assert reply.startswith("Please specify both")

    @pytest.mark.asyncio
    async def test_stats(self, commands, services, admin_ctx):
        await services.policies.add_term("badword")
        await services.engine.scan_message(make_message("badword"))
        reply = (await commands.stats(admin_ctx)).reply
        assert "Messages filtered: 1 today, 1 this week, 1 total" in reply
        assert "Warnings issued: 0 today, 0 this week, 0 total" in reply

    @pytest.mark.asyncio
    async def test_logs(self, commands, admin_ctx, member_target):
        assert (await commands.logs(admin_ctx)).reply == "No moderation events recorded yet."
        await commands.warn(admin_ctx, member_target, "first")
        await commands.warn(admin_ctx, member_target, "second")

        reply = (await commands.logs(admin_ctx, 1)).reply
        assert "second" in reply and "first" not in reply
        assert "The limit must be" in (await commands.logs(admin_ctx, 0)).reply


class TestStatus:

    @pytest.mark.asyncio
    async def test_good_standing(self, commands, services, admin_ctx):
        await services.tracker.increment_warning(ADMIN)
        assert (await commands.status(admin_ctx)).reply == "Warnings: 1\nStatus: in good standing"

    @pytest.mark.asyncio
    async def test_muted_and_banned(self, commands, services, admin_ctx):
        member_ctx = replace(admin_ctx, issuer_id=MEMBER)
        await services.tracker.mute(MEMBER, 60)
        assert "Status: muted until " in (await commands.status(member_ctx)).reply

        await services.tracker.ban(MEMBER)
        assert (await commands.status(member_ctx)).reply == "Warnings: 0\nStatus: banned"
