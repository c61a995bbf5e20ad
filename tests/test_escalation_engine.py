"""Tests for the escalation ladder and the engine that drives it."""

import pytest

from conftest import CHANNEL, GUILD, MEMBER, make_message
from warncord.datatypes.discord_datatypes import GuildID, UserID
from warncord.datatypes.moderation_datatypes import ActionType, EventType, FilterTerm, GroupPolicy
from warncord.moderation.escalation_engine import Escalation, choose_escalation


def policy(**overrides):
    return GroupPolicy(guild_id=GUILD, **overrides)


class TestChooseEscalation:

    def test_below_every_threshold_is_a_notice(self):
        assert choose_escalation(1, policy()) is Escalation.NOTICE
        assert choose_escalation(4, policy()) is Escalation.NOTICE

    def test_policy_thresholds(self):
        assert choose_escalation(5, policy()) is Escalation.POLICY_MUTE
        assert choose_escalation(7, policy()) is Escalation.POLICY_MUTE
        assert choose_escalation(8, policy()) is Escalation.POLICY_BAN
        assert choose_escalation(20, policy()) is Escalation.POLICY_BAN

    def test_policy_ban_beats_policy_mute(self):
        assert choose_escalation(3, policy(mute_threshold=3, ban_threshold=3)) is Escalation.POLICY_BAN

    def test_term_mute_preferred_over_term_ban_when_both_reached(self):
        term = FilterTerm(id=1, term="x", auto_mute=True, mute_after=2, auto_ban=True, ban_after=2)
        assert choose_escalation(2, policy(), term) is Escalation.TERM_MUTE

    def test_term_rule_suppresses_policy_thresholds(self):
        term = FilterTerm(id=1, term="x", auto_mute=True, mute_after=2)
        assert choose_escalation(9, policy(), term) is Escalation.TERM_MUTE

    def test_term_ban_when_mute_disabled(self):
        term = FilterTerm(id=1, term="x", auto_ban=True, ban_after=4)
        assert choose_escalation(3, policy(), term) is Escalation.NOTICE
        assert choose_escalation(4, policy(), term) is Escalation.TERM_BAN

    def test_disabled_term_rules_fall_through_to_policy(self):
        term = FilterTerm(id=1, term="x", mute_after=1, ban_after=1)
        assert choose_escalation(5, policy(), term) is Escalation.POLICY_MUTE


class TestScanMessage:

    @pytest.mark.asyncio
    async def test_clean_message_produces_nothing(self, services):
        await services.policies.add_term("badword")
        assert await services.engine.scan_message(make_message("hello everyone")) == []
        assert await services.tracker.get_state(MEMBER) is None
        assert await services.audit.recent() == []

    @pytest.mark.asyncio
    async def test_default_policy_ladder(self, services):
        await services.policies.add_term("badword")

        outcomes = []
        for _ in range(8):
            actions = await services.engine.scan_message(make_message("you BADWORD"))
            assert actions[0].kind is ActionType.DELETE
            outcomes.append(actions[1].kind)

        assert outcomes == [ActionType.NOTICE] * 4 + [ActionType.MUTE] * 3 + [ActionType.BAN]
        assert (await services.tracker.get_state(MEMBER)).warning_count == 8

    @pytest.mark.asyncio
    async def test_notice_text(self, services):
        await services.policies.add_term("badword")
        actions = await services.engine.scan_message(make_message("badword"))
        notice = actions[1]
        assert notice.reason == "Warning #1"
        assert notice.notice_text == f"<@{MEMBER}> warning #1: Please don't use filtered words."
        assert notice.channel_id == CHANNEL

    @pytest.mark.asyncio
    async def test_delete_action_details(self, services):
        term = await services.policies.add_term("badword")
        message = make_message("a badword here")
        delete = (await services.engine.scan_message(message))[0]
        assert delete.message_id == message.message_id
        assert delete.reason == "Message contained filtered word: badword"
        assert delete.filter_term_id == term.id

    @pytest.mark.asyncio
    async def test_detection_recorded_as_delete_event(self, services):
        term = await services.policies.add_term("badword")
        await services.engine.scan_message(make_message("badword!"))

        [event] = await services.audit.recent()
        assert event.action_type is EventType.DELETE
        assert event.performed_by == "bot"
        assert event.source_message_text == "badword!"
        assert event.filter_term_id == term.id
        assert event.extra["group_id"] == str(GUILD)

    @pytest.mark.asyncio
    async def test_term_mute_uses_policy_duration(self, services):
        await services.policies.add_term("clickhere", auto_mute=True, mute_after=2)
        await services.policies.update_policy(GUILD, {"default_mute_minutes": 60})

        await services.engine.scan_message(make_message("clickhere"))
        actions = await services.engine.scan_message(make_message("clickhere"))

        mute = actions[1]
        assert mute.kind is ActionType.MUTE
        assert mute.duration_minutes == 60
        assert mute.reason == "Automatic mute after 2 warnings for using filtered word: clickhere"
        assert mute.announcement == f"<@{MEMBER}> has been muted for 1 hours for using filtered word."
        assert mute.is_automatic

    @pytest.mark.asyncio
    async def test_term_ban(self, services):
        await services.policies.add_term("harassment1", auto_ban=True, ban_after=1)
        actions = await services.engine.scan_message(make_message("harassment1"))
        assert actions[1].kind is ActionType.BAN
        assert actions[1].announcement == f"<@{MEMBER}> has been banned for using filtered word repeatedly."

    @pytest.mark.asyncio
    async def test_policy_ban_text(self, services):
        await services.policies.add_term("badword")
        await services.policies.update_policy(GUILD, {"ban_threshold": 1})
        actions = await services.engine.scan_message(make_message("badword"))
        assert actions[1].reason == "Automatic ban after reaching 1 warnings"
        assert actions[1].announcement == f"<@{MEMBER}> has been banned after reaching 1 warnings."

    @pytest.mark.asyncio
    async def test_first_matching_term_decides(self, services):
        first = await services.policies.add_term("coin")
        await services.policies.add_term("freecoin", auto_ban=True, ban_after=1)
        actions = await services.engine.scan_message(make_message("freecoin"))
        assert actions[1].kind is ActionType.NOTICE
        assert actions[1].filter_term_id == first.id

    @pytest.mark.asyncio
    async def test_no_delete_when_term_keeps_message(self, services):
        await services.policies.add_term("badword", delete_on_match=False)
        actions = await services.engine.scan_message(make_message("badword"))
        assert [a.kind for a in actions] == [ActionType.NOTICE]

    @pytest.mark.asyncio
    async def test_no_delete_when_guild_keeps_messages(self, services):
        await services.policies.add_term("badword")
        await services.policies.update_policy(GUILD, {"delete_on_filter_match": False})
        actions = await services.engine.scan_message(make_message("badword"))
        assert [a.kind for a in actions] == [ActionType.NOTICE]

    @pytest.mark.asyncio
    async def test_warnings_disabled_only_deletes(self, services):
        await services.policies.add_term("badword")
        await services.policies.update_policy(GUILD, {"warn_on_filter_match": False})

        actions = await services.engine.scan_message(make_message("badword"))

        assert [a.kind for a in actions] == [ActionType.DELETE]
        assert await services.tracker.get_state(MEMBER) is None
        assert await services.audit.recent() == []

    @pytest.mark.asyncio
    async def test_warnings_disabled_keeps_existing_count(self, services):
        await services.policies.add_term("badword")
        for _ in range(3):
            await services.tracker.increment_warning(MEMBER)
        await services.policies.update_policy(GUILD, {"warn_on_filter_match": False})

        actions = await services.engine.scan_message(make_message("badword"))

        assert [a.kind for a in actions] == [ActionType.DELETE]
        assert (await services.tracker.get_state(MEMBER)).warning_count == 3

    @pytest.mark.asyncio
    async def test_mute_after_ban_in_another_guild(self, services, platform):
        await services.policies.add_term("badword", auto_mute=True, mute_after=1)
        await services.tracker.ban(MEMBER)

        actions = await services.engine.scan_message(make_message("badword", guild=GuildID(777)))
        assert [a.kind for a in actions] == [ActionType.DELETE, ActionType.MUTE]
        await services.executor.execute(actions)

        state = await services.tracker.get_state(MEMBER)
        assert state.is_banned
        assert not state.is_muted
        assert state.mute_expires_at is None

    @pytest.mark.asyncio
    async def test_added_term_matches_immediately(self, services):
        assert await services.engine.scan_message(make_message("newword")) == []
        await services.policies.add_term("NewWord")
        assert await services.engine.scan_message(make_message("a NEWWORD")) != []

    @pytest.mark.asyncio
    async def test_removed_term_stops_matching(self, services):
        term = await services.policies.add_term("badword")
        await services.policies.delete_term(term.id)
        assert await services.engine.scan_message(make_message("badword")) == []


class TestManualWarn:

    @pytest.mark.asyncio
    async def test_plain_warning(self, services, admin_ctx, member_target):
        state, escalation, actions = await services.engine.apply_manual_warn(admin_ctx, member_target, "rude")

        assert state.warning_count == 1
        assert escalation is Escalation.NOTICE
        assert actions == []

        [event] = await services.audit.recent()
        assert event.action_type is EventType.WARN
        assert event.performed_by == "admin#0001"
        assert event.extra == {"reason": "rude", "group_id": str(GUILD)}

    @pytest.mark.asyncio
    async def test_policy_mute_and_ban(self, services, admin_ctx, member_target):
        await services.policies.update_policy(GUILD, {"mute_threshold": 2, "ban_threshold": 3})

        await services.engine.apply_manual_warn(admin_ctx, member_target, "one")
        _, escalation, [mute] = await services.engine.apply_manual_warn(admin_ctx, member_target, "two")
        assert escalation is Escalation.POLICY_MUTE
        assert mute.kind is ActionType.MUTE
        assert mute.duration_minutes == 1440
        assert mute.performed_by == "admin#0001"
        assert mute.announcement is None

        _, escalation, [ban] = await services.engine.apply_manual_warn(admin_ctx, member_target, "three")
        assert escalation is Escalation.POLICY_BAN
        assert ban.kind is ActionType.BAN
        assert not ban.is_automatic

    @pytest.mark.asyncio
    async def test_manual_warn_ignores_term_rules(self, services, admin_ctx, member_target):
        await services.policies.add_term("badword", auto_ban=True, ban_after=1)
        _, escalation, actions = await services.engine.apply_manual_warn(admin_ctx, member_target, "rude")
        assert escalation is Escalation.NOTICE
        assert actions == []

    @pytest.mark.asyncio
    async def test_manual_and_automatic_warnings_share_a_counter(self, services, admin_ctx, member_target):
        await services.policies.add_term("badword")
        await services.engine.scan_message(make_message("badword"))
        state, _, _ = await services.engine.apply_manual_warn(admin_ctx, member_target, "rude")
        assert state.warning_count == 2
        assert state.user_id == UserID(MEMBER)
