"""
Escalation engine: turns a filtered message or a manual warning into actions.

Passive scan (:meth:`EscalationEngine.scan_message`)
----------------------------------------------------
1. Match the message against the term list (ascending id, first match wins).
2. Delete the message when both the guild toggle and the term flag allow it.
3. If the guild does not warn on filter matches, stop here.
4. Add a warning and record a ``delete`` event for the detection.
5. Pick exactly one of: term mute, term ban, policy ban, policy mute, or a
   numbered warning notice, in that order.

Manual warnings skip term rules and only consult the policy ban and mute
thresholds.

The engine changes warning counts itself. Mute and ban state is changed by
the action executor when it applies the returned actions.
"""

from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

from warncord.datatypes.command_datatypes import CommandContext, CommandTarget
from warncord.datatypes.moderation_datatypes import (
    ActionType,
    EventType,
    FilterTerm,
    GroupPolicy,
    InboundMessage,
    ModerationAction,
    ModerationEvent,
    UserViolationState,
)
from warncord.moderation.audit_log import AuditLog
from warncord.moderation.filter_matcher import find_matching_term
from warncord.moderation.policy_store import PolicyStore
from warncord.moderation.violation_tracker import ViolationTracker
from warncord.util.duration import format_duration
from warncord.util.logger import get_logger

logger = get_logger("escalation_engine")


class Escalation(Enum):
    """Outcome of the escalation ladder, in priority order."""

    TERM_MUTE = "term_mute"
    TERM_BAN = "term_ban"
    POLICY_BAN = "policy_ban"
    POLICY_MUTE = "policy_mute"
    NOTICE = "notice"

    def __str__(self) -> str:
        return self.value


def choose_escalation(warning_count: int, policy: GroupPolicy, term: Optional[FilterTerm] = None) -> Escalation:
    """Return the first rule satisfied by ``warning_count``.

    Term rules are only considered when ``term`` is given. A term rule that
    fires suppresses the policy thresholds for the same event.
    """
    if term is not None:
        if term.auto_mute and warning_count >= term.mute_after:
            return Escalation.TERM_MUTE
        if term.auto_ban and warning_count >= term.ban_after:
            return Escalation.TERM_BAN
    if warning_count >= policy.ban_threshold:
        return Escalation.POLICY_BAN
    if warning_count >= policy.mute_threshold:
        return Escalation.POLICY_MUTE
    return Escalation.NOTICE


def mention(message: InboundMessage) -> str:
    return f"<@{message.author_id}>"


class EscalationEngine:
    """Computes actions for filtered messages and manual warnings."""

    def __init__(self, policies: PolicyStore, tracker: ViolationTracker, audit: AuditLog):
        self._policies = policies
        self._tracker = tracker
        self._audit = audit

    async def scan_message(self, message: InboundMessage) -> List[ModerationAction]:
        """Return the actions to apply for ``message``; empty when nothing matched."""
        terms = await self._policies.list_terms()
        term = find_matching_term(message.content, terms)
        if term is None:
            return []

        policy = await self._policies.get_policy(message.guild_id)
        logger.info(
            "[ESCALATION] Message %s from %s matched filter term #%d '%s'",
            message.message_id, message.author_id, term.id, term.term,
        )

        actions: List[ModerationAction] = []
        if policy.delete_on_filter_match and term.delete_on_match:
            actions.append(ModerationAction(
                kind=ActionType.DELETE,
                guild_id=message.guild_id,
                channel_id=message.channel_id,
                user_id=message.author_id,
                user_label=mention(message),
                reason=f"Message contained filtered word: {term.term}",
                message_id=message.message_id,
                filter_term_id=term.id,
                source_message_text=message.content,
            ))

        if not policy.warn_on_filter_match:
            return actions

        state = await self._tracker.increment_warning(message.author_id, message.author_name)
        await self._audit.record(ModerationEvent(
            user_id=message.author_id,
            action_type=EventType.DELETE,
            details=f"Message contained filtered word: {term.term}",
            source_message_text=message.content,
            filter_term_id=term.id,
            extra={"group_id": str(message.guild_id)},
        ))

        escalation = choose_escalation(state.warning_count, policy, term)
        actions.append(self._automatic_action(escalation, message, state, policy, term))
        logger.info(
            "[ESCALATION] User %s at %d warning(s): %s",
            message.author_id, state.warning_count, escalation,
        )
        return actions

    def _automatic_action(
        self,
        escalation: Escalation,
        message: InboundMessage,
        state: UserViolationState,
        policy: GroupPolicy,
        term: FilterTerm,
    ) -> ModerationAction:
        label = mention(message)
        count = state.warning_count
        duration = format_duration(policy.default_mute_minutes)
        base = dict(
            guild_id=message.guild_id,
            channel_id=message.channel_id,
            user_id=message.author_id,
            user_label=label,
            filter_term_id=term.id,
            source_message_text=message.content,
        )

        if escalation is Escalation.TERM_MUTE:
            return ModerationAction(
                kind=ActionType.MUTE,
                reason=f"Automatic mute after {count} warnings for using filtered word: {term.term}",
                duration_minutes=policy.default_mute_minutes,
                announcement=f"{label} has been muted for {duration} for using filtered word.",
                **base,
            )
        if escalation is Escalation.TERM_BAN:
            return ModerationAction(
                kind=ActionType.BAN,
                reason=f"Automatic ban after {count} warnings for using filtered word: {term.term}",
                announcement=f"{label} has been banned for using filtered word repeatedly.",
                **base,
            )
        if escalation is Escalation.POLICY_BAN:
            return ModerationAction(
                kind=ActionType.BAN,
                reason=f"Automatic ban after reaching {policy.ban_threshold} warnings",
                announcement=f"{label} has been banned after reaching {policy.ban_threshold} warnings.",
                **base,
            )
        if escalation is Escalation.POLICY_MUTE:
            return ModerationAction(
                kind=ActionType.MUTE,
                reason=f"Automatic mute after reaching {policy.mute_threshold} warnings",
                duration_minutes=policy.default_mute_minutes,
                announcement=(
                    f"{label} has been muted for {duration} after reaching {policy.mute_threshold} warnings."
                ),
                **base,
            )
        return ModerationAction(
            kind=ActionType.NOTICE,
            reason=f"Warning #{count}",
            notice_text=f"{label} warning #{count}: Please don't use filtered words.",
            **base,
        )

    async def apply_manual_warn(
        self,
        ctx: CommandContext,
        target: CommandTarget,
        reason: str,
    ) -> Tuple[UserViolationState, Escalation, List[ModerationAction]]:
        """Add a warning issued by an admin and escalate on policy thresholds only.

        Returns:
            The updated state, the escalation chosen, and the mute or ban
            action to apply (empty for a plain warning).
        """
        state = await self._tracker.increment_warning(target.user_id, target.name)
        await self._audit.record(ModerationEvent(
            user_id=target.user_id,
            action_type=EventType.WARN,
            details=reason,
            performed_by=ctx.issuer_name,
            extra={"reason": reason, "group_id": str(ctx.guild_id)},
        ))

        policy = await self._policies.get_policy(ctx.guild_id)
        escalation = choose_escalation(state.warning_count, policy)
        logger.info(
            "[ESCALATION] %s warned %s (%d warning(s)): %s",
            ctx.issuer_name, target.user_id, state.warning_count, escalation,
        )

        base = dict(
            guild_id=ctx.guild_id,
            channel_id=ctx.channel_id,
            user_id=target.user_id,
            user_label=target.label,
            reason=reason,
            performed_by=ctx.issuer_name,
        )
        if escalation is Escalation.POLICY_BAN:
            return state, escalation, [ModerationAction(kind=ActionType.BAN, **base)]
        if escalation is Escalation.POLICY_MUTE:
            action = ModerationAction(kind=ActionType.MUTE, duration_minutes=policy.default_mute_minutes, **base)
            return state, escalation, [action]
        return state, escalation, []
