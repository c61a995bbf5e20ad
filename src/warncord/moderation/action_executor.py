"""
Action executor: applies computed actions to state, the audit trail and Discord.

Restrictive actions follow a fixed order:

1. Violation tracker state is committed.
2. An audit event is recorded.
3. The platform call is made.
4. The announcement (and, for automatic actions, the admin notice) is posted.

A failing platform call never undoes steps 1 and 2. The failure is logged
and added to the :class:`ExecutionReport` so callers can tell the invoker
that enforcement may be incomplete.
"""

from __future__ import annotations

from typing import Sequence

from warncord.datatypes.moderation_datatypes import (
    ActionFailure,
    ActionType,
    EventType,
    ExecutionReport,
    ModerationAction,
    ModerationEvent,
)
from warncord.moderation.audit_log import AuditLog
from warncord.moderation.chat_platform import ChatPlatformClient
from warncord.moderation.errors import PlatformError
from warncord.moderation.policy_store import PolicyStore
from warncord.moderation.violation_tracker import ViolationTracker
from warncord.util.logger import get_logger

logger = get_logger("action_executor")


class ActionExecutor:
    """Applies :class:`ModerationAction` lists in order."""

    def __init__(
        self,
        platform: ChatPlatformClient,
        tracker: ViolationTracker,
        audit: AuditLog,
        policies: PolicyStore,
    ):
        self._platform = platform
        self._tracker = tracker
        self._audit = audit
        self._policies = policies

    async def execute(self, actions: Sequence[ModerationAction]) -> ExecutionReport:
        report = ExecutionReport()
        for action in actions:
            await self._apply(action, report)
        return report

    async def _apply(self, action: ModerationAction, report: ExecutionReport) -> None:
        if action.kind is ActionType.DELETE:
            if await self._call(action, report, self._platform.delete_message(
                action.guild_id, action.channel_id, action.message_id,
            )):
                report.applied.append(action)
            return

        if action.kind is ActionType.NOTICE:
            if await self._call(action, report, self._platform.send_message(
                action.guild_id, action.channel_id, action.notice_text or action.reason,
            )):
                report.applied.append(action)
            return

        if action.kind is ActionType.MUTE:
            minutes = action.duration_minutes or 0
            state = await self._tracker.mute(action.user_id, minutes)
            await self._record(action, EventType.MUTE, mute_duration_minutes=minutes)
            report.applied.append(action)
            # Banned users keep no stored expiry but still get timed out in this guild
            until = state.mute_expires_at or self._tracker.mute_expiry(minutes)
            enforced = await self._call(action, report, self._platform.restrict_member(
                action.guild_id, action.user_id, until, action.reason,
            ))

        elif action.kind is ActionType.BAN:
            await self._tracker.ban(action.user_id)
            await self._record(action, EventType.BAN)
            report.applied.append(action)
            enforced = await self._call(action, report, self._platform.remove_member(
                action.guild_id, action.user_id, action.reason,
            ))

        elif action.kind is ActionType.UNMUTE:
            await self._tracker.unmute(action.user_id)
            await self._record(action, EventType.UNMUTE)
            report.applied.append(action)
            enforced = await self._call(action, report, self._platform.unrestrict_member(
                action.guild_id, action.user_id,
            ))

        elif action.kind is ActionType.UNBAN:
            await self._tracker.unban(action.user_id)
            await self._record(action, EventType.UNBAN)
            report.applied.append(action)
            enforced = await self._call(action, report, self._platform.unban_member(
                action.guild_id, action.user_id,
            ))

        else:
            raise ValueError(f"Unsupported action kind: {action.kind}")

        if not enforced:
            return

        if action.announcement:
            await self._call(action, report, self._platform.send_message(
                action.guild_id, action.channel_id, action.announcement,
            ))

        if action.is_automatic and action.kind in (ActionType.MUTE, ActionType.BAN):
            policy = await self._policies.get_policy(action.guild_id)
            if policy.notify_admins:
                await self._call(action, report, self._platform.notify_admins(
                    action.guild_id, f"{action.user_label or action.user_id}: {action.reason}",
                ))

    async def _record(self, action: ModerationAction, event_type: EventType, **extra) -> None:
        details = dict(extra)
        if action.reason:
            details["reason"] = action.reason
        details["group_id"] = str(action.guild_id)

        await self._audit.record(ModerationEvent(
            user_id=action.user_id,
            action_type=event_type,
            details=action.reason,
            performed_by=action.performed_by,
            source_message_text=action.source_message_text,
            filter_term_id=action.filter_term_id,
            extra=details,
        ))

    async def _call(self, action: ModerationAction, report: ExecutionReport, call) -> bool:
        """Await a platform coroutine; a PlatformError is logged and reported, never raised."""
        try:
            await call
        except PlatformError as exc:
            logger.warning(
                "[ACTION EXECUTOR] %s for user %s in guild %s failed: %s",
                action.kind, action.user_id, action.guild_id, exc,
            )
            report.failures.append(ActionFailure(action=action, error=str(exc)))
            return False
        return True
