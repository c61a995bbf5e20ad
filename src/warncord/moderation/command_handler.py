"""
Command handler: admin and user commands, independent of py-cord.

Admin commands check the issuer against the platform's live admin list
before doing anything. Input, authorization, not-found and validation errors
become rejection replies with no state change and no audit event.
"""

from __future__ import annotations

import functools
from typing import Any, Awaitable, Callable, Dict, Optional

from warncord.datatypes.command_datatypes import CommandContext, CommandResult, CommandTarget
from warncord.datatypes.moderation_datatypes import ActionType, ExecutionReport, ModerationAction
from warncord.moderation.action_executor import ActionExecutor
from warncord.moderation.audit_log import AuditLog
from warncord.moderation.chat_platform import ChatPlatformClient
from warncord.moderation.errors import (
    AuthorizationError,
    CommandInputError,
    FilterTermNotFoundError,
    PlatformError,
    PolicyValidationError,
)
from warncord.moderation.escalation_engine import Escalation, EscalationEngine
from warncord.moderation.policy_store import (
    FILTER_TERM_EDITABLE_FIELDS,
    POLICY_EDITABLE_FIELDS,
    PolicyStore,
    coerce_field_value,
)
from warncord.moderation.violation_tracker import ViolationTracker
from warncord.util.duration import format_duration, parse_duration
from warncord.util.format_utils import (
    format_event,
    format_filter_term,
    format_stats,
    humanize_timestamp,
    join_lines,
)
from warncord.util.logger import get_logger

logger = get_logger("command_handler")

NOT_ADMIN_REPLY = "You must be an admin to use this command."
DEFAULT_WARN_REASON = "No reason provided"
DEFAULT_BAN_REASON = "No reason provided"
DEFAULT_MUTE_REASON = "Manual mute by admin"
INCOMPLETE_SUFFIX = "\nWarning: enforcement may be incomplete ({errors})."

DEFAULT_LOG_LIMIT = 10
MAX_LOG_LIMIT = 50

HELP_TEXT = """**Warncord commands**

**Admin commands**
`/addfilter <word>` - Add a word to the filter list
`/removefilter <id>` - Remove a filter term
`/updatefilter <id> <field> <value>` - Change one field of a filter term
`/filters` - List filter terms in match order
`/warn <user> [reason]` - Issue a warning to a user
`/mute <user> [duration] [reason]` - Mute a user (e.g. 1h, 30m, 2d, 1w)
`/ban <user> [reason]` - Ban a user from the server
`/unmute <user>` - Unmute a previously muted user
`/unban <user_id>` - Unban a previously banned user
`/settings [field] [value]` - View or change the server's moderation settings
`/stats` - View moderation statistics
`/logs [limit]` - Show the most recent moderation events

**User commands**
`/help` - Show this help message
`/status` - Check your warning status"""

CommandMethod = Callable[..., Awaitable[CommandResult]]


def admin_command(func: CommandMethod) -> CommandMethod:
    """Run ``func`` only for guild admins and turn expected errors into replies."""

    @functools.wraps(func)
    async def wrapper(self: "CommandHandler", ctx: CommandContext, *args: Any, **kwargs: Any) -> CommandResult:
        try:
            await self.authorize(ctx)
            return await func(self, ctx, *args, **kwargs)
        except AuthorizationError as exc:
            logger.info("[COMMANDS] Rejected /%s from non-admin %s in guild %s", func.__name__, ctx.issuer_id, ctx.guild_id)
            return CommandResult(reply=str(exc))
        except (CommandInputError, FilterTermNotFoundError, PolicyValidationError) as exc:
            logger.debug("[COMMANDS] /%s rejected: %s", func.__name__, exc)
            return CommandResult(reply=str(exc))

    return wrapper


def _with_report(reply: str, report: ExecutionReport) -> CommandResult:
    if report.incomplete:
        errors = "; ".join(failure.error for failure in report.failures)
        reply += INCOMPLETE_SUFFIX.format(errors=errors)
    return CommandResult(reply=reply, report=report, ephemeral=False)


class CommandHandler:
    """Implements every slash command's behaviour on platform-neutral inputs."""

    def __init__(
        self,
        platform: ChatPlatformClient,
        policies: PolicyStore,
        tracker: ViolationTracker,
        audit: AuditLog,
        engine: EscalationEngine,
        executor: ActionExecutor,
    ):
        self._platform = platform
        self._policies = policies
        self._tracker = tracker
        self._audit = audit
        self._engine = engine
        self._executor = executor

    async def authorize(self, ctx: CommandContext) -> None:
        """Raise :class:`AuthorizationError` unless the issuer is a guild admin right now.

        A platform failure during the check counts as "not an admin".
        """
        try:
            is_admin = await self._platform.is_admin(ctx.guild_id, ctx.issuer_id)
        except PlatformError as exc:
            logger.warning("[COMMANDS] Admin check for %s in guild %s failed: %s", ctx.issuer_id, ctx.guild_id, exc)
            is_admin = False
        if not is_admin:
            raise AuthorizationError(NOT_ADMIN_REPLY)

    @staticmethod
    def _require_target(ctx: CommandContext, target: Optional[CommandTarget]) -> CommandTarget:
        if target is None:
            raise CommandInputError("Please specify a user.")
        if target.user_id == ctx.issuer_id:
            raise CommandInputError("You cannot perform moderation actions on yourself.")
        return target

    def _action(self, kind: ActionType, ctx: CommandContext, target: CommandTarget, reason: str = "", **fields: Any) -> ModerationAction:
        return ModerationAction(
            kind=kind,
            guild_id=ctx.guild_id,
            channel_id=ctx.channel_id,
            user_id=target.user_id,
            user_label=target.label,
            reason=reason,
            performed_by=ctx.issuer_name,
            **fields,
        )

    # ------------------------------------------------------------------
    # Filter terms
    # ------------------------------------------------------------------

    @admin_command
    async def addfilter(
        self,
        ctx: CommandContext,
        term: str,
        category: Optional[str] = None,
        **flags: Any,
    ) -> CommandResult:
        unknown = sorted(name for name in flags if name not in FILTER_TERM_EDITABLE_FIELDS or name in ("term", "category"))
        if unknown:
            raise CommandInputError(f"Unexpected filter options: {', '.join(unknown)}")

        values: Dict[str, Any] = {
            name: coerce_field_value(name, FILTER_TERM_EDITABLE_FIELDS[name], value)
            for name, value in flags.items()
            if value is not None
        }
        created = await self._policies.add_term(
            term,
            coerce_field_value("category", FILTER_TERM_EDITABLE_FIELDS["category"], category or "custom"),
            **values,
        )
        return CommandResult(reply=f"Added filter term {format_filter_term(created)}")

    @admin_command
    async def removefilter(self, ctx: CommandContext, term_id: int) -> CommandResult:
        await self._policies.delete_term(term_id)
        return CommandResult(reply=f"Removed filter term #{term_id}.")

    @admin_command
    async def updatefilter(self, ctx: CommandContext, term_id: int, field: str, value: str) -> CommandResult:
        updated = await self._policies.update_term(term_id, {field: value})
        return CommandResult(reply=f"Updated filter term {format_filter_term(updated)}")

    @admin_command
    async def filters(self, ctx: CommandContext) -> CommandResult:
        terms = await self._policies.list_terms()
        if not terms:
            return CommandResult(reply="No filter terms configured.")
        return CommandResult(reply=join_lines(["**Filter terms** (checked in this order)"] + [format_filter_term(t) for t in terms]))

    # ------------------------------------------------------------------
    # Moderation
    # ------------------------------------------------------------------

    @admin_command
    async def warn(self, ctx: CommandContext, target: Optional[CommandTarget], reason: Optional[str] = None) -> CommandResult:
        target = self._require_target(ctx, target)
        reason = (reason or "").strip() or DEFAULT_WARN_REASON

        state, escalation, actions = await self._engine.apply_manual_warn(ctx, target, reason)
        report = await self._executor.execute(actions)

        count = state.warning_count
        if escalation is Escalation.POLICY_BAN:
            reply = f"User {target.label} has been warned ({count} warnings) and banned for: {reason}"
        elif escalation is Escalation.POLICY_MUTE:
            duration = format_duration(actions[0].duration_minutes)
            reply = f"User {target.label} has been warned ({count} warnings) and muted for {duration} for: {reason}"
        else:
            reply = f"User {target.label} has been warned ({count} warnings) for: {reason}"
        return _with_report(reply, report)

    @admin_command
    async def mute(
        self,
        ctx: CommandContext,
        target: Optional[CommandTarget],
        duration: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> CommandResult:
        target = self._require_target(ctx, target)
        minutes = parse_duration((duration or "").strip())
        if minutes <= 0:
            raise CommandInputError("Please specify a valid duration (e.g., 1h, 30m, 2d)")
        reason = (reason or "").strip() or DEFAULT_MUTE_REASON

        await self._tracker.ensure_user(target.user_id, target.name)
        report = await self._executor.execute([
            self._action(ActionType.MUTE, ctx, target, reason, duration_minutes=minutes),
        ])
        return _with_report(f"User {target.label} has been muted for {format_duration(minutes)}.", report)

    @admin_command
    async def ban(self, ctx: CommandContext, target: Optional[CommandTarget], reason: Optional[str] = None) -> CommandResult:
        target = self._require_target(ctx, target)
        reason = (reason or "").strip() or DEFAULT_BAN_REASON

        await self._tracker.ensure_user(target.user_id, target.name)
        report = await self._executor.execute([self._action(ActionType.BAN, ctx, target, reason)])
        return _with_report(f"User {target.label} has been banned for: {reason}", report)

    @admin_command
    async def unmute(self, ctx: CommandContext, target: Optional[CommandTarget]) -> CommandResult:
        target = self._require_target(ctx, target)
        report = await self._executor.execute([
            self._action(ActionType.UNMUTE, ctx, target, f"Unmuted by {ctx.issuer_name}"),
        ])
        return _with_report(f"User {target.label} has been unmuted.", report)

    @admin_command
    async def unban(self, ctx: CommandContext, target: Optional[CommandTarget]) -> CommandResult:
        target = self._require_target(ctx, target)
        report = await self._executor.execute([
            self._action(ActionType.UNBAN, ctx, target, f"Unbanned by {ctx.issuer_name}"),
        ])
        return _with_report(f"User {target.label} has been unbanned.", report)

    # ------------------------------------------------------------------
    # Settings and reporting
    # ------------------------------------------------------------------

    @admin_command
    async def settings(self, ctx: CommandContext, field: Optional[str] = None, value: Optional[str] = None) -> CommandResult:
        if field is None and value is None:
            policy = await self._policies.get_policy(ctx.guild_id)
            header = "**Moderation settings**"
        elif field is None or value is None:
            raise CommandInputError("Please specify both a setting and a value, or neither to view the settings.")
        else:
            policy = await self._policies.update_policy(ctx.guild_id, {field: value})
            header = f"Updated `{field}`.\n**Moderation settings**"

        lines = [header]
        for name in POLICY_EDITABLE_FIELDS:
            current = getattr(policy, name)
            if name == "default_mute_minutes":
                current = f"{current} ({format_duration(current)})"
            lines.append(f"`{name}`: {current if current is not None else 'not set'}")
        return CommandResult(reply="\n".join(lines))

    @admin_command
    async def stats(self, ctx: CommandContext) -> CommandResult:
        return CommandResult(reply=format_stats(await self._audit.stats()))

    @admin_command
    async def logs(self, ctx: CommandContext, limit: Optional[int] = None) -> CommandResult:
        limit = DEFAULT_LOG_LIMIT if limit is None else limit
        if limit <= 0:
            raise CommandInputError("The limit must be a positive number.")
        events = await self._audit.recent(limit=min(limit, MAX_LOG_LIMIT))
        if not events:
            return CommandResult(reply="No moderation events recorded yet.")
        return CommandResult(reply=join_lines(["**Recent moderation events**"] + [format_event(e) for e in events]))

    # ------------------------------------------------------------------
    # User commands
    # ------------------------------------------------------------------

    async def help(self, ctx: CommandContext) -> CommandResult:
        return CommandResult(reply=HELP_TEXT)

    async def status(self, ctx: CommandContext) -> CommandResult:
        state = await self._tracker.get_state(ctx.issuer_id)
        if state is None:
            return CommandResult(reply="You have no warnings.")

        lines = [f"Warnings: {state.warning_count}"]
        if state.is_banned:
            lines.append("Status: banned")
        elif state.is_muted:
            lines.append(f"Status: muted until {humanize_timestamp(state.mute_expires_at)}")
        else:
            lines.append("Status: in good standing")
        return CommandResult(reply="\n".join(lines))
