"""Wires the moderation components together.

The bot builds one :class:`ModerationServices` at startup and hands it to
each cog; tests build their own around a temporary database and a fake
platform.
"""

from __future__ import annotations

from dataclasses import dataclass

from warncord.database.database import Database
from warncord.moderation.action_executor import ActionExecutor
from warncord.moderation.audit_log import AuditLog
from warncord.moderation.chat_platform import ChatPlatformClient
from warncord.moderation.command_handler import CommandHandler
from warncord.moderation.escalation_engine import EscalationEngine
from warncord.moderation.policy_store import PolicyStore
from warncord.moderation.violation_tracker import ViolationTracker


@dataclass(slots=True)
class ModerationServices:
    database: Database
    platform: ChatPlatformClient
    policies: PolicyStore
    tracker: ViolationTracker
    audit: AuditLog
    engine: EscalationEngine
    executor: ActionExecutor
    commands: CommandHandler


def build_services(database: Database, platform: ChatPlatformClient) -> ModerationServices:
    policies = PolicyStore(database)
    tracker = ViolationTracker(database)
    audit = AuditLog(database)
    engine = EscalationEngine(policies, tracker, audit)
    executor = ActionExecutor(platform, tracker, audit, policies)
    commands = CommandHandler(platform, policies, tracker, audit, engine, executor)
    return ModerationServices(
        database=database,
        platform=platform,
        policies=policies,
        tracker=tracker,
        audit=audit,
        engine=engine,
        executor=executor,
        commands=commands,
    )
