"""
Inputs and outputs of the platform-neutral command handler.

The slash-command cog converts the py-cord context into these records, so the
command handler can be exercised without Discord objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from warncord.datatypes.discord_datatypes import ChannelID, GuildID, UserID
from warncord.datatypes.moderation_datatypes import ExecutionReport


@dataclass(slots=True)
class CommandContext:
    """Where a command was issued and by whom.

    Attributes:
        guild_id: Guild the command was issued in.
        channel_id: Channel the command was issued in.
        issuer_id: User who issued the command.
        issuer_name: Identity stored as ``performed_by`` on audit events.
    """

    guild_id: GuildID
    channel_id: ChannelID
    issuer_id: UserID
    issuer_name: str


@dataclass(slots=True)
class CommandTarget:
    """The user a moderation command acts on."""

    user_id: UserID
    label: str
    name: Optional[str] = None

    @classmethod
    def from_id(cls, user_id: UserID, name: Optional[str] = None) -> "CommandTarget":
        return cls(user_id=user_id, label=f"<@{user_id}>", name=name)


@dataclass(slots=True)
class CommandResult:
    """Reply to show the invoker, plus the execution report when actions ran.

    ``ephemeral`` is False for replies that announce a moderation action to
    the channel.
    """

    reply: str
    report: Optional[ExecutionReport] = None
    ephemeral: bool = True
