"""
Records and enumerations shared by the moderation pipeline.

Key types:
- `FilterTerm`: a filtered word or phrase with its per-term escalation flags.
- `GroupPolicy`: per-guild thresholds and toggles, created lazily with defaults.
- `UserViolationState`: per-user warning count and mute/ban status (global across guilds).
- `ModerationEvent`: append-only audit record, one per applied action.
- `ModerationAction`: an action computed by the escalation engine, applied by the executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from warncord.datatypes.discord_datatypes import ChannelID, GuildID, MessageID, UserID

PERFORMED_BY_BOT = "bot"


class FilterCategory(Enum):
    """Category a filter term belongs to. Informational only."""

    PROFANITY = "profanity"
    SPAM = "spam"
    HARASSMENT = "harassment"
    CUSTOM = "custom"

    def __str__(self) -> str:
        return self.value


class EventType(Enum):
    """Action types recorded in the audit trail."""

    DELETE = "delete"
    WARN = "warn"
    MUTE = "mute"
    BAN = "ban"
    UNMUTE = "unmute"
    UNBAN = "unban"

    def __str__(self) -> str:
        return self.value


class ActionType(Enum):
    """Actions the escalation engine and command handler can ask the executor to apply."""

    DELETE = "delete"
    NOTICE = "notice"
    MUTE = "mute"
    BAN = "ban"
    UNMUTE = "unmute"
    UNBAN = "unban"

    def __str__(self) -> str:
        return self.value


@dataclass(slots=True)
class FilterTerm:
    """A filtered word or phrase.

    Attributes:
        id: Store-assigned id; terms are matched in ascending id order.
        term: Text matched case-insensitively as a substring.
        category: Informational category.
        delete_on_match: Delete the matching message (also needs the guild toggle).
        warn_on_match: Stored for the dashboard flag of the same name; escalation
            is driven by the guild's ``warn_on_filter_match`` toggle.
        auto_mute: Mute once the user's warning count reaches ``mute_after``.
        mute_after: Warning count that triggers the term-level mute.
        auto_ban: Ban once the user's warning count reaches ``ban_after``.
        ban_after: Warning count that triggers the term-level ban.
    """

    id: int
    term: str
    category: FilterCategory = FilterCategory.CUSTOM
    delete_on_match: bool = True
    warn_on_match: bool = True
    auto_mute: bool = False
    mute_after: int = 3
    auto_ban: bool = False
    ban_after: int = 5


# Fields of FilterTerm that can be changed after creation, with their coercers.
FILTER_TERM_EDITABLE_FIELDS: Dict[str, Any] = {
    "term": str,
    "category": FilterCategory,
    "delete_on_match": bool,
    "warn_on_match": bool,
    "auto_mute": bool,
    "mute_after": int,
    "auto_ban": bool,
    "ban_after": int,
}


@dataclass(slots=True)
class GroupPolicy:
    """Persistent per-guild moderation configuration."""

    guild_id: GuildID
    default_mute_minutes: int = 24 * 60
    warn_threshold: int = 3
    mute_threshold: int = 5
    ban_threshold: int = 8
    delete_on_filter_match: bool = True
    warn_on_filter_match: bool = True
    notify_admins: bool = True
    welcome_message: Optional[str] = None


# Fields of GroupPolicy that must stay strictly positive.
POLICY_POSITIVE_FIELDS = (
    "default_mute_minutes",
    "warn_threshold",
    "mute_threshold",
    "ban_threshold",
)

POLICY_TOGGLE_FIELDS = (
    "delete_on_filter_match",
    "warn_on_filter_match",
    "notify_admins",
)


@dataclass(slots=True)
class UserViolationState:
    """Per-user moderation state. Only the violation tracker writes it."""

    user_id: UserID
    username: Optional[str] = None
    warning_count: int = 0
    is_muted: bool = False
    is_banned: bool = False
    mute_expires_at: Optional[datetime] = None


@dataclass(slots=True)
class ModerationEvent:
    """Append-only audit record.

    ``id`` and ``timestamp`` are assigned by the store on insertion and are
    ``None`` on events that have not been recorded yet.
    """

    user_id: UserID
    action_type: EventType
    details: str
    performed_by: str = PERFORMED_BY_BOT
    source_message_text: Optional[str] = None
    filter_term_id: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)
    id: Optional[int] = None
    timestamp: Optional[datetime] = None


@dataclass(slots=True)
class InboundMessage:
    """Platform-neutral view of a message the escalation engine scans."""

    guild_id: GuildID
    channel_id: ChannelID
    message_id: MessageID
    author_id: UserID
    author_name: str
    content: str


@dataclass(slots=True)
class ModerationAction:
    """One step the action executor should apply.

    Attributes:
        kind: What to do.
        guild_id: Guild the action applies in.
        channel_id: Channel used for deletes and announcements.
        user_id: Target user.
        user_label: Display label used in announcements (e.g. a mention).
        reason: Human-readable reason, also stored on audit events.
        performed_by: ``"bot"`` or the issuing admin's identity.
        message_id: Message to delete (DELETE only).
        duration_minutes: Mute length (MUTE only).
        notice_text: Text to post (NOTICE only).
        announcement: Text posted after a successful MUTE/BAN/UNMUTE/UNBAN.
        filter_term_id: Term that triggered an automatic action.
        source_message_text: Message that triggered an automatic action.
    """

    kind: ActionType
    guild_id: GuildID
    channel_id: ChannelID
    user_id: UserID
    user_label: str = ""
    reason: str = ""
    performed_by: str = PERFORMED_BY_BOT
    message_id: Optional[MessageID] = None
    duration_minutes: Optional[int] = None
    notice_text: Optional[str] = None
    announcement: Optional[str] = None
    filter_term_id: Optional[int] = None
    source_message_text: Optional[str] = None

    @property
    def is_automatic(self) -> bool:
        return self.performed_by == PERFORMED_BY_BOT


@dataclass(slots=True)
class ActionFailure:
    """An action whose platform enforcement failed after state was committed."""

    action: ModerationAction
    error: str


@dataclass(slots=True)
class ExecutionReport:
    """Outcome of executing a list of actions."""

    applied: List[ModerationAction] = field(default_factory=list)
    failures: List[ActionFailure] = field(default_factory=list)

    @property
    def incomplete(self) -> bool:
        """True when some enforcement call failed and platform state may lag recorded state."""
        return bool(self.failures)

    def kinds(self) -> List[ActionType]:
        return [action.kind for action in self.applied]


@dataclass(slots=True)
class StatWindow:
    today: int = 0
    week: int = 0
    total: int = 0


@dataclass(slots=True)
class ModerationStats:
    """Event counts shown by ``/stats``."""

    messages_filtered: StatWindow = field(default_factory=StatWindow)
    warnings_issued: StatWindow = field(default_factory=StatWindow)
    users_muted: StatWindow = field(default_factory=StatWindow)
    users_banned: StatWindow = field(default_factory=StatWindow)
