from datetime import datetime, timezone
from typing import Iterable, List, Optional

from warncord.datatypes.moderation_datatypes import FilterTerm, ModerationEvent, ModerationStats, StatWindow

# Discord rejects messages longer than this
DISCORD_MESSAGE_LIMIT = 2000


def humanize_timestamp(value: Optional[datetime]) -> str:
    """Return a human-readable timestamp (YYYY-MM-DD HH:MM UTC).

    Naive datetimes are assumed to be UTC.
    """
    if value is None:
        return "unknown time"
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")


def join_lines(lines: Iterable[str], limit: int = DISCORD_MESSAGE_LIMIT) -> str:
    """Join ``lines`` with newlines, dropping trailing lines that would exceed ``limit``."""
    kept: List[str] = []
    size = 0
    lines = list(lines)
    for index, line in enumerate(lines):
        extra = len(line) + (1 if kept else 0)
        if size + extra > limit - 20:
            kept.append(f"... and {len(lines) - index} more")
            break
        kept.append(line)
        size += extra
    return "\n".join(kept)


def format_filter_term(term: FilterTerm) -> str:
    flags = [
        "delete" if term.delete_on_match else "no-delete",
        "warn" if term.warn_on_match else "no-warn",
    ]
    if term.auto_mute:
        flags.append(f"mute@{term.mute_after}")
    if term.auto_ban:
        flags.append(f"ban@{term.ban_after}")
    return f"`#{term.id}` **{term.term}** [{term.category}] {' '.join(flags)}"


def format_event(event: ModerationEvent) -> str:
    return (
        f"`#{event.id}` {humanize_timestamp(event.timestamp)} **{event.action_type}** "
        f"<@{event.user_id}> by {event.performed_by}: {event.details}"
    )


def format_stats(stats: ModerationStats) -> str:
    def row(title: str, window: StatWindow) -> str:
        return f"{title}: {window.today} today, {window.week} this week, {window.total} total"

    return "\n".join([
        "**Moderation statistics**",
        row("Messages filtered", stats.messages_filtered),
        row("Warnings issued", stats.warnings_issued),
        row("Users muted", stats.users_muted),
        row("Users banned", stats.users_banned),
    ])


def render_welcome(template: str, mention: str) -> str:
    """Substitute ``{user}`` in a welcome message template."""
    return template.replace("{user}", mention)
