from datetime import datetime, timedelta, timezone

import warncord.util.format_utils as format_utils
from warncord.datatypes.discord_datatypes import UserID
from warncord.datatypes.moderation_datatypes import (
    EventType,
    FilterCategory,
    FilterTerm,
    ModerationEvent,
    ModerationStats,
    StatWindow,
)


def test_humanize_timestamp_converts_naive_to_utc():
    assert format_utils.humanize_timestamp(datetime(2025, 1, 3, 12, 34, 56)) == "2025-01-03 12:34 UTC"


def test_humanize_timestamp_normalizes_timezones():
    eastern = timezone(timedelta(hours=-5))
    assert format_utils.humanize_timestamp(datetime(2024, 1, 1, 7, 30, tzinfo=eastern)) == "2024-01-01 12:30 UTC"


def test_humanize_timestamp_missing_value():
    assert format_utils.humanize_timestamp(None) == "unknown time"


def test_join_lines_truncates_long_output():
    lines = [f"line {i:04d}" for i in range(500)]
    joined = format_utils.join_lines(lines, limit=200)
    assert len(joined) <= 200
    assert joined.startswith("line 0000\nline 0001")
    assert joined.splitlines()[-1].startswith("... and ")


def test_join_lines_short_output_untouched():
    assert format_utils.join_lines(["a", "b"]) == "a\nb"


def test_format_filter_term():
    term = FilterTerm(
        id=4, term="harassment1", category=FilterCategory.HARASSMENT,
        auto_mute=True, mute_after=2, auto_ban=True, ban_after=4,
    )
    assert format_utils.format_filter_term(term) == "`#4` **harassment1** [harassment] delete warn mute@2 ban@4"

    quiet = FilterTerm(id=5, term="x", delete_on_match=False, warn_on_match=False)
    assert format_utils.format_filter_term(quiet) == "`#5` **x** [custom] no-delete no-warn"


def test_format_event():
    event = ModerationEvent(
        id=9,
        timestamp=datetime(2025, 5, 6, 7, 8, tzinfo=timezone.utc),
        user_id=UserID(42),
        action_type=EventType.MUTE,
        details="Automatic mute after reaching 5 warnings",
    )
    assert format_utils.format_event(event) == (
        "`#9` 2025-05-06 07:08 UTC **mute** <@42> by bot: Automatic mute after reaching 5 warnings"
    )


def test_format_stats():
    stats = ModerationStats(messages_filtered=StatWindow(1, 2, 3), users_banned=StatWindow(0, 0, 7))
    assert format_utils.format_stats(stats).splitlines() == [
        "**Moderation statistics**",
        "Messages filtered: 1 today, 2 this week, 3 total",
        "Warnings issued: 0 today, 0 this week, 0 total",
        "Users muted: 0 today, 0 this week, 0 total",
        "Users banned: 0 today, 0 this week, 7 total",
    ]


def test_render_welcome():
    assert format_utils.render_welcome("Welcome {user}, read the rules", "<@1>") == "Welcome <@1>, read the rules"
    assert format_utils.render_welcome("Hello!", "<@1>") == "Hello!"
