"""
Duration tokens used by moderation commands.

A token is a whole number followed by exactly one unit letter:
``m`` (minutes), ``h`` (hours), ``d`` (days) or ``w`` (weeks), e.g. ``30m``,
``24h``, ``2d``, ``1w``. Anything else falls back to a 24 hour mute instead
of being rejected, so ``/mute @user`` with a sloppy duration still mutes.
"""

import re

DEFAULT_DURATION_MINUTES = 24 * 60

UNIT_MINUTES = {
    "m": 1,
    "h": 60,
    "d": 24 * 60,
    "w": 7 * 24 * 60,
}

DURATION_PATTERN = re.compile(r"(\d+)([mhdw])", re.ASCII)


def parse_duration(token: str | None) -> int:
    """
    Convert a duration token to minutes.

    Args:
        token: Free-text duration such as ``"90m"`` or ``"2h"``.

    Returns:
        int: Minutes represented by the token, or ``DEFAULT_DURATION_MINUTES``
        when the token does not match the grammar. No upper bound is applied.
    """
    if not token:
        return DEFAULT_DURATION_MINUTES

    match = DURATION_PATTERN.fullmatch(token)
    if match is None:
        return DEFAULT_DURATION_MINUTES

    value, unit = match.groups()
    return int(value) * UNIT_MINUTES[unit]


def format_duration(minutes: int) -> str:
    """Render a minute count in the largest whole unit below the next step."""
    if minutes < 60:
        return f"{minutes} minutes"
    if minutes < 24 * 60:
        return f"{minutes // 60} hours"
    if minutes < 7 * 24 * 60:
        return f"{minutes // (24 * 60)} days"
    return f"{minutes // (7 * 24 * 60)} weeks"
