"""Exceptions raised by the moderation core.

None of these are fatal: every one is scoped to a single event and is turned
into a rejection reply or a log line by the caller.
"""


class ModerationError(Exception):
    """Base class for moderation errors."""


class CommandInputError(ModerationError):
    """Malformed command arguments, an unusable duration, or a missing target."""


class AuthorizationError(ModerationError):
    """A non-admin invoked an admin command."""


class FilterTermNotFoundError(ModerationError):
    """A filter term update or delete referenced an unknown id."""

    def __init__(self, term_id: int):
        super().__init__(f"Filter term {term_id} not found")
        self.term_id = term_id


class PolicyValidationError(ModerationError):
    """A policy update would break a policy invariant."""


class PlatformError(ModerationError):
    """A chat platform call failed (network, permission, or missing target)."""
