"""
Policy store: per-guild policies and the shared filter term list.

Policies are created lazily with defaults on first access and cached in
memory. The term list is cached in ascending id order and refreshed after
every add, update or delete.

Values arriving from slash commands are strings; :func:`coerce_field_value`
converts them to the field's type before validation.
"""

from __future__ import annotations

import asyncio
import dataclasses
from typing import Any, Dict, Iterable, List, Mapping, Optional, Type

from warncord.database.database import Database
from warncord.datatypes.discord_datatypes import GuildID
from warncord.datatypes.moderation_datatypes import (
    FILTER_TERM_EDITABLE_FIELDS,
    POLICY_POSITIVE_FIELDS,
    POLICY_TOGGLE_FIELDS,
    FilterCategory,
    FilterTerm,
    GroupPolicy,
)
from warncord.moderation.errors import (
    CommandInputError,
    FilterTermNotFoundError,
    ModerationError,
    PolicyValidationError,
)
from warncord.util.logger import get_logger

logger = get_logger("policy_store")

_TRUE_WORDS = frozenset({"true", "yes", "on", "1", "enable", "enabled"})
_FALSE_WORDS = frozenset({"false", "no", "off", "0", "disable", "disabled"})

POLICY_EDITABLE_FIELDS: Dict[str, Any] = {
    **{name: int for name in POLICY_POSITIVE_FIELDS},
    **{name: bool for name in POLICY_TOGGLE_FIELDS},
    "welcome_message": str,
}

_TERM_COUNT_FIELDS = ("mute_after", "ban_after")


def coerce_field_value(
    field_name: str,
    kind: Any,
    raw: Any,
    error: Type[ModerationError] = CommandInputError,
) -> Any:
    """Convert ``raw`` to ``kind`` (``int``, ``bool``, ``str`` or ``FilterCategory``).

    Raises:
        error: When ``raw`` cannot be read as ``kind``.
    """
    if kind is bool:
        if isinstance(raw, bool):
            return raw
        word = str(raw).strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
        raise error(f"'{raw}' is not a valid value for {field_name}; use true or false.")

    if kind is int:
        if isinstance(raw, bool):
            raise error(f"'{raw}' is not a valid number for {field_name}.")
        try:
            return int(str(raw).strip())
        except ValueError:
            raise error(f"'{raw}' is not a valid number for {field_name}.") from None

    if kind is FilterCategory:
        try:
            return FilterCategory(str(raw).strip().lower())
        except ValueError:
            choices = ", ".join(category.value for category in FilterCategory)
            raise error(f"'{raw}' is not a valid category; choose one of: {choices}.") from None

    return str(raw)


class PolicyStore:
    """Per-guild policies and filter terms backed by the database."""

    def __init__(self, database: Database):
        self._db = database
        self._policies: Dict[GuildID, GroupPolicy] = {}
        self._policy_lock = asyncio.Lock()
        self._terms: Optional[List[FilterTerm]] = None

    # ------------------------------------------------------------------
    # Group policies
    # ------------------------------------------------------------------

    async def get_policy(self, guild_id: GuildID) -> GroupPolicy:
        """Return the guild's policy, creating and persisting defaults on first access."""
        cached = self._policies.get(guild_id)
        if cached is not None:
            return cached

        async with self._policy_lock:
            cached = self._policies.get(guild_id)
            if cached is not None:
                return cached

            async with self._db.transaction() as conn:
                policy = await self._db.policies.get(conn, guild_id)
                if policy is None:
                    policy = GroupPolicy(guild_id=guild_id)
                    await self._db.policies.upsert(conn, policy)
                    logger.info("[POLICY STORE] Created default policy for guild %s", guild_id)

            self._policies[guild_id] = policy
            return policy

    async def update_policy(self, guild_id: GuildID, changes: Mapping[str, Any]) -> GroupPolicy:
        """Apply ``changes`` to the guild's policy after validating all of them.

        Either every change is applied or none is.

        Raises:
            PolicyValidationError: Unknown field, unreadable value, or a
                threshold/duration that is not strictly positive.
        """
        validated: Dict[str, Any] = {}

        for name, raw in changes.items():
            kind = POLICY_EDITABLE_FIELDS.get(name)
            if kind is None:
                fields = ", ".join(POLICY_EDITABLE_FIELDS)
                raise PolicyValidationError(f"Unknown setting '{name}'. Editable settings: {fields}.")

            if name == "welcome_message":
                text = "" if raw is None else str(raw).strip()
                validated[name] = None if text.lower() in ("", "none", "off") else text
                continue

            value = coerce_field_value(name, kind, raw, error=PolicyValidationError)
            if name in POLICY_POSITIVE_FIELDS and value <= 0:
                raise PolicyValidationError(f"{name} must be greater than 0.")
            validated[name] = value

        await self.get_policy(guild_id)

        async with self._policy_lock:
            updated = dataclasses.replace(self._policies[guild_id], **validated)
            async with self._db.transaction() as conn:
                await self._db.policies.upsert(conn, updated)
            self._policies[guild_id] = updated

        logger.info("[POLICY STORE] Updated policy for guild %s: %s", guild_id, validated)
        return updated

    # ------------------------------------------------------------------
    # Filter terms
    # ------------------------------------------------------------------

    async def list_terms(self) -> List[FilterTerm]:
        """All filter terms in match order (ascending id)."""
        if self._terms is None:
            async with self._db.read() as conn:
                self._terms = await self._db.filter_terms.list_all(conn)
        return list(self._terms)

    async def get_term(self, term_id: int) -> FilterTerm:
        async with self._db.read() as conn:
            term = await self._db.filter_terms.get(conn, term_id)
        if term is None:
            raise FilterTermNotFoundError(term_id)
        return term

    async def add_term(
        self,
        term: str,
        category: FilterCategory = FilterCategory.CUSTOM,
        *,
        delete_on_match: bool = True,
        warn_on_match: bool = True,
        auto_mute: bool = False,
        mute_after: int = 3,
        auto_ban: bool = False,
        ban_after: int = 5,
    ) -> FilterTerm:
        """Create a filter term. Duplicate texts are allowed.

        Raises:
            CommandInputError: Empty term text or a non-positive warning count.
        """
        text = (term or "").strip()
        if not text:
            raise CommandInputError("Please specify a word or phrase to filter.")
        for name, value in (("mute_after", mute_after), ("ban_after", ban_after)):
            if value <= 0:
                raise CommandInputError(f"{name} must be greater than 0.")

        async with self._db.transaction() as conn:
            created = await self._db.filter_terms.insert(
                conn,
                term=text,
                category=category,
                delete_on_match=delete_on_match,
                warn_on_match=warn_on_match,
                auto_mute=auto_mute,
                mute_after=mute_after,
                auto_ban=auto_ban,
                ban_after=ban_after,
            )
        self._terms = None
        logger.info("[POLICY STORE] Added filter term #%d '%s' (%s)", created.id, created.term, created.category)
        return created

    async def update_term(self, term_id: int, changes: Mapping[str, Any]) -> FilterTerm:
        """Update fields of an existing term, all or nothing.

        Raises:
            FilterTermNotFoundError: No term has ``term_id``.
            CommandInputError: Unknown field or invalid value.
        """
        validated: Dict[str, Any] = {}
        for name, raw in changes.items():
            kind = FILTER_TERM_EDITABLE_FIELDS.get(name)
            if kind is None:
                fields = ", ".join(FILTER_TERM_EDITABLE_FIELDS)
                raise CommandInputError(f"Unknown filter field '{name}'. Editable fields: {fields}.")
            value = coerce_field_value(name, kind, raw)
            if name == "term":
                value = value.strip()
                if not value:
                    raise CommandInputError("Filter term text cannot be empty.")
            if name in _TERM_COUNT_FIELDS and value <= 0:
                raise CommandInputError(f"{name} must be greater than 0.")
            validated[name] = value

        async with self._db.transaction() as conn:
            found = await self._db.filter_terms.update(conn, term_id, validated)
            if not found:
                raise FilterTermNotFoundError(term_id)
            updated = await self._db.filter_terms.get(conn, term_id)

        self._terms = None
        logger.info("[POLICY STORE] Updated filter term #%d: %s", term_id, validated)
        return updated

    async def delete_term(self, term_id: int) -> None:
        """Raises :class:`FilterTermNotFoundError` when no term has ``term_id``."""
        async with self._db.transaction() as conn:
            deleted = await self._db.filter_terms.delete(conn, term_id)
        if not deleted:
            raise FilterTermNotFoundError(term_id)
        self._terms = None
        logger.info("[POLICY STORE] Removed filter term #%d", term_id)

    async def seed_terms(self, entries: Iterable[Mapping[str, Any]]) -> int:
        """Insert ``entries`` when the term table is empty; returns how many were added.

        Entry keys follow :class:`FilterTerm`; missing keys take the usual defaults.
        """
        async with self._db.read() as conn:
            existing = await self._db.filter_terms.count(conn)
        if existing:
            return 0

        added = 0
        for entry in entries:
            flags = {
                name: coerce_field_value(name, kind, entry[name])
                for name, kind in FILTER_TERM_EDITABLE_FIELDS.items()
                if name not in ("term", "category") and name in entry
            }
            category = coerce_field_value("category", FilterCategory, entry.get("category", "custom"))
            await self.add_term(str(entry["term"]), category, **flags)
            added += 1

        if added:
            logger.info("[POLICY STORE] Seeded %d default filter term(s)", added)
        return added
