"""
Violation tracker: sole writer of per-user moderation state.

Every operation is an atomic read-modify-write of one ``UserViolationState``
row. Operations on the same user are serialised by a per-user
``asyncio.Lock``; operations on different users run concurrently (database
writes still queue on the connection's write semaphore, which is short).

Locks cover only the state transition. Callers perform platform calls
after the tracker returns.

All operations create the user record if it does not exist yet.
"""

from __future__ import annotations

import asyncio
import weakref
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from warncord.database.database import Database
from warncord.datatypes.discord_datatypes import UserID
from warncord.datatypes.moderation_datatypes import UserViolationState
from warncord.util.logger import get_logger

logger = get_logger("violation_tracker")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ViolationTracker:
    """Owns per-user violation state.

    Args:
        database: Initialized database coordinator.
        clock: Returns the current UTC time. Replaced in tests.
    """

    def __init__(self, database: Database, clock: Callable[[], datetime] = _utcnow):
        self._db = database
        self._clock = clock
        # An entry lives only while some operation on that user holds a reference
        self._locks: "weakref.WeakValueDictionary[UserID, asyncio.Lock]" = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: UserID) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[user_id] = lock
        return lock

    def mute_expiry(self, minutes: int) -> datetime:
        """Now + ``minutes``, truncated to the whole second the database stores."""
        return (self._clock() + timedelta(minutes=minutes)).replace(microsecond=0)

    async def _mutate(
        self,
        user_id: UserID,
        change: Callable[[UserViolationState], None],
        username: Optional[str] = None,
    ) -> UserViolationState:
        async with self._lock_for(user_id):
            async with self._db.transaction() as conn:
                state = await self._db.user_states.get(conn, user_id)
                if state is None:
                    state = UserViolationState(user_id=user_id)
                if username:
                    state.username = username
                change(state)
                await self._db.user_states.upsert(conn, state)
        return state

    async def get_state(self, user_id: UserID) -> Optional[UserViolationState]:
        """Read-only lookup; returns ``None`` for users never seen."""
        async with self._db.read() as conn:
            return await self._db.user_states.get(conn, user_id)

    async def ensure_user(self, user_id: UserID, username: Optional[str] = None) -> UserViolationState:
        """Return the user's state, creating a zeroed record if needed."""
        return await self._mutate(user_id, lambda state: None, username=username)

    async def increment_warning(self, user_id: UserID, username: Optional[str] = None) -> UserViolationState:
        def change(state: UserViolationState) -> None:
            state.warning_count += 1

        state = await self._mutate(user_id, change, username=username)
        logger.debug("[VIOLATION TRACKER] User %s now has %d warning(s)", user_id, state.warning_count)
        return state

    async def mute(self, user_id: UserID, minutes: int) -> UserViolationState:
        """Mark the user muted until now + ``minutes``. The warning count is untouched.

        A banned user stays banned and unmuted: the ban supersedes the mute.
        """
        expires_at = self.mute_expiry(minutes)

        def change(state: UserViolationState) -> None:
            if state.is_banned:
                return
            state.is_muted = True
            state.mute_expires_at = expires_at

        state = await self._mutate(user_id, change)
        if state.is_banned:
            logger.info("[VIOLATION TRACKER] User %s is banned; mute not recorded", user_id)
        else:
            logger.debug("[VIOLATION TRACKER] User %s muted until %s", user_id, expires_at.isoformat())
        return state

    async def unmute(self, user_id: UserID) -> UserViolationState:
        def change(state: UserViolationState) -> None:
            state.is_muted = False
            state.mute_expires_at = None

        return await self._mutate(user_id, change)

    async def ban(self, user_id: UserID) -> UserViolationState:
        """Mark the user banned. A ban supersedes any mute, so mute fields are cleared."""
        def change(state: UserViolationState) -> None:
            state.is_banned = True
            state.is_muted = False
            state.mute_expires_at = None

        state = await self._mutate(user_id, change)
        logger.debug("[VIOLATION TRACKER] User %s banned", user_id)
        return state

    async def unban(self, user_id: UserID) -> UserViolationState:
        """Clear the ban flag only; warnings and mute state are not restored."""
        def change(state: UserViolationState) -> None:
            state.is_banned = False

        return await self._mutate(user_id, change)
