"""
Repository for the filter_terms table.

Terms are always returned in ascending id order (creation order); the
filter matcher relies on that order for first-match-wins.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import aiosqlite

from warncord.datatypes.moderation_datatypes import FilterCategory, FilterTerm

_COLUMNS = "id, term, category, delete_on_match, warn_on_match, auto_mute, mute_after, auto_ban, ban_after"


def _row_to_term(row: aiosqlite.Row) -> FilterTerm:
    return FilterTerm(
        id=row[0],
        term=row[1],
        category=FilterCategory(row[2]),
        delete_on_match=bool(row[3]),
        warn_on_match=bool(row[4]),
        auto_mute=bool(row[5]),
        mute_after=row[6],
        auto_ban=bool(row[7]),
        ban_after=row[8],
    )


def _to_column(value: Any) -> Any:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, FilterCategory):
        return value.value
    return value


class FilterTermRepository:
    """CRUD for the filter_terms table."""

    async def list_all(self, conn: aiosqlite.Connection) -> List[FilterTerm]:
        async with conn.execute(f"SELECT {_COLUMNS} FROM filter_terms ORDER BY id ASC") as cursor:
            rows = await cursor.fetchall()
        return [_row_to_term(row) for row in rows]

    async def get(self, conn: aiosqlite.Connection, term_id: int) -> Optional[FilterTerm]:
        async with conn.execute(f"SELECT {_COLUMNS} FROM filter_terms WHERE id = ?", (term_id,)) as cursor:
            row = await cursor.fetchone()
        return _row_to_term(row) if row else None

    async def count(self, conn: aiosqlite.Connection) -> int:
        async with conn.execute("SELECT COUNT(*) FROM filter_terms") as cursor:
            row = await cursor.fetchone()
        return row[0]

    async def insert(
        self,
        conn: aiosqlite.Connection,
        *,
        term: str,
        category: FilterCategory,
        delete_on_match: bool,
        warn_on_match: bool,
        auto_mute: bool,
        mute_after: int,
        auto_ban: bool,
        ban_after: int,
    ) -> FilterTerm:
        """Insert a term and return it with its assigned id."""
        cursor = await conn.execute(
            """
            INSERT INTO filter_terms (term, category, delete_on_match, warn_on_match, auto_mute, mute_after, auto_ban, ban_after)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                term,
                category.value,
                _to_column(delete_on_match),
                _to_column(warn_on_match),
                _to_column(auto_mute),
                mute_after,
                _to_column(auto_ban),
                ban_after,
            ),
        )
        return FilterTerm(
            id=cursor.lastrowid,
            term=term,
            category=category,
            delete_on_match=delete_on_match,
            warn_on_match=warn_on_match,
            auto_mute=auto_mute,
            mute_after=mute_after,
            auto_ban=auto_ban,
            ban_after=ban_after,
        )

    async def update(self, conn: aiosqlite.Connection, term_id: int, updates: Dict[str, Any]) -> bool:
        """Apply column updates; returns False when no row has ``term_id``.

        ``updates`` keys must already be validated column names.
        """
        if not updates:
            return await self.get(conn, term_id) is not None

        assignments = ", ".join(f"{column} = ?" for column in updates)
        cursor = await conn.execute(
            f"UPDATE filter_terms SET {assignments} WHERE id = ?",
            (*(_to_column(value) for value in updates.values()), term_id),
        )
        return cursor.rowcount > 0

    async def delete(self, conn: aiosqlite.Connection, term_id: int) -> bool:
        cursor = await conn.execute("DELETE FROM filter_terms WHERE id = ?", (term_id,))
        return cursor.rowcount > 0
