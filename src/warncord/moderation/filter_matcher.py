"""Filter term matching.

Matching is plain case-insensitive substring containment with no word
boundaries: the term ``spam`` matches ``"spamless"``.
"""

from __future__ import annotations

from typing import Iterable, Optional

from warncord.datatypes.moderation_datatypes import FilterTerm


def find_matching_term(text: Optional[str], terms: Iterable[FilterTerm]) -> Optional[FilterTerm]:
    """Return the first term in ``terms`` whose text occurs in ``text``.

    Args:
        text: Message content. Empty or ``None`` never matches.
        terms: Candidate terms, already in match order.

    Returns:
        The first matching term, or ``None``.
    """
    if not text:
        return None

    haystack = text.lower()
    for term in terms:
        needle = term.term.lower()
        if needle and needle in haystack:
            return term
    return None
