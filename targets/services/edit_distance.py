"""
Edit distance between two field values.
"""

from typing import Optional

from rapidfuzz.distance import Levenshtein


def distance(a: Optional[str], b: Optional[str]) -> int:
    """
    Case-insensitive Levenshtein distance.

    Insertions, deletions and substitutions each cost 1. ``None`` is
    treated as the empty string.

    Examples:
        distance("KITTEN", "SITTING") -> 3
        distance("", "ABC") -> 3
    """
    return Levenshtein.distance((a or '').casefold(), (b or '').casefold())
