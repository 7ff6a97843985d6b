"""
Similarity thresholds for retrieval.

The retrieval floor over-fetches; the publish floor, applied after
re-ranking, prunes. Short queries embed noisily, so the retrieval floor
rises toward 0.40 as the query shortens.
"""

from typing import Final

from dua_search.models.records import Category

BASE_THRESHOLD: Final[float] = 0.30
MAX_THRESHOLD: Final[float] = 0.40
SHORT_QUERY_LENGTH: Final[int] = 30
LENGTH_DIVISOR: Final[float] = 200.0

MIN_PUBLISHABLE_SIMILARITY: Final[float] = 0.35
PRIMARY_MATCH_COUNT: Final[int] = 25

FALLBACK_THRESHOLD: Final[float] = 0.0
FALLBACK_MATCH_COUNTS: Final[dict[Category, int]] = {
    Category.NAME: 1,
    Category.SAYING: 10,
    Category.VERSE: 5,
}


def dynamic_threshold(raw_query: str) -> float:
    """Retrieval similarity floor for a query.

    Args:
        raw_query: The caller's query (trimmed before measuring)

    Returns:
        0.30 for queries longer than 30 characters, otherwise
        max(0.30, 0.40 - length/200)
    """
    length = len(raw_query.strip())
    if length > SHORT_QUERY_LENGTH:
        return BASE_THRESHOLD
    return max(BASE_THRESHOLD, MAX_THRESHOLD - length / LENGTH_DIVISOR)
