"""Retrieval policy: similarity floors and fetch sizes."""
from dua_search.retrieval.thresholds import (
    FALLBACK_MATCH_COUNTS,
    MIN_PUBLISHABLE_SIMILARITY,
    PRIMARY_MATCH_COUNT,
    dynamic_threshold,
)

__all__ = [
    "FALLBACK_MATCH_COUNTS",
    "MIN_PUBLISHABLE_SIMILARITY",
    "PRIMARY_MATCH_COUNT",
    "dynamic_threshold",
]
