"""Query normalization and tokenization shared by enrichment and local matching."""

from __future__ import annotations

import re
from typing import Final

STOP_WORDS: Final[frozenset[str]] = frozenset(
    {
        "a", "an", "the", "i", "me", "my", "we", "our", "you", "your", "it", "its",
        "is", "am", "are", "was", "were", "be", "been", "being", "have", "has", "had",
        "do", "does", "did", "will", "would", "could", "should", "may", "might", "must",
        "can", "to", "for", "of", "in", "on", "at", "by", "with", "from", "and", "or", "but",
    }
)

# Keep word characters, whitespace, apostrophes and hyphens (du'a, self-control)
REGEX_PUNCTUATION = re.compile(r"[^\w\s'-]")
REGEX_WHITESPACE = re.compile(r"\s+")

MIN_TOKEN_LENGTH: Final[int] = 2


def normalize_query(query: str) -> str:
    """Lowercase, replace punctuation with spaces, and collapse whitespace."""
    lowered = REGEX_PUNCTUATION.sub(" ", query.lower())
    return REGEX_WHITESPACE.sub(" ", lowered).strip()


def tokenize(query: str) -> list[str]:
    """Split a query into content tokens, dropping stop words and single characters.

    Args:
        query: Raw query text

    Returns:
        Tokens in query order (duplicates preserved)
    """
    normalized = normalize_query(query)
    if not normalized:
        return []
    return [
        word
        for word in normalized.split(" ")
        if len(word) >= MIN_TOKEN_LENGTH and word not in STOP_WORDS
    ]
