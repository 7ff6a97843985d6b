"""
Local Fallback Matcher.

Pure, synchronous lexical match of a query against the bundled names
corpus. Used only when the remote pipeline is unreachable; it never
substitutes for a successful remote search.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from dua_search.models.names import NameCorpus, NameEntry
from dua_search.models.records import Category, SourceRecord
from dua_search.ranking.text import tokenize

LOCAL_ID_PREFIX: Final[str] = "local-"


@dataclass(frozen=True, slots=True)
class LocalMatch:
    """Best local name match.

    Attributes:
        name: The matched name as a SourceRecord
        score: Number of query tokens found in the entry's searchable text
        index: Position of the entry in the corpus
    """

    name: SourceRecord
    score: int
    index: int


def score_entry(tokens: list[str], entry: NameEntry) -> int:
    """Count tokens that occur as substrings of the entry's searchable text."""
    text = entry.searchable_text
    return sum(1 for token in tokens if token in text)


def to_record(entry: NameEntry, index: int) -> SourceRecord:
    return SourceRecord(
        id=f"{LOCAL_ID_PREFIX}{index}",
        content=entry.display_content,
        category=Category.NAME,
        tags=tuple(entry.tags),
    )


def local_match(query: str, corpus: NameCorpus) -> LocalMatch | None:
    """Return the highest-scoring name, or None when nothing matches.

    Ties keep the first-seen entry. Queries with no tokens after stop-word
    removal return None.
    """
    tokens = tokenize(query)
    if not tokens:
        return None

    best_index = -1
    best_score = 0
    for index, entry in enumerate(corpus):
        score = score_entry(tokens, entry)
        if score > best_score:
            best_index, best_score = index, score

    if best_score == 0:
        return None
    return LocalMatch(
        name=to_record(corpus[best_index], best_index),
        score=best_score,
        index=best_index,
    )
