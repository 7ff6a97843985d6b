"""
Query enrichment for supplication search.

Expands a short statement of intent with related vocabulary so the
embedding lands near supplication content for that topic. Every query is
prefixed with a framing phrase that biases the embedding toward du'a
content over rulings or narrative.

Pattern: Configuration-Driven Lookup
- Topic table lives in config/topic_expansions.yaml, loaded once
- Single words live in a hash map keyed by query token
- Multi-word phrases are matched as substrings of the normalized query,
  so "evil eyes" still picks up the "evil eye" expansion
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Final

from dua_search.core.config import CONFIG_DIR
from dua_search.core.exceptions import CorpusLoadError
from dua_search.ranking.tables import load_yaml_table
from dua_search.ranking.text import normalize_query, tokenize

DEFAULT_CONFIG_PATH: Final[Path] = CONFIG_DIR / "topic_expansions.yaml"

FRAMING_PREFIX: Final[str] = "du'a supplication asking Allah for: "
EXPANSION_DELIMITER: Final[str] = " - "


class QueryEnricher:
    """Expands raw queries with topic vocabulary before embedding.

    Usage:
        enricher = QueryEnricher()
        text = enricher.enrich("anxious about exams")
    """

    __slots__ = ("_word_expansions", "_phrase_expansions")

    def __init__(self, config_path: Path | None = None) -> None:
        """Load the topic table.

        Args:
            config_path: Path to topic_expansions.yaml. Uses default if None.

        Raises:
            CorpusLoadError: If the table cannot be loaded
        """
        self._word_expansions: dict[str, str] = {}
        self._phrase_expansions: dict[str, str] = {}
        self._load_table(config_path or DEFAULT_CONFIG_PATH)

    def _load_table(self, path: Path) -> None:
        topics = load_yaml_table(path).get("topics")
        if not isinstance(topics, dict):
            raise CorpusLoadError(f"'topics' mapping missing in {path}")

        for raw_key, expansion in topics.items():
            key = normalize_query(str(raw_key))
            if not key:
                continue
            if " " in key:
                self._phrase_expansions[key] = str(expansion)
            else:
                self._word_expansions[key] = str(expansion)

    def expansions_for(self, raw_query: str) -> list[str]:
        """Return matched expansion strings, deduplicated, in first-match order.

        Phrases are checked first, in table order, as substrings of the
        normalized query (stop words kept); single words are matched on
        stop-word-filtered tokens.
        """
        matched: dict[str, None] = {}

        normalized = normalize_query(raw_query)
        for phrase, expansion in self._phrase_expansions.items():
            if phrase in normalized:
                matched[expansion] = None

        for token in tokenize(raw_query):
            expansion = self._word_expansions.get(token)
            if expansion is not None:
                matched[expansion] = None

        return list(matched)

    def enrich(self, raw_query: str) -> str:
        """Build the text to embed for a raw query.

        Args:
            raw_query: The caller's statement of intent

        Returns:
            FRAMING_PREFIX + raw query, followed by matched expansions when
            any topic matched. Blank input yields FRAMING_PREFIX alone.
        """
        if not raw_query.strip():
            return FRAMING_PREFIX

        expansions = self.expansions_for(raw_query)
        if not expansions:
            return f"{FRAMING_PREFIX}{raw_query}"
        return f"{FRAMING_PREFIX}{raw_query}{EXPANSION_DELIMITER}{' '.join(expansions)}"

    @property
    def topic_count(self) -> int:
        return len(self._word_expansions) + len(self._phrase_expansions)


@lru_cache(maxsize=1)
def get_default_enricher() -> QueryEnricher:
    """Shared enricher backed by the bundled topic table."""
    return QueryEnricher()


def enrich(raw_query: str) -> str:
    """Enrich a query using the bundled topic table."""
    return get_default_enricher().enrich(raw_query)
