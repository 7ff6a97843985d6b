"""
Intent re-ranker for vector search candidates.

Adjusts similarity with cheap lexical signals so supplication content
outranks jurisprudence and narration fragments, independent of topic:

1. curated      - hand-authored record          x1.1
2. supplication - invocation opener or petition x1.2
3. ruling       - jurisprudence marker          x0.75
4. fragment     - <=120 chars, no supplication  x0.75

Multipliers compose; the result is clamped to [0, 1]. A record with both
supplication and ruling signals nets x0.9. Ordering is left to the caller.

Pattern: Configuration-Driven Filter
- Signal phrases and multipliers live in config/intent_signals.yaml
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from typing import Any, Final

from dua_search.core.config import CONFIG_DIR
from dua_search.core.exceptions import CorpusLoadError
from dua_search.models.records import SourceRecord, clamp_similarity
from dua_search.ranking.tables import load_phrase_list, load_yaml_table

DEFAULT_CONFIG_PATH: Final[Path] = CONFIG_DIR / "intent_signals.yaml"

DEFAULT_MULTIPLIERS: Final[dict[str, float]] = {
    "curated_boost": 1.1,
    "supplication_boost": 1.2,
    "ruling_penalty": 0.75,
    "short_fragment_penalty": 0.75,
}
DEFAULT_SHORT_FRAGMENT_MAX_LENGTH: Final[int] = 120


@dataclass(frozen=True, slots=True)
class IntentSignals:
    """Lexical signals detected in one record's content."""

    supplication: bool
    ruling: bool
    short_fragment: bool


class IntentReranker:
    """Multiplicative signal re-ranker.

    Usage:
        reranker = IntentReranker()
        adjusted = reranker.rerank(records)
    """

    def __init__(self, config_path: Path | None = None) -> None:
        """Load signal tables.

        Args:
            config_path: Path to intent_signals.yaml. Uses default if None.

        Raises:
            CorpusLoadError: If the table cannot be loaded
        """
        path = config_path or DEFAULT_CONFIG_PATH
        data = load_yaml_table(path)

        self._openers = load_phrase_list(data, "invocation_openers")
        self._petitions = load_phrase_list(data, "petition_phrases")
        self._rulings = load_phrase_list(data, "ruling_markers")
        self._multipliers = self._load_multipliers(data, path)
        self._short_max = int(
            data.get("short_fragment_max_length", DEFAULT_SHORT_FRAGMENT_MAX_LENGTH)
        )

    @staticmethod
    def _load_multipliers(data: dict[str, Any], path: Path) -> dict[str, float]:
        raw = data.get("multipliers") or {}
        if not isinstance(raw, dict):
            raise CorpusLoadError(f"'multipliers' must be a mapping in {path}")
        multipliers = dict(DEFAULT_MULTIPLIERS)
        for key, value in raw.items():
            if key not in DEFAULT_MULTIPLIERS:
                raise CorpusLoadError(f"Unknown multiplier '{key}' in {path}")
            multipliers[key] = float(value)
        return multipliers

    def has_supplication_signal(self, content: str) -> bool:
        lower = content.lower().strip()
        for opener in self._openers:
            if lower.startswith(opener) or f" {opener}" in lower:
                return True
        return any(phrase in lower for phrase in self._petitions)

    def has_ruling_signal(self, content: str) -> bool:
        lower = content.lower()
        return any(marker in lower for marker in self._rulings)

    def detect(self, content: str) -> IntentSignals:
        """Detect all signals for a piece of content."""
        supplication = self.has_supplication_signal(content)
        return IntentSignals(
            supplication=supplication,
            ruling=self.has_ruling_signal(content),
            short_fragment=len(content.strip()) <= self._short_max and not supplication,
        )

    def multiplier_for(self, record: SourceRecord) -> float:
        """Composite multiplier for a record."""
        signals = self.detect(record.content)
        multiplier = 1.0
        if record.curated:
            multiplier *= self._multipliers["curated_boost"]
        if signals.supplication:
            multiplier *= self._multipliers["supplication_boost"]
        if signals.ruling:
            multiplier *= self._multipliers["ruling_penalty"]
        if signals.short_fragment:
            multiplier *= self._multipliers["short_fragment_penalty"]
        return multiplier

    def rerank(self, records: Sequence[SourceRecord]) -> list[SourceRecord]:
        """Return new records with adjusted similarity, same order and ids.

        Args:
            records: Candidates from the search backend

        Returns:
            List of the same length; only similarity differs from the input
        """
        return [
            replace(
                record,
                similarity=clamp_similarity(
                    clamp_similarity(record.similarity) * self.multiplier_for(record)
                ),
            )
            for record in records
        ]


@lru_cache(maxsize=1)
def get_default_reranker() -> IntentReranker:
    """Shared re-ranker backed by the bundled signal table."""
    return IntentReranker()


def rerank(records: Sequence[SourceRecord]) -> list[SourceRecord]:
    """Re-rank records using the bundled signal table."""
    return get_default_reranker().rerank(records)
