"""
Record models for the retrieval pipeline.

A SourceRecord is built fresh per request from the search backend's
response and discarded when the request ends. Records are frozen: the
re-ranker produces new instances via dataclasses.replace, so content and
id can never drift between stages.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Final

MIN_SIMILARITY: Final[float] = 0.0
MAX_SIMILARITY: Final[float] = 1.0


def clamp_similarity(value: float) -> float:
    """Clamp a similarity score into [0, 1].

    Raises:
        ValueError: value is NaN or infinite
    """
    if not math.isfinite(value):
        raise ValueError(f"similarity must be finite, got {value!r}")
    return max(MIN_SIMILARITY, min(MAX_SIMILARITY, value))


class Category(str, Enum):
    """Closed set of record categories."""

    NAME = "name"
    SAYING = "saying"
    VERSE = "verse"

    @property
    def requires_citation(self) -> bool:
        """Sayings and verses are only published with a citation locator."""
        return self is not Category.NAME


@dataclass(frozen=True, slots=True)
class Citation:
    """Structured source citation.

    Attributes:
        collection: Edition id for sayings (e.g. "eng-bukhari"), surah name for verses
        reference: Locator within the collection (e.g. "Sahih Bukhari 6369", "2:286")
        label: Human-readable citation
    """

    collection: str = ""
    reference: str = ""
    label: str = ""

    @property
    def is_present(self) -> bool:
        return bool(self.reference.strip())


@dataclass(frozen=True, slots=True)
class SourceRecord:
    """One retrievable unit of devotional text.

    Attributes:
        id: Opaque identifier, stable across requests
        content: Literal source text, never altered by the pipeline
        category: name, saying, or verse
        citation: Optional structured citation
        similarity: Current relevance confidence in [0, 1]
        curated: True for hand-authored records
        tags: Optional topic tags (names only)
    """

    id: str
    content: str
    category: Category
    citation: Citation | None = None
    similarity: float = 0.0
    curated: bool = False
    tags: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "similarity", clamp_similarity(self.similarity))

    @property
    def edition(self) -> str | None:
        """Edition id for sayings, None for other categories."""
        if self.category is Category.SAYING and self.citation is not None:
            return self.citation.collection or None
        return None


def is_citable(record: SourceRecord) -> bool:
    """Whether the record carries a present citation locator."""
    return record.citation is not None and record.citation.is_present


def is_publishable(record: SourceRecord) -> bool:
    """Whether the record may be surfaced to the final consumer."""
    if record.category.requires_citation:
        return is_citable(record)
    return True


@dataclass(frozen=True, slots=True)
class SearchRequest:
    """Input to the retrieval pipeline.

    Attributes:
        query: Free-form statement of intent
        preferred_edition: Restrict sayings to this edition ("" or None for all)
        skip_relevance_filter: Bypass the language-model precision pass
    """

    query: str
    preferred_edition: str | None = None
    skip_relevance_filter: bool = False


@dataclass(slots=True)
class SearchOutcome:
    """Per-category ordered results of one pipeline run.

    An empty list means no publishable source was found for that category.
    """

    names: list[SourceRecord] = field(default_factory=list)
    sayings: list[SourceRecord] = field(default_factory=list)
    verses: list[SourceRecord] = field(default_factory=list)
    relevance_filtered: bool = False
    degraded: bool = False

    @property
    def name(self) -> SourceRecord | None:
        return self.names[0] if self.names else None

    @property
    def saying(self) -> SourceRecord | None:
        return self.sayings[0] if self.sayings else None

    @property
    def verse(self) -> SourceRecord | None:
        return self.verses[0] if self.verses else None

    def by_category(self, category: Category) -> list[SourceRecord]:
        if category is Category.NAME:
            return self.names
        if category is Category.SAYING:
            return self.sayings
        return self.verses
