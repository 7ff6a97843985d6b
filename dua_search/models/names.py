"""
Name corpus for offline matching.

Loads the 99 Names from a JSON file at startup, in the same shape the
search backend was seeded from: [{"arabic", "english", "meaning", "tags"}].
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import dataclass, field
from pathlib import Path

from dua_search.core.exceptions import CorpusLoadError


@dataclass(frozen=True, slots=True)
class NameEntry:
    """One attribute-name entry.

    Attributes:
        arabic: Name in Arabic script
        english: Transliterated name (e.g. "Ar-Rahman")
        meaning: English meaning (e.g. "The Most Merciful")
        tags: Topic tags used for lexical matching
    """

    arabic: str
    english: str
    meaning: str
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def searchable_text(self) -> str:
        """Lowercased label, meaning, and tags joined for substring matching."""
        return " ".join(
            [self.english.lower(), self.meaning.lower(), *(t.lower() for t in self.tags)]
        )

    @property
    def display_content(self) -> str:
        return f"{self.english} ({self.meaning}) - {self.arabic}"


class NameCorpus:
    """Immutable, ordered collection of NameEntry loaded from JSON.

    Example:
        >>> corpus = NameCorpus.from_path(Path("config/names_of_allah.json"))
        >>> len(corpus)
        99
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: list[NameEntry]) -> None:
        self._entries: tuple[NameEntry, ...] = tuple(entries)

    @classmethod
    def from_path(cls, path: Path) -> NameCorpus:
        """Load the corpus from a JSON file.

        Args:
            path: Path to the names JSON file

        Raises:
            CorpusLoadError: If the file is missing, invalid JSON, or malformed
        """
        if not path.exists():
            raise CorpusLoadError(f"Name corpus not found: {path}")

        try:
            with path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except json.JSONDecodeError as e:
            raise CorpusLoadError(f"Invalid JSON in name corpus {path}: {e}") from e

        if not isinstance(raw, list):
            raise CorpusLoadError(f"Name corpus must be a JSON array: {path}")

        entries: list[NameEntry] = []
        for index, item in enumerate(raw):
            try:
                entries.append(
                    NameEntry(
                        arabic=str(item["arabic"]),
                        english=str(item["english"]),
                        meaning=str(item["meaning"]),
                        tags=tuple(str(t) for t in item.get("tags", [])),
                    )
                )
            except (KeyError, TypeError, AttributeError) as e:
                raise CorpusLoadError(
                    f"Malformed name entry at index {index} in {path}: {e}"
                ) from e
        return cls(entries)

    @property
    def entries(self) -> tuple[NameEntry, ...]:
        return self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[NameEntry]:
        return iter(self._entries)

    def __getitem__(self, index: int) -> NameEntry:
        return self._entries[index]
