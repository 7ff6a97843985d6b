"""
Tests for the local fallback matcher.

- TestBundledCorpus: matches against the shipped 99 names
- TestScoring: substring scoring and first-seen tie-break
- TestRecordShape: the returned name record
"""

from __future__ import annotations

import pytest

from dua_search.core.config import CONFIG_DIR
from dua_search.models.names import NameCorpus, NameEntry
from dua_search.models.records import Category
from dua_search.pipeline.local_match import local_match, score_entry


@pytest.fixture(scope="module")
def corpus() -> NameCorpus:
    return NameCorpus.from_path(CONFIG_DIR / "names_of_allah.json")


class TestBundledCorpus:
    def test_patience_in_hardship(self, corpus: NameCorpus) -> None:
        match = local_match("patience in hardship", corpus)
        assert match is not None
        assert match.name.content.startswith("As-Sabur")
        assert match.score == 2

    def test_deterministic(self, corpus: NameCorpus) -> None:
        results = {local_match("patience in hardship", corpus) for _ in range(5)}
        assert len(results) == 1

    @pytest.mark.parametrize("query", ["the and of", "", "   ", "I am"])
    def test_stop_words_only_returns_none(self, corpus: NameCorpus, query: str) -> None:
        assert local_match(query, corpus) is None

    def test_no_match_returns_none(self, corpus: NameCorpus) -> None:
        assert local_match("xyzzy qwrtp", corpus) is None


class TestScoring:
    def test_counts_substring_hits(self) -> None:
        entry = NameEntry(arabic="a", english="Al-Ghafur", meaning="The All-Forgiving", tags=("sins",))
        assert score_entry(["forgiv", "sins", "rain"], entry) == 2

    def test_tie_keeps_first_entry(self) -> None:
        corpus = NameCorpus(
            [
                NameEntry(arabic="a", english="Ar-Rahman", meaning="The Most Merciful", tags=("mercy",)),
                NameEntry(arabic="b", english="Ar-Rahim", meaning="The Especially Merciful", tags=("mercy",)),
            ]
        )
        match = local_match("mercy", corpus)
        assert match is not None
        assert match.index == 0

    def test_higher_score_wins(self) -> None:
        corpus = NameCorpus(
            [
                NameEntry(arabic="a", english="Ar-Rahman", meaning="The Most Merciful", tags=("mercy",)),
                NameEntry(arabic="b", english="Al-Ghafur", meaning="The All-Forgiving", tags=("mercy", "sins")),
            ]
        )
        match = local_match("mercy for my sins", corpus)
        assert match is not None
        assert match.index == 1


class TestRecordShape:
    def test_record_fields(self, corpus: NameCorpus) -> None:
        match = local_match("patience in hardship", corpus)
        assert match is not None
        record = match.name
        assert record.id == f"local-{match.index}"
        assert record.category is Category.NAME
        assert record.citation is None
        assert record.similarity == 0.0
        assert not record.curated
        entry = corpus[match.index]
        assert record.content == f"{entry.english} ({entry.meaning}) - {entry.arabic}"
