"""Tests for query normalization and tokenization."""

from __future__ import annotations

import pytest

from dua_search.ranking.text import STOP_WORDS, normalize_query, tokenize


class TestNormalizeQuery:
    def test_lowercases_and_strips_punctuation(self) -> None:
        assert normalize_query("Help!  Me, PLEASE?") == "help me please"

    def test_keeps_apostrophes_and_hyphens(self) -> None:
        assert normalize_query("Du'a for self-control") == "du'a for self-control"

    def test_blank(self) -> None:
        assert normalize_query("  ...  ") == ""


class TestTokenize:
    def test_drops_stop_words(self) -> None:
        assert tokenize("patience in hardship") == ["patience", "hardship"]

    def test_drops_single_characters(self) -> None:
        assert tokenize("x marks a spot") == ["marks", "spot"]

    @pytest.mark.parametrize("query", ["the and of", "I am", "", "   "])
    def test_stop_word_only_queries_yield_nothing(self, query: str) -> None:
        assert tokenize(query) == []

    def test_stop_words_are_lowercase(self) -> None:
        assert all(word == word.lower() for word in STOP_WORDS)
