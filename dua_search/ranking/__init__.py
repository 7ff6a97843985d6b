"""Lexical ranking components: query enrichment and intent re-ranking."""
from dua_search.ranking.intent_reranker import IntentReranker, IntentSignals, rerank
from dua_search.ranking.query_enrichment import FRAMING_PREFIX, QueryEnricher, enrich
from dua_search.ranking.text import STOP_WORDS, normalize_query, tokenize

__all__ = [
    "FRAMING_PREFIX",
    "STOP_WORDS",
    "IntentReranker",
    "IntentSignals",
    "QueryEnricher",
    "enrich",
    "normalize_query",
    "rerank",
    "tokenize",
]
