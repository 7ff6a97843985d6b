"""Dua Search Service - retrieval and ranking of supplication sources."""
