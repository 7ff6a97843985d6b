"""Data models shared across the retrieval pipeline."""
from dua_search.models.editions import (
    EDITION_LABELS,
    HADITH_EDITIONS,
    is_valid_edition,
)
from dua_search.models.names import NameCorpus, NameEntry
from dua_search.models.records import (
    Category,
    Citation,
    SearchOutcome,
    SearchRequest,
    SourceRecord,
    is_citable,
    is_publishable,
)

__all__ = [
    "EDITION_LABELS",
    "HADITH_EDITIONS",
    "Category",
    "Citation",
    "NameCorpus",
    "NameEntry",
    "SearchOutcome",
    "SearchRequest",
    "SourceRecord",
    "is_citable",
    "is_publishable",
    "is_valid_edition",
]
