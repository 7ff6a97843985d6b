"""
Retrieval pipeline: fallback cascade, relevance filter, local matcher,
and the orchestrator that runs them in order.
"""
from dua_search.pipeline.fallback_cascade import FallbackCascade, needy_categories
from dua_search.pipeline.local_match import LocalMatch, local_match
from dua_search.pipeline.orchestrator import (
    DuaSearchPipeline,
    DuaSearchPipelineProtocol,
    validate_request,
)
from dua_search.pipeline.relevance_filter import (
    RelevanceFilter,
    RelevanceSelection,
    apply_selection,
)

__all__ = [
    "DuaSearchPipeline",
    "DuaSearchPipelineProtocol",
    "FallbackCascade",
    "LocalMatch",
    "RelevanceFilter",
    "RelevanceSelection",
    "apply_selection",
    "local_match",
    "needy_categories",
    "validate_request",
]
