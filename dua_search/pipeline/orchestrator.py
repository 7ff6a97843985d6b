"""
Dua Search Pipeline Orchestrator.

Runs one request through the retrieval stages:
1. Validate and enrich the query
2. Embed the enriched query
3. Primary search at the dynamic threshold (25 candidates, unfiltered)
4. Intent re-rank, publish floor, sort, partition by category
5. Concurrent fallback cascade for categories left without a publishable record
6. Language-model relevance filter (fail-open)

Pattern: Pipeline with injected collaborators
- Embedding, search and chat clients are constructor dependencies
- No state shared across requests; each run builds its own lists
- Every stage runs inside its own OpenTelemetry span
"""

from __future__ import annotations

import asyncio
from collections.abc import Sequence
from typing import Final, Protocol, runtime_checkable

from dua_search.clients.chat import ChatClientProtocol
from dua_search.clients.embedding import EMBEDDING_HINT, EmbeddingClientProtocol
from dua_search.clients.vector_search import SEARCH_HINT, VectorSearchClientProtocol
from dua_search.core.exceptions import InvalidQueryError, UpstreamUnavailableError
from dua_search.core.logging import get_logger
from dua_search.core.tracing import get_tracer
from dua_search.models.editions import is_valid_edition
from dua_search.models.records import (
    Category,
    SearchOutcome,
    SearchRequest,
    SourceRecord,
    is_publishable,
)
from dua_search.pipeline.fallback_cascade import (
    FallbackCascade,
    filter_edition,
    needy_categories,
)
from dua_search.pipeline.relevance_filter import DEFAULT_TIMEOUT as DEFAULT_RELEVANCE_TIMEOUT
from dua_search.pipeline.relevance_filter import RelevanceFilter, apply_selection
from dua_search.ranking.intent_reranker import IntentReranker
from dua_search.ranking.query_enrichment import QueryEnricher
from dua_search.retrieval.thresholds import (
    MIN_PUBLISHABLE_SIMILARITY,
    PRIMARY_MATCH_COUNT,
    dynamic_threshold,
)

logger = get_logger(__name__)
tracer = get_tracer(__name__)

# =============================================================================
# Constants
# =============================================================================

MAX_QUERY_LENGTH: Final[int] = 2000
DEFAULT_EMBEDDING_TIMEOUT: Final[float] = 10.0
DEFAULT_SEARCH_TIMEOUT: Final[float] = 10.0

ERROR_QUERY_EMPTY: Final[str] = "query cannot be empty"
ERROR_QUERY_TOO_LONG: Final[str] = f"query must be at most {MAX_QUERY_LENGTH} characters"
ERROR_INVALID_EDITION: Final[str] = "invalid edition: {edition}"


# =============================================================================
# Protocol
# =============================================================================


@runtime_checkable
class DuaSearchPipelineProtocol(Protocol):
    """Protocol for pipeline implementations.

    Enables dependency injection of the pipeline into API routes.
    """

    async def search(self, request: SearchRequest) -> SearchOutcome:
        """Run one search request through every stage."""
        ...


# =============================================================================
# Helpers
# =============================================================================


def validate_request(request: SearchRequest) -> str:
    """Reject malformed input before any network call.

    Returns:
        The trimmed query

    Raises:
        InvalidQueryError: Empty or over-long query, or unknown edition
    """
    query = (request.query or "").strip()
    if not query:
        raise InvalidQueryError(ERROR_QUERY_EMPTY)
    if len(query) > MAX_QUERY_LENGTH:
        raise InvalidQueryError(ERROR_QUERY_TOO_LONG)
    if not is_valid_edition(request.preferred_edition):
        raise InvalidQueryError(
            ERROR_INVALID_EDITION.format(edition=request.preferred_edition)
        )
    return query


def partition(records: Sequence[SourceRecord]) -> dict[Category, list[SourceRecord]]:
    """Split records by category, preserving order."""
    partitioned: dict[Category, list[SourceRecord]] = {c: [] for c in Category}
    for record in records:
        partitioned[record.category].append(record)
    return partitioned


def merge_unique(
    primary: Sequence[SourceRecord], extra: Sequence[SourceRecord]
) -> list[SourceRecord]:
    """Append extra records whose ids are not already present."""
    seen = {r.id for r in primary}
    merged = list(primary)
    for record in extra:
        if record.id not in seen:
            seen.add(record.id)
            merged.append(record)
    return merged


def _publishable(records: Sequence[SourceRecord]) -> list[SourceRecord]:
    return [r for r in records if is_publishable(r)]


def _by_similarity(records: Sequence[SourceRecord]) -> list[SourceRecord]:
    # sorted() is stable: equal scores keep backend order
    return sorted(records, key=lambda r: r.similarity, reverse=True)


# =============================================================================
# Main Implementation
# =============================================================================


class DuaSearchPipeline:
    """Request-scoped retrieval pipeline.

    Example:
        pipeline = DuaSearchPipeline(
            embedding_client=EmbeddingClient(api_key=...),
            search_client=VectorSearchClient(base_url=..., api_key=...),
            chat_client=ChatClient(api_key=...),
        )
        outcome = await pipeline.search(SearchRequest(query="ease my anxiety"))
    """

    def __init__(
        self,
        embedding_client: EmbeddingClientProtocol,
        search_client: VectorSearchClientProtocol,
        chat_client: ChatClientProtocol | None = None,
        enricher: QueryEnricher | None = None,
        reranker: IntentReranker | None = None,
        embedding_timeout: float | None = DEFAULT_EMBEDDING_TIMEOUT,
        search_timeout: float | None = DEFAULT_SEARCH_TIMEOUT,
        relevance_filter_timeout: float | None = DEFAULT_RELEVANCE_TIMEOUT,
    ) -> None:
        """Initialize the pipeline with its collaborators.

        Args:
            embedding_client: Embedding service
            search_client: Similarity search backend
            chat_client: Chat service for the relevance filter (None disables it)
            enricher: Query enricher (defaults to the bundled topic table)
            reranker: Intent re-ranker (defaults to the bundled signal table)
            embedding_timeout: Bound on the embedding call in seconds
            search_timeout: Bound on each search call in seconds
            relevance_filter_timeout: Bound on the chat call in seconds
        """
        self._embedding_client = embedding_client
        self._search_client = search_client
        self._enricher = enricher or QueryEnricher()
        self._reranker = reranker or IntentReranker()
        self._cascade = FallbackCascade(search_client, timeout=search_timeout)
        self._relevance_filter = RelevanceFilter(
            chat_client, timeout=relevance_filter_timeout
        )
        self.embedding_timeout = embedding_timeout
        self.search_timeout = search_timeout

    async def search(self, request: SearchRequest) -> SearchOutcome:
        """Run one request through every stage.

        Args:
            request: Query, optional preferred edition, filter toggle

        Returns:
            SearchOutcome with ordered per-category lists; an empty list
            means no publishable source was found

        Raises:
            InvalidQueryError: Malformed input (raised before any network call)
            UpstreamUnavailableError: Embedding or primary search failed
        """
        query = validate_request(request)
        edition = request.preferred_edition or None

        with tracer.start_as_current_span("pipeline.enrich"):
            enriched = self._enricher.enrich(query)

        vector = await self._embed(enriched)
        primary = await self._primary_search(query, vector)

        with tracer.start_as_current_span("pipeline.rerank") as span:
            candidates = self._rank_primary(primary, edition)
            span.set_attribute("candidates", sum(len(v) for v in candidates.values()))

        with tracer.start_as_current_span("pipeline.cascade") as span:
            needy = needy_categories(candidates)
            span.set_attribute("needy", [c.value for c in needy])
            if needy:
                fallback = await self._cascade.run(vector, needy, edition)
                for category, records in fallback.items():
                    rescored = _by_similarity(self._reranker.rerank(records))
                    candidates[category] = merge_unique(
                        candidates[category], _publishable(rescored)
                    )

        logger.info(
            "candidates_ready",
            names=len(candidates[Category.NAME]),
            sayings=len(candidates[Category.SAYING]),
            verses=len(candidates[Category.VERSE]),
            fallback_categories=[c.value for c in needy],
        )

        sayings = candidates[Category.SAYING]
        verses = candidates[Category.VERSE]
        with tracer.start_as_current_span("pipeline.relevance_filter") as span:
            selection = await self._relevance_filter.select_relevant(
                query, sayings, verses, skip=request.skip_relevance_filter
            )
            span.set_attribute("filtered", selection.filtered)
            if selection.filtered:
                sayings, verses = apply_selection(sayings, verses, selection)

        return SearchOutcome(
            names=candidates[Category.NAME],
            sayings=sayings,
            verses=verses,
            relevance_filtered=selection.filtered,
        )

    async def _embed(self, enriched: str) -> list[float]:
        with tracer.start_as_current_span("pipeline.embed"):
            try:
                return await asyncio.wait_for(
                    self._embedding_client.embed(enriched),
                    timeout=self.embedding_timeout,
                )
            except asyncio.TimeoutError as e:
                logger.error("embedding_timeout", timeout=self.embedding_timeout)
                raise UpstreamUnavailableError(
                    f"Embedding timed out after {self.embedding_timeout}s",
                    hint=EMBEDDING_HINT,
                ) from e

    async def _primary_search(
        self, query: str, vector: Sequence[float]
    ) -> list[SourceRecord]:
        threshold = dynamic_threshold(query)
        with tracer.start_as_current_span("pipeline.primary_search") as span:
            span.set_attribute("threshold", threshold)
            try:
                records = await asyncio.wait_for(
                    self._search_client.search(vector, threshold, PRIMARY_MATCH_COUNT),
                    timeout=self.search_timeout,
                )
            except asyncio.TimeoutError as e:
                logger.error("primary_search_timeout", timeout=self.search_timeout)
                raise UpstreamUnavailableError(
                    f"Search timed out after {self.search_timeout}s",
                    hint=SEARCH_HINT,
                ) from e
            span.set_attribute("returned", len(records))

        logger.info(
            "primary_search_complete", threshold=threshold, returned=len(records)
        )
        return records

    def _rank_primary(
        self, records: Sequence[SourceRecord], edition: str | None
    ) -> dict[Category, list[SourceRecord]]:
        reranked = self._reranker.rerank(records)
        kept = [r for r in reranked if r.similarity >= MIN_PUBLISHABLE_SIMILARITY]
        kept = filter_edition(_by_similarity(kept), edition)
        return {c: _publishable(v) for c, v in partition(kept).items()}
