"""
Fallback Cascade Controller.

Guarantees per-category coverage: every category left without a
publishable record after the primary pass gets one floor-0,
category-targeted search. Needy categories are searched concurrently and
joined with a single await-all barrier; each task returns its own list and
the caller merges after all complete.

Pattern: Scatter-Gather
- One asyncio task per needy category inside an asyncio.TaskGroup
- Each task owns its timeout and upstream error handling; a slow or
  unavailable category maps to [] without affecting the others
- An unexpected exception cancels the remaining tasks before it propagates
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping, Sequence

from dua_search.clients.vector_search import (
    FILTER_CATEGORY,
    FILTER_EDITION,
    VectorSearchClientProtocol,
)
from dua_search.core.exceptions import UpstreamUnavailableError
from dua_search.core.logging import get_logger
from dua_search.models.records import Category, SourceRecord, is_publishable
from dua_search.retrieval.thresholds import FALLBACK_MATCH_COUNTS, FALLBACK_THRESHOLD

logger = get_logger(__name__)


def needy_categories(
    partitioned: Mapping[Category, Sequence[SourceRecord]],
) -> list[Category]:
    """Categories with zero publishable records, in enum order."""
    return [
        category
        for category in Category
        if not any(is_publishable(r) for r in partitioned.get(category, ()))
    ]


def filter_edition(
    records: Iterable[SourceRecord], preferred_edition: str | None
) -> list[SourceRecord]:
    """Keep sayings from the preferred edition; other categories pass through.

    No substitution across editions: if nothing matches, sayings are empty.
    """
    if not preferred_edition:
        return list(records)
    return [
        r
        for r in records
        if r.category is not Category.SAYING or r.edition == preferred_edition
    ]


def build_metadata_filter(
    category: Category, preferred_edition: str | None = None
) -> dict[str, str]:
    """Metadata filter for a category-targeted search."""
    metadata_filter = {FILTER_CATEGORY: category.value}
    if category is Category.SAYING and preferred_edition:
        metadata_filter[FILTER_EDITION] = preferred_edition
    return metadata_filter


class FallbackCascade:
    """Concurrent floor-0 search for categories the primary pass left empty.

    Usage:
        cascade = FallbackCascade(search_client, timeout=10.0)
        results = await cascade.run(vector, [Category.VERSE], preferred_edition=None)
    """

    def __init__(
        self,
        search_client: VectorSearchClientProtocol,
        timeout: float | None = None,
    ) -> None:
        """Initialize the cascade.

        Args:
            search_client: Similarity search backend
            timeout: Per-category search timeout in seconds (None = unbounded)
        """
        self._search_client = search_client
        self.timeout = timeout

    async def run(
        self,
        query_vector: Sequence[float],
        categories: Sequence[Category],
        preferred_edition: str | None = None,
    ) -> dict[Category, list[SourceRecord]]:
        """Search every given category concurrently.

        Args:
            query_vector: Embedding of the enriched query
            categories: Needy categories to search
            preferred_edition: Edition restriction for sayings

        Returns:
            Mapping of each searched category to its fallback records,
            edition-filtered. A failed or timed-out search maps to [].

        Raises:
            ExceptionGroup: A search raised something other than a timeout or
                UpstreamUnavailableError; sibling searches are cancelled first
        """
        if not categories:
            return {}

        async with asyncio.TaskGroup() as group:
            tasks = {
                category: group.create_task(
                    self._search_category(query_vector, category, preferred_edition)
                )
                for category in categories
            }
        return {category: task.result() for category, task in tasks.items()}

    async def _search_category(
        self,
        query_vector: Sequence[float],
        category: Category,
        preferred_edition: str | None,
    ) -> list[SourceRecord]:
        search = self._search_client.search(
            query_vector,
            FALLBACK_THRESHOLD,
            FALLBACK_MATCH_COUNTS[category],
            build_metadata_filter(category, preferred_edition),
        )
        try:
            records = await asyncio.wait_for(search, timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "fallback_search_failed",
                category=category.value,
                reason="timeout",
                timeout=self.timeout,
            )
            return []
        except UpstreamUnavailableError as e:
            logger.warning(
                "fallback_search_failed",
                category=category.value,
                reason=str(e),
            )
            return []

        # Scope strictly to the requested category and edition.
        scoped = [r for r in records if r.category is category]
        scoped = filter_edition(scoped, preferred_edition)
        logger.debug(
            "fallback_search_complete",
            category=category.value,
            returned=len(records),
            kept=len(scoped),
        )
        return scoped
