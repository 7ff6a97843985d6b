"""
Vector Search Client

HTTP client for the similarity-search backend, exposed as a PostgREST RPC
(Supabase `match_documents`).

Endpoint: POST {base_url}/rest/v1/rpc/{function}
Request:  {"query_embedding": [...], "match_threshold": float,
           "match_count": int, "filter_metadata": {...}}
Response: [{"id", "content", "metadata", "similarity"}, ...] ordered by
          descending similarity

Edition listing: GET {base_url}/rest/v1/{table}?select=metadata
                  &metadata=cs.{"type":"hadith"}&limit=10000

Backend metadata uses `type` = name | hadith | quran; callers filter by
domain keys `category` and `edition`, translated here.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Iterable, Mapping, Sequence
from typing import Any, Final, Protocol, runtime_checkable

import httpx

from dua_search.clients.http import get_json, post_json
from dua_search.core.exceptions import UpstreamUnavailableError
from dua_search.core.logging import get_logger
from dua_search.models.editions import HADITH_EDITIONS
from dua_search.models.records import Category, Citation, SourceRecord

logger = get_logger(__name__)

DEFAULT_FUNCTION: Final[str] = "match_documents"
RPC_PATH_TEMPLATE: Final[str] = "/rest/v1/rpc/{function}"
TABLE_PATH_TEMPLATE: Final[str] = "/rest/v1/{table}"
DEFAULT_TABLE: Final[str] = "spiritual_assets"
EDITION_SCAN_LIMIT: Final[int] = 10000
DEFAULT_TIMEOUT: Final[float] = 10.0
DEFAULT_MAX_RETRIES: Final[int] = 2
DEFAULT_RETRY_DELAY: Final[float] = 0.5

FILTER_CATEGORY: Final[str] = "category"
FILTER_EDITION: Final[str] = "edition"

CATEGORY_TO_BACKEND_TYPE: Final[dict[Category, str]] = {
    Category.NAME: "name",
    Category.SAYING: "hadith",
    Category.VERSE: "quran",
}
BACKEND_TYPE_TO_CATEGORY: Final[dict[str, Category]] = {
    v: k for k, v in CATEGORY_TO_BACKEND_TYPE.items()
}

SEARCH_HINT: Final[str] = (
    "Check DSS_VECTOR_BACKEND_URL and DSS_VECTOR_BACKEND_KEY, and that the "
    "match function exists in the database and the corpus has been seeded."
)


class SearchClientError(UpstreamUnavailableError):
    """Raised when the search backend fails or returns an unusable body."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message, hint=SEARCH_HINT)
        self.status_code = status_code


@runtime_checkable
class VectorSearchClientProtocol(Protocol):
    """Protocol for similarity search backends.

    Enables FakeVectorSearchClient for testing without real HTTP calls.
    """

    async def search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        max_results: int,
        metadata_filter: Mapping[str, str] | None = None,
    ) -> list[SourceRecord]:
        """Return records with similarity >= threshold, best first, capped."""
        ...


@runtime_checkable
class EditionSourceProtocol(Protocol):
    """Protocol for backends that can report which saying editions they hold."""

    async def list_editions(self) -> list[str]:
        """Known editions present in the corpus, in canonical order."""
        ...


def _build_citation(category: Category, metadata: Mapping[str, Any]) -> Citation | None:
    reference = str(metadata.get("reference") or "").strip()

    if category is Category.SAYING:
        edition = str(metadata.get("edition") or "")
        if not reference:
            return Citation(collection=edition) if edition else None
        return Citation(collection=edition, reference=reference, label=reference)

    if category is Category.VERSE:
        surah_name = str(metadata.get("surah_name") or metadata.get("surahName") or "")
        surah = str(metadata.get("surah") or "")
        collection = surah_name or surah
        if not reference:
            return Citation(collection=collection) if collection else None
        label = f"{surah_name} {reference}".strip() if surah_name else reference
        return Citation(collection=collection, reference=reference, label=label)

    if reference:
        return Citation(reference=reference, label=reference)
    return None


def _parse_similarity(value: Any) -> float | None:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return None
    try:
        similarity = float(value)
    except (TypeError, ValueError):
        return None
    return similarity if math.isfinite(similarity) else None


def parse_record(row: Mapping[str, Any]) -> SourceRecord | None:
    """Map one backend row to a SourceRecord.

    Returns:
        SourceRecord, or None when the row has no id, no content, an
        unknown type, or a similarity that is not a finite number
    """
    metadata = row.get("metadata") or {}
    if not isinstance(metadata, Mapping):
        metadata = {}
    category = BACKEND_TYPE_TO_CATEGORY.get(str(metadata.get("type") or ""))
    record_id = row.get("id")
    content = row.get("content")
    similarity = _parse_similarity(row.get("similarity"))
    if (
        category is None
        or record_id is None
        or not isinstance(content, str)
        or similarity is None
    ):
        return None

    tags = metadata.get("tags") or []
    return SourceRecord(
        id=str(record_id),
        content=content,
        category=category,
        citation=_build_citation(category, metadata),
        similarity=similarity,
        curated=bool(metadata.get("context")),
        tags=tuple(str(t) for t in tags) if isinstance(tags, list) else (),
    )


def known_editions(editions: Iterable[object]) -> list[str]:
    """Keep recognised edition ids, deduplicated, in canonical order."""
    found = {e for e in editions if isinstance(e, str)}
    return [e for e in HADITH_EDITIONS if e in found]


def translate_filter(metadata_filter: Mapping[str, str] | None) -> dict[str, str]:
    """Translate a domain filter into the backend's metadata filter."""
    if not metadata_filter:
        return {}
    translated: dict[str, str] = {}
    category = metadata_filter.get(FILTER_CATEGORY)
    if category:
        translated["type"] = CATEGORY_TO_BACKEND_TYPE[Category(category)]
    edition = metadata_filter.get(FILTER_EDITION)
    if edition:
        translated["edition"] = edition
    return translated


class VectorSearchClient:
    """HTTP client for the PostgREST match function.

    Attributes:
        base_url: Backend base URL
        function_name: RPC function to call
        table: Corpus table scanned for edition listing
        timeout: Request timeout in seconds
        max_retries: Retries after the first attempt
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        function_name: str = DEFAULT_FUNCTION,
        table: str = DEFAULT_TABLE,
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        self.base_url = base_url
        self.function_name = function_name
        self.table = table
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(timeout),
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            },
        )

    async def search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        max_results: int,
        metadata_filter: Mapping[str, str] | None = None,
    ) -> list[SourceRecord]:
        """Run a similarity search.

        Args:
            query_vector: Query embedding
            threshold: Similarity floor
            max_results: Result cap
            metadata_filter: Optional {"category": ..., "edition": ...}

        Returns:
            Parsed records, best first

        Raises:
            SearchClientError: On HTTP errors or a malformed response
        """
        payload = {
            "query_embedding": list(query_vector),
            "match_threshold": threshold,
            "match_count": max_results,
            "filter_metadata": translate_filter(metadata_filter),
        }
        rows = await self._execute_request(payload)
        return self._parse_results(rows)

    async def _execute_request(self, payload: dict[str, Any]) -> Any:
        return await post_json(
            self._client,
            RPC_PATH_TEMPLATE.format(function=self.function_name),
            payload,
            error_factory=SearchClientError,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    def _parse_results(self, rows: Any) -> list[SourceRecord]:
        if not isinstance(rows, list):
            raise SearchClientError("Search backend returned a non-list body")
        records: list[SourceRecord] = []
        for row in rows:
            record = parse_record(row) if isinstance(row, Mapping) else None
            if record is None:
                logger.debug(
                    "search_row_skipped",
                    row_id=row.get("id") if isinstance(row, Mapping) else None,
                )
                continue
            records.append(record)
        return records

    async def list_editions(self) -> list[str]:
        """List the saying editions actually present in the corpus.

        Scans the metadata of saying rows (up to EDITION_SCAN_LIMIT) and keeps
        recognised edition ids only.

        Raises:
            SearchClientError: On HTTP errors or a non-list body
        """
        rows = await self._execute_get(
            {
                "select": "metadata",
                "metadata": f'cs.{{"type":"{CATEGORY_TO_BACKEND_TYPE[Category.SAYING]}"}}',
                "limit": EDITION_SCAN_LIMIT,
            }
        )
        if not isinstance(rows, list):
            raise SearchClientError("Corpus table returned a non-list body")
        editions = known_editions(
            row["metadata"].get("edition")
            for row in rows
            if isinstance(row, Mapping) and isinstance(row.get("metadata"), Mapping)
        )
        logger.debug("editions_listed", scanned=len(rows), editions=len(editions))
        return editions

    async def _execute_get(self, params: dict[str, Any]) -> Any:
        return await get_json(
            self._client,
            TABLE_PATH_TEMPLATE.format(table=self.table),
            params,
            error_factory=SearchClientError,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
        )

    async def close(self) -> None:
        """Close the HTTP client connection pool."""
        await self._client.aclose()


class FakeVectorSearchClient:
    """In-memory search backend for testing.

    Honours threshold, cap and metadata filter over preset records whose
    similarity is taken as the score for any query vector.
    """

    def __init__(
        self,
        records: Sequence[SourceRecord] | None = None,
        error: Exception | None = None,
        delays: Mapping[Category | None, float] | None = None,
    ) -> None:
        """Initialize with preset records.

        Args:
            records: Corpus to search
            error: Optional error raised on every search
            delays: Per-category artificial latency; key None applies to
                unfiltered searches
        """
        self._records = list(records or [])
        self._error = error
        self._delays = dict(delays or {})
        self.calls: list[dict[str, Any]] = []

    async def search(
        self,
        query_vector: Sequence[float],
        threshold: float,
        max_results: int,
        metadata_filter: Mapping[str, str] | None = None,
    ) -> list[SourceRecord]:
        metadata_filter = dict(metadata_filter or {})
        self.calls.append(
            {
                "threshold": threshold,
                "max_results": max_results,
                "metadata_filter": metadata_filter,
            }
        )
        category = (
            Category(metadata_filter[FILTER_CATEGORY])
            if FILTER_CATEGORY in metadata_filter
            else None
        )
        await asyncio.sleep(self._delays.get(category, 0.0))
        if self._error:
            raise self._error

        edition = metadata_filter.get(FILTER_EDITION)
        matches = [
            r
            for r in self._records
            if r.similarity >= threshold
            and (category is None or r.category is category)
            and (not edition or r.edition == edition)
        ]
        matches.sort(key=lambda r: r.similarity, reverse=True)
        return matches[:max_results]


    async def list_editions(self) -> list[str]:
        if self._error:
            raise self._error
        return known_editions(r.edition for r in self._records)
