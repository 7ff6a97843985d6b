"""
Search API Endpoints

POST /v1/search   - Retrieve names, sayings and verses for a supplication intent
GET  /v1/editions - List the saying editions present in the corpus

Patterns Applied:
- FastAPI router with Pydantic request/response models
- Dependency injection with get_pipeline(), get_name_corpus(),
  get_edition_source(), get_settings()
- Protocol-based typing for the pipeline

Error mapping:
- 422: request body validation (empty or over-long query)
- 400: InvalidQueryError (unknown edition)
- 503: UpstreamUnavailableError with operator hint, unless local fallback
  is enabled and the bundled names corpus matches, in which case the
  response is 200 with degraded=true
"""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel, Field, field_validator

from dua_search.core.config import Settings, get_settings
from dua_search.core.exceptions import InvalidQueryError, UpstreamUnavailableError
from dua_search.core.logging import bind_request_context, get_logger
from dua_search.clients.vector_search import EditionSourceProtocol
from dua_search.models.editions import EDITION_LABELS
from dua_search.models.names import NameCorpus
from dua_search.models.records import SearchOutcome, SearchRequest, SourceRecord
from dua_search.pipeline.local_match import local_match
from dua_search.pipeline.orchestrator import (
    MAX_QUERY_LENGTH,
    DuaSearchPipelineProtocol,
    validate_request,
)

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

API_PREFIX = "/v1"
SEARCH_TAG = "search"
SEARCH_SUMMARY = "Find supplications, verses and names for an intent"
EDITIONS_SUMMARY = "List hadith editions present in the corpus"

ERROR_QUERY_EMPTY = "Query cannot be empty or whitespace"
ERROR_PIPELINE_NOT_CONFIGURED = "Search backend is not configured"
HINT_NOT_CONFIGURED = (
    "Set DSS_OPENAI_API_KEY, DSS_VECTOR_BACKEND_URL and DSS_VECTOR_BACKEND_KEY."
)

DESC_QUERY = "Free-form statement of what the caller wants to pray for"
DESC_EDITION = "Restrict sayings to this edition (empty for all)"
DESC_LLM_FILTER = "Run the language-model relevance filter (default from settings)"


# =============================================================================
# Request/Response Models (Pydantic)
# =============================================================================


class SearchRequestBody(BaseModel):
    """Request body for POST /v1/search."""

    query: str = Field(
        ...,
        min_length=1,
        max_length=MAX_QUERY_LENGTH,
        description=DESC_QUERY,
        examples=["ease my anxiety before an exam"],
    )
    edition: str | None = Field(
        default=None,
        description=DESC_EDITION,
        examples=["eng-bukhari"],
    )
    llm_filter: bool | None = Field(default=None, description=DESC_LLM_FILTER)

    @field_validator("query")
    @classmethod
    def strip_query(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            raise ValueError(ERROR_QUERY_EMPTY)
        return stripped


class CitationBody(BaseModel):
    collection: str
    reference: str
    label: str


class RecordBody(BaseModel):
    """One source in the response."""

    id: str
    content: str
    category: str
    citation: CitationBody | None = None
    similarity: float = Field(ge=0.0, le=1.0)
    curated: bool = False

    @classmethod
    def from_record(cls, record: SourceRecord) -> RecordBody:
        citation = None
        if record.citation is not None:
            citation = CitationBody(
                collection=record.citation.collection,
                reference=record.citation.reference,
                label=record.citation.label,
            )
        return cls(
            id=record.id,
            content=record.content,
            category=record.category.value,
            citation=citation,
            similarity=record.similarity,
            curated=record.curated,
        )


class SearchResponseBody(BaseModel):
    """Best result plus the full ordered list per category.

    An empty list means no publishable source was found for that category.
    """

    name: RecordBody | None = None
    saying: RecordBody | None = None
    verse: RecordBody | None = None
    names: list[RecordBody] = Field(default_factory=list)
    sayings: list[RecordBody] = Field(default_factory=list)
    verses: list[RecordBody] = Field(default_factory=list)
    relevance_filtered: bool = False
    degraded: bool = False
    hint: str | None = None

    @classmethod
    def from_outcome(
        cls, outcome: SearchOutcome, hint: str | None = None
    ) -> SearchResponseBody:
        names = [RecordBody.from_record(r) for r in outcome.names]
        sayings = [RecordBody.from_record(r) for r in outcome.sayings]
        verses = [RecordBody.from_record(r) for r in outcome.verses]
        return cls(
            name=names[0] if names else None,
            saying=sayings[0] if sayings else None,
            verse=verses[0] if verses else None,
            names=names,
            sayings=sayings,
            verses=verses,
            relevance_filtered=outcome.relevance_filtered,
            degraded=outcome.degraded,
            hint=hint,
        )


class EditionBody(BaseModel):
    id: str
    label: str


class EditionsResponseBody(BaseModel):
    editions: list[EditionBody]


# =============================================================================
# Dependency Injection
# =============================================================================


def get_pipeline(request: Request) -> DuaSearchPipelineProtocol | None:
    """Pipeline built by the lifespan handler, or None when not configured."""
    return getattr(request.app.state, "pipeline", None)


def get_name_corpus(request: Request) -> NameCorpus | None:
    """Names corpus loaded by the lifespan handler, if any."""
    return getattr(request.app.state, "name_corpus", None)


def get_edition_source(request: Request) -> EditionSourceProtocol | None:
    """Search backend used to list editions, or None when not configured."""
    return getattr(request.app.state, "search_client", None)


# =============================================================================
# Router Definition
# =============================================================================


search_router = APIRouter(prefix=API_PREFIX, tags=[SEARCH_TAG])


def _degraded_response(
    query: str,
    error: UpstreamUnavailableError,
    corpus: NameCorpus | None,
    settings: Settings,
) -> SearchResponseBody:
    """Answer from the local names corpus, or raise 503."""
    match = None
    if settings.local_fallback_enabled and corpus is not None:
        match = local_match(query, corpus)

    if match is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(error), "hint": error.hint},
        )

    logger.warning(
        "search_degraded_to_local_match",
        reason=str(error),
        name_id=match.name.id,
        score=match.score,
    )
    outcome = SearchOutcome(names=[match.name], degraded=True)
    return SearchResponseBody.from_outcome(outcome, hint=error.hint or None)


# =============================================================================
# Endpoints
# =============================================================================


@search_router.post(
    "/search",
    response_model=SearchResponseBody,
    summary=SEARCH_SUMMARY,
    responses={
        200: {"description": "Search completed (possibly degraded)"},
        400: {"description": "Invalid edition"},
        422: {"description": "Validation error (empty query)"},
        503: {"description": "Search backend unavailable"},
    },
)
async def search(
    body: SearchRequestBody,
    pipeline: Annotated[DuaSearchPipelineProtocol | None, Depends(get_pipeline)],
    corpus: Annotated[NameCorpus | None, Depends(get_name_corpus)],
    settings: Annotated[Settings, Depends(get_settings)],
    x_request_id: Annotated[str | None, Header()] = None,
) -> SearchResponseBody:
    """Run the retrieval pipeline for one query.

    Args:
        body: Query, optional edition, optional relevance filter toggle
        pipeline: Injected pipeline (None when upstream is not configured)
        corpus: Injected names corpus for degraded answers
        settings: Injected settings
        x_request_id: Caller correlation id (generated when absent)

    Returns:
        SearchResponseBody with per-category results
    """
    llm_filter = settings.llm_filter_default if body.llm_filter is None else body.llm_filter
    bind_request_context(
        request_id=x_request_id or uuid.uuid4().hex,
        query=body.query,
        edition=body.edition or None,
        llm_filter=llm_filter,
    )
    search_request = SearchRequest(
        query=body.query,
        preferred_edition=body.edition or None,
        skip_relevance_filter=not llm_filter,
    )
    try:
        validate_request(search_request)
    except InvalidQueryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e

    if pipeline is None:
        error = UpstreamUnavailableError(
            ERROR_PIPELINE_NOT_CONFIGURED, hint=HINT_NOT_CONFIGURED
        )
        return _degraded_response(body.query, error, corpus, settings)

    try:
        outcome = await pipeline.search(search_request)
    except InvalidQueryError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except UpstreamUnavailableError as e:
        logger.error("search_upstream_unavailable", error=str(e), hint=e.hint)
        return _degraded_response(body.query, e, corpus, settings)

    logger.info(
        "search_complete",
        names=len(outcome.names),
        sayings=len(outcome.sayings),
        verses=len(outcome.verses),
        relevance_filtered=outcome.relevance_filtered,
    )
    return SearchResponseBody.from_outcome(outcome)


@search_router.get(
    "/editions",
    response_model=EditionsResponseBody,
    summary=EDITIONS_SUMMARY,
    responses={503: {"description": "Search backend unavailable"}},
)
async def list_editions(
    source: Annotated[EditionSourceProtocol | None, Depends(get_edition_source)],
) -> EditionsResponseBody:
    """List the recognised editions that have at least one saying stored."""
    if source is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": ERROR_PIPELINE_NOT_CONFIGURED, "hint": HINT_NOT_CONFIGURED},
        )
    try:
        editions = await source.list_editions()
    except UpstreamUnavailableError as e:
        logger.error("editions_unavailable", error=str(e), hint=e.hint)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(e), "hint": e.hint},
        ) from e
    return EditionsResponseBody(
        editions=[
            EditionBody(id=edition, label=EDITION_LABELS[edition])
            for edition in editions
        ]
    )
