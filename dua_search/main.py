"""
Dua Search Service - Main Application Entry Point

- FastAPI app with lifespan handler
- uvicorn dua_search.main:app starts successfully

Patterns Applied:
- Lifespan context manager builds clients and the pipeline once
- One-time configure_logging() at startup

Anti-Patterns Avoided:
- Deprecated @app.on_event - using modern lifespan pattern
- structlog.configure() per request - one-time at startup
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dua_search.api.health import get_health_service
from dua_search.api.health import router as health_router
from dua_search.api.search import search_router
from dua_search.clients.chat import ChatClient
from dua_search.clients.embedding import EmbeddingClient
from dua_search.clients.vector_search import VectorSearchClient
from dua_search.core.config import get_settings
from dua_search.core.exceptions import CorpusLoadError
from dua_search.core.logging import configure_logging, get_logger
from dua_search.core.tracing import configure_tracing
from dua_search.models.names import NameCorpus
from dua_search.pipeline.orchestrator import DuaSearchPipeline
from dua_search.ranking.intent_reranker import IntentReranker
from dua_search.ranking.query_enrichment import QueryEnricher

settings = get_settings()

configure_logging(
    log_level=settings.log_level,
    json_output=settings.log_json,
    service_version=settings.version,
    environment=settings.environment,
    log_query_text=settings.log_query_text,
)

logger = get_logger(__name__)


# =============================================================================
# Lifespan Context Manager
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan context manager for startup/shutdown events."""
    # =========================================================================
    # STARTUP
    # =========================================================================
    logger.info(
        "startup",
        service=settings.service_name,
        version=settings.version,
        environment=settings.environment,
    )

    if settings.tracing_enabled:
        configure_tracing(
            service_name=settings.service_name,
            service_version=settings.version,
            console_export=settings.tracing_console_export,
        )
        logger.info("tracing_configured")

    health = get_health_service()
    health.set_version(settings.version)

    # Static tables are required; a broken table fails startup.
    enricher = QueryEnricher(settings.topic_expansions_path)
    reranker = IntentReranker(settings.intent_signals_path)

    app.state.name_corpus = None
    try:
        app.state.name_corpus = NameCorpus.from_path(settings.names_corpus_path)
        health.set_corpus_loaded(True)
    except CorpusLoadError as e:
        logger.warning("name_corpus_unavailable", error=str(e))

    clients: list[EmbeddingClient | VectorSearchClient | ChatClient] = []
    app.state.pipeline = None
    app.state.search_client = None
    if settings.upstream_configured:
        embedding_client = EmbeddingClient(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.embedding_model,
            timeout=settings.embedding_timeout,
            max_retries=settings.max_retries,
        )
        search_client = VectorSearchClient(
            base_url=settings.vector_backend_url,
            api_key=settings.vector_backend_key,
            function_name=settings.match_function,
            table=settings.corpus_table,
            timeout=settings.search_timeout,
            max_retries=settings.max_retries,
        )
        chat_client = ChatClient(
            api_key=settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.chat_model,
            timeout=settings.relevance_filter_timeout,
        )
        clients = [embedding_client, search_client, chat_client]
        app.state.search_client = search_client
        app.state.pipeline = DuaSearchPipeline(
            embedding_client=embedding_client,
            search_client=search_client,
            chat_client=chat_client,
            enricher=enricher,
            reranker=reranker,
            embedding_timeout=settings.embedding_timeout,
            search_timeout=settings.search_timeout,
            relevance_filter_timeout=settings.relevance_filter_timeout,
        )
        health.set_pipeline_ready(True)
        logger.info("pipeline_ready", topics=enricher.topic_count)
    else:
        logger.warning("pipeline_not_configured", local_fallback=settings.local_fallback_enabled)

    yield

    # =========================================================================
    # SHUTDOWN
    # =========================================================================
    logger.info("shutdown", service=settings.service_name)

    health.set_pipeline_ready(False)
    app.state.pipeline = None
    app.state.search_client = None
    for client in clients:
        await client.close()


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Dua Search Service",
    description="Retrieves supplications, Quran verses and Names of Allah for a stated intent",
    version=settings.version,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(search_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    return {
        "service": settings.service_name,
        "version": settings.version,
        "docs": "/docs",
    }
