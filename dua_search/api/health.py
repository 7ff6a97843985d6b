"""
Dua Search Service - Health API Routes

Patterns Applied:
- Health Check Pattern: /health for liveness, /ready for readiness
- HealthService class holding readiness state set by the lifespan handler
- Pydantic response models

Anti-Patterns Avoided:
- Bare except clauses
- Missing response models
"""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from dua_search.core.logging import SERVICE_NAME, get_logger

router = APIRouter(tags=["health"])

logger = get_logger(__name__)


# =============================================================================
# Response Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response model.

    Not ready (503) until the pipeline is wired with upstream credentials.
    """

    status: str
    checks: dict[str, bool]


# =============================================================================
# Health Service
# =============================================================================


class HealthService:
    """Service class for health check operations."""

    def __init__(self, version: str = "0.1.0"):
        self._version = version
        self._pipeline_ready = False
        self._corpus_loaded = False

    def check_health(self) -> dict[str, Any]:
        return {
            "status": "healthy",
            "version": self._version,
            "service": SERVICE_NAME,
        }

    def check_readiness(self) -> tuple[dict[str, Any], bool]:
        """Check if the service can serve remote searches.

        Returns:
            Tuple of (readiness dict, is_ready bool)
        """
        checks = {
            "pipeline_ready": self._pipeline_ready,
            "corpus_loaded": self._corpus_loaded,
        }
        # The local corpus only backs degraded answers; it does not gate readiness.
        is_ready = self._pipeline_ready
        result: dict[str, Any] = {
            "status": "ready" if is_ready else "not_ready",
            "checks": checks,
        }
        return result, is_ready

    def set_pipeline_ready(self, ready: bool) -> None:
        self._pipeline_ready = ready

    def set_corpus_loaded(self, loaded: bool) -> None:
        self._corpus_loaded = loaded

    def set_version(self, version: str) -> None:
        self._version = version


_health_service = HealthService()


def get_health_service() -> HealthService:
    """Get health service instance."""
    return _health_service


# =============================================================================
# Endpoints
# =============================================================================


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Health Check",
    description="Basic health check endpoint for liveness probe",
)
async def health_check() -> HealthResponse:
    service = get_health_service()
    data = service.check_health()
    logger.debug("health_check", status=data["status"])
    return HealthResponse(**data)


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Service is ready"},
        503: {"description": "Service is not ready"},
    },
    summary="Readiness Check",
    description="Readiness check endpoint for readiness probe",
)
async def readiness_check() -> JSONResponse:
    """Readiness check endpoint.

    Returns:
        200 if ready, 503 if not ready
    """
    service = get_health_service()
    data, is_ready = service.check_readiness()

    status_code = status.HTTP_200_OK if is_ready else status.HTTP_503_SERVICE_UNAVAILABLE

    logger.debug("readiness_check", status=data["status"], is_ready=is_ready)
    return JSONResponse(content=data, status_code=status_code)
