"""HTTP routers for the Dua Search Service."""
from dua_search.api.health import router as health_router
from dua_search.api.search import search_router

__all__ = ["health_router", "search_router"]
