"""API routers."""

from .orders import router as orders_router
from .query import router as query_router
from .relevance import router as relevance_router
from .schema import router as schema_router

__all__ = ["orders_router", "query_router", "relevance_router", "schema_router"]
