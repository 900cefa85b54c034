"""FastAPI application instance and startup hooks."""
from __future__ import annotations

from fastapi import Depends, FastAPI

from .core import get_settings
from .core.logger import configure_logging, get_logger, shutdown_logging
from .db.session import get_sessionmaker
from .relevance import TableRelevanceService
from .routers import orders_router, query_router, relevance_router, schema_router
from .routers.dependencies import get_relevance, get_text_to_sql, get_trading_service
from .schemas.relevance import HealthResponse
from .sql import TextToSQLService

LOGGER = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="Trading Insights", version="0.1.0")
    app.include_router(relevance_router)
    app.include_router(query_router)
    app.include_router(schema_router)
    app.include_router(orders_router)

    @app.on_event("startup")
    def start_services() -> None:
        configure_logging(settings.logging)
        backend = get_relevance().connect()
        LOGGER.info("Relevance backend selected: %s", backend)

        if not settings.database.seed_on_startup:
            return
        session = get_sessionmaker()()
        try:
            summary = get_trading_service().initialize(
                session, order_count=settings.database.seed_order_count
            )
            LOGGER.info(
                "Trading database ready (seeded=%s, orders=%s)", summary.seeded, summary.orders
            )
        except Exception:  # pragma: no cover - fail fast on startup issues
            LOGGER.exception("Failed to initialise the trading database")
            raise
        finally:
            session.close()

    @app.on_event("shutdown")
    def stop_services() -> None:
        get_relevance().close()
        LOGGER.info("Relevance service closed")
        shutdown_logging()

    @app.get("/health", response_model=HealthResponse)
    def health(
        relevance: TableRelevanceService = Depends(get_relevance),
        text_to_sql: TextToSQLService = Depends(get_text_to_sql),
    ) -> HealthResponse:
        return HealthResponse(
            status="ok",
            backend=relevance.backend_name,
            connected=relevance.connected,
            llm_configured=text_to_sql.configured,
        )

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()
