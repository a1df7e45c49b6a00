# ==============================================================================
# FastAPI Application Factory
# ==============================================================================
"""
Build the FastAPI application and own the event store for its lifetime.

The lifespan handler is the single owner of the store:

    startup:  connect (load data file) -> start periodic persister
              -> build ingestion, aggregation and flow services on app.state
    shutdown: stop persister -> final persist -> close store
"""

import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from sitepulse.base.repositories import EventRepository
from sitepulse.core.aggregation import AggregationEngine
from sitepulse.core.flow import SessionFlowBuilder
from sitepulse.core.ingestion import IngestionService
from sitepulse.core.time_range import resolve_timezone
from sitepulse.infrastructure.persistence import StoreLifecycle
from sitepulse.infrastructure.repositories import SQLiteEventRepository
from sitepulse.utils.config import Settings, get_settings
from sitepulse.utils.versions import get_sitepulse_version

from sitepulse.api.routes import router

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    store: EventRepository | None = None,
    now_func: Callable[[], datetime] | None = None,
) -> FastAPI:
    """
    Create the SitePulse FastAPI application.

    Args:
        settings: Application settings (defaults to get_settings())
        store: Event repository to own; defaults to the configured SQLite
               store. The app connects and closes it.
        now_func: Clock for the aggregation engine, injectable for tests

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()
    store = store or SQLiteEventRepository.from_settings(settings)
    tz = resolve_timezone(settings.analytics.timezone)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        lifecycle = StoreLifecycle(store, settings.store.persist_interval_seconds)
        lifecycle.open()

        app.state.settings = settings
        app.state.store = store
        app.state.ingestion = IngestionService(store)
        app.state.engine = AggregationEngine(store, tz=tz, now_func=now_func)
        app.state.flow_builder = SessionFlowBuilder(store, settings.analytics.flow_edge_limit)
        logger.info("SitePulse started (events=%d, timezone=%s)", store.count(), tz)

        try:
            yield
        finally:
            logger.info("SitePulse shutting down")
            lifecycle.close()

    app = FastAPI(
        title="SitePulse",
        description="Self-hosted page-visit collection and analytics",
        version=get_sitepulse_version(),
        lifespan=lifespan,
    )
    app.include_router(router)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"},
        )

    return app
