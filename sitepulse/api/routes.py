# ==============================================================================
# HTTP Routes
# ==============================================================================
"""
Endpoints for collection, reporting and data management.

All endpoints are synchronous and run in FastAPI's threadpool; the store
serializes access internally. Failures are logged with a traceback and
answered with a generic 500, never with a partial payload.
"""

import base64
import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from sitepulse.base.repositories import EventRepository
from sitepulse.core.aggregation import AggregationEngine
from sitepulse.core.errors import InvalidRangeError, StoreError
from sitepulse.core.flow import SessionFlowBuilder
from sitepulse.core.ingestion import IngestionService, client_address_from
from sitepulse.core.models import FlowGraph, StatsReport, VisitorListing
from sitepulse.core.visitors import list_recent_visitors
from sitepulse.utils.config import Settings
from sitepulse.utils.versions import get_sitepulse_version

from sitepulse.api.dependencies import (
    get_app_settings,
    get_engine,
    get_flow_builder,
    get_ingestion,
    get_store,
    verify_purge_token,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# 1x1 transparent GIF
TRANSPARENT_GIF = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Internal server error",
    )


# ==============================================================================
# Collection
# ==============================================================================


@router.api_route("/collect", methods=["GET", "POST"])
def collect(
    request: Request,
    ingestion: Annotated[IngestionService, Depends(get_ingestion)],
) -> Response:
    """
    Record one page-visit event and answer with a transparent pixel.

    Parameters are read from the query string for both GET (image beacon)
    and POST (navigator.sendBeacon). Missing parameters are stored as null.
    """
    peer = request.client.host if request.client else None
    try:
        ingestion.record(
            request.query_params,
            client_address=client_address_from(request.headers, peer),
            client_signature=request.headers.get("user-agent"),
        )
    except StoreError:
        logger.exception("Error collecting event")
        raise _internal_error()

    return Response(content=TRANSPARENT_GIF, media_type="image/gif", headers=NO_CACHE_HEADERS)


# ==============================================================================
# Reports
# ==============================================================================


@router.get("/api/stats", response_model=StatsReport)
def stats(
    engine: Annotated[AggregationEngine, Depends(get_engine)],
    range_name: Annotated[
        str | None, Query(alias="range", description="today, week, month, all or custom")
    ] = None,
    start: Annotated[str | None, Query(description="Custom range start (ISO date/time)")] = None,
    end: Annotated[str | None, Query(description="Custom range end (ISO date/time)")] = None,
) -> StatsReport:
    """Full analytics report for a time range."""
    try:
        return engine.report(range_name, start, end)
    except InvalidRangeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreError:
        logger.exception("Error computing stats")
        raise _internal_error()


@router.get("/api/flow", response_model=FlowGraph)
def flow(
    settings: Annotated[Settings, Depends(get_app_settings)],
    builder: Annotated[SessionFlowBuilder, Depends(get_flow_builder)],
    layers: Annotated[int | None, Query(description="Session depth, clamped to 1-10")] = None,
) -> FlowGraph:
    """Layered navigation graph for a Sankey chart."""
    if layers is None:
        layers = settings.analytics.flow_default_layers
    try:
        return builder.build(layers)
    except StoreError:
        logger.exception("Error building flow graph")
        raise _internal_error()


@router.get("/api/visitors", response_model=VisitorListing)
def visitors(
    settings: Annotated[Settings, Depends(get_app_settings)],
    store: Annotated[EventRepository, Depends(get_store)],
    limit: Annotated[int | None, Query(description="Number of events, clamped to 1-100")] = None,
) -> VisitorListing:
    """Most recent events with device details and their distinct addresses."""
    if limit is None:
        limit = settings.analytics.visitors_default_limit
    try:
        return list_recent_visitors(store, limit)
    except StoreError:
        logger.exception("Error listing visitors")
        raise _internal_error()


# ==============================================================================
# Data Management
# ==============================================================================


@router.delete("/api/data", dependencies=[Depends(verify_purge_token)])
def purge_data(store: Annotated[EventRepository, Depends(get_store)]) -> dict:
    """Erase every event and persist the empty store immediately."""
    try:
        deleted = store.purge_all()
    except StoreError:
        logger.exception("Error purging data")
        raise _internal_error()

    logger.info("All data purged via API (%d events)", deleted)
    try:
        store.persist()
    except StoreError:
        # The periodic persister writes the empty store on its next run
        logger.exception("Persist after purge failed")
    return {"status": "ok", "deleted": deleted}


@router.get("/health")
def health(store: Annotated[EventRepository, Depends(get_store)]) -> dict:
    return {"status": "ok", "events": store.count(), "version": get_sitepulse_version()}
