# ==============================================================================
# FastAPI Dependencies
# ==============================================================================
"""
Request-scoped accessors for the services owned by the application.

Every service is created once in the lifespan handler and stored on
app.state; endpoints receive them through Depends() so that they never
construct or look up a store on their own.
"""

import hmac
import logging

from fastapi import HTTPException, Query, Request, status

from sitepulse.base.repositories import EventRepository
from sitepulse.core.aggregation import AggregationEngine
from sitepulse.core.flow import SessionFlowBuilder
from sitepulse.core.ingestion import IngestionService
from sitepulse.utils.config import Settings

logger = logging.getLogger(__name__)


def _from_state(request: Request, name: str):
    service = getattr(request.app.state, name, None)
    if service is None:
        logger.error("Service '%s' is not initialized", name)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unavailable",
        )
    return service


def get_app_settings(request: Request) -> Settings:
    return _from_state(request, "settings")


def get_store(request: Request) -> EventRepository:
    return _from_state(request, "store")


def get_ingestion(request: Request) -> IngestionService:
    return _from_state(request, "ingestion")


def get_engine(request: Request) -> AggregationEngine:
    return _from_state(request, "engine")


def get_flow_builder(request: Request) -> SessionFlowBuilder:
    return _from_state(request, "flow_builder")


def verify_purge_token(
    request: Request,
    confirm: str | None = Query(None, description="Literal confirmation token"),
) -> None:
    """
    Reject purge requests that do not carry the exact confirmation token.

    Raises:
        HTTPException: 400 when the token is missing or wrong
    """
    expected = get_app_settings(request).analytics.purge_token
    if not confirm or not hmac.compare_digest(confirm.encode(), expected.encode()):
        logger.warning("Purge rejected: missing or invalid confirmation token")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Purge requires the confirmation token in the 'confirm' parameter",
        )
