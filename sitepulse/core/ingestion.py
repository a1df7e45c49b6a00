# ==============================================================================
# Ingestion Path
# ==============================================================================
"""
Turn one collection request into one stored event.

Collection is fire-and-forget on the client side: there is no
acknowledgment, no retry and no dedup key, so every accepted request is
appended exactly as received. Missing parameters are never an error.
"""

import logging
from collections.abc import Mapping

from sitepulse.base.repositories import EventRepository
from sitepulse.core.models import CollectParams

logger = logging.getLogger(__name__)


def client_address_from(headers: Mapping[str, str], peer: str | None) -> str | None:
    """
    Best-effort client address.

    Uses the first entry of X-Forwarded-For when present, otherwise the
    transport-level peer address.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return peer or None


class IngestionService:
    """Validates collection parameters and appends them to the store."""

    def __init__(self, store: EventRepository):
        self._store = store

    def record(
        self,
        params: CollectParams | Mapping[str, str],
        client_address: str | None = None,
        client_signature: str | None = None,
    ) -> int:
        """
        Append one event.

        Args:
            params: Parsed CollectParams or the raw query parameters
            client_address: Origin address of the request
            client_signature: User-Agent header value

        Returns:
            Id of the stored event
        """
        if not isinstance(params, CollectParams):
            params = CollectParams.model_validate(dict(params))
        event = params.to_event(
            client_address=client_address,
            client_signature=client_signature or None,
        )
        return self._store.append(event)
