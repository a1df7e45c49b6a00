# ==============================================================================
# Recent Visitors Listing
# ==============================================================================
"""
Most recent events enriched with device classification, plus the distinct
client addresses among them (input for an external geo-lookup).
"""

from sitepulse.base.repositories import EventRepository
from sitepulse.core.device import classify
from sitepulse.core.models import VisitorEntry, VisitorListing
from sitepulse.core.time_range import clamp

MIN_LIMIT = 1
MAX_LIMIT = 100
DEFAULT_LIMIT = 20


def clamp_limit(value: int | None) -> int:
    if value is None:
        return DEFAULT_LIMIT
    return clamp(value, MIN_LIMIT, MAX_LIMIT)


def list_recent_visitors(store: EventRepository, limit: int | None = DEFAULT_LIMIT) -> VisitorListing:
    """
    List the most recent events, newest first.

    Args:
        store: Event repository to read from
        limit: Number of events; clamped to [1, 100]
    """
    limit = clamp_limit(limit)
    events = store.query(order="time", descending=True, limit=limit)

    visitors = [
        VisitorEntry(**event.model_dump(), device=classify(event.client_signature))
        for event in events
    ]
    addresses = list(dict.fromkeys(e.client_address for e in events if e.client_address))

    return VisitorListing(visitors=visitors, addresses=addresses, limit=limit)
