# ==============================================================================
# Base Abstract Classes
# ==============================================================================
"""
Abstract base classes defining the contracts of the ports-and-adapters layout.

Core logic (aggregation, flow, visitors, ingestion) depends only on these
ABCs; concrete adapters live in infrastructure/.
"""

from sitepulse.base.repositories import FILTERABLE_FIELDS, EventRepository

__all__ = [
    "EventRepository",
    "FILTERABLE_FIELDS",
]
