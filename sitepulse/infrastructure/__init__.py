# ==============================================================================
# Infrastructure Adapters
# ==============================================================================
"""
Concrete adapters for the event store (ports-and-adapters architecture).

This module contains:
- repositories/ - EventRepository implementations (in-memory SQLite)
- persistence.py - Periodic persistence and store lifecycle ownership
"""

from sitepulse.infrastructure.persistence import PeriodicPersister, StoreLifecycle
from sitepulse.infrastructure.repositories import SQLiteEventRepository

__all__ = [
    "PeriodicPersister",
    "SQLiteEventRepository",
    "StoreLifecycle",
]
