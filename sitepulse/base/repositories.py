# ==============================================================================
# Repository Abstract Base Class
# ==============================================================================
"""
Repository ABC for the visit event ledger.

This defines the "what" (append, query, purge, persist) not the "how".
Concrete implementations in infrastructure/ handle the specifics.

The ledger is append-only: events are never updated and are only ever
removed all at once by purge_all().
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import datetime
from typing import Literal

from sitepulse.core.models import NewVisitEvent, VisitEvent

# Event fields that query(require=...) may demand to be non-null
FILTERABLE_FIELDS = frozenset(
    {"visitor_id", "url", "referrer", "client_signature", "client_address"}
)


class EventRepository(ABC):
    """Repository for visit events."""

    @abstractmethod
    def connect(self, quarantine: bool = True) -> None:
        """
        Open the store, loading previously persisted events.

        With quarantine=False, persisted data that cannot be loaded raises
        StoreError instead of being set aside.
        """
        ...

    @abstractmethod
    def append(self, event: NewVisitEvent) -> int:
        """
        Append one event.

        Args:
            event: Event to store; its timestamp is assigned when None

        Returns:
            The id assigned to the event
        """
        ...

    @abstractmethod
    def query(
        self,
        since: datetime | None = None,
        until: datetime | None = None,
        require: Iterable[str] = (),
        order: Literal["id", "time"] = "id",
        descending: bool = False,
        limit: int | None = None,
    ) -> list[VisitEvent]:
        """
        Read events.

        Args:
            since: Inclusive lower timestamp bound
            until: Inclusive upper timestamp bound
            require: Field names (from FILTERABLE_FIELDS) that must be non-null
            order: "id" for append order, "time" for (timestamp, id) order
            descending: Reverse the ordering
            limit: Maximum number of events to return

        Returns:
            Matching events
        """
        ...

    @abstractmethod
    def first_seen(self) -> dict[str, datetime]:
        """Earliest event timestamp per visitor over the whole ledger."""
        ...

    @abstractmethod
    def count(self) -> int:
        """Total number of stored events."""
        ...

    @abstractmethod
    def purge_all(self) -> int:
        """
        Delete every event in one atomic operation.

        Returns:
            Number of events deleted
        """
        ...

    @abstractmethod
    def persist(self) -> None:
        """Write a point-in-time snapshot of the store to durable storage."""
        ...

    @abstractmethod
    def snapshot(self) -> AbstractContextManager["EventRepository"]:
        """Context in which consecutive reads observe one consistent state."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the store and release resources (does not persist)."""
        ...
