# ==============================================================================
# Store Persistence and Lifecycle
# ==============================================================================
"""
Background persistence and the single owner of the event store lifecycle.

PeriodicPersister writes the store to durable storage on a fixed interval
from a daemon thread. StoreLifecycle ties the pieces together in the only
order that matters:

    open:  connect() -> start persister
    close: stop persister -> final persist() -> close()

Persist failures are logged and the loop keeps going; there are no retries.
"""

import logging
import threading

from sitepulse.base.repositories import EventRepository
from sitepulse.core.errors import StoreError

logger = logging.getLogger(__name__)


class PeriodicPersister:
    """
    Persist an EventRepository every `interval_seconds`.

    The persister only calls persist(); the repository is responsible for
    taking a consistent snapshot without blocking readers and writers for
    the duration of the disk write.
    """

    def __init__(self, store: EventRepository, interval_seconds: float = 10.0):
        """
        Initialize the persister.

        Args:
            store: Repository to persist
            interval_seconds: Seconds between persists (must be positive)
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._store = store
        self._interval = interval_seconds
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._persist_count = 0

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def persist_count(self) -> int:
        """Number of successful background persists."""
        return self._persist_count

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="sitepulse-persister", daemon=True
        )
        self._thread.start()
        logger.info("Periodic persister started (interval=%.1fs)", self._interval)

    def stop(self, timeout: float | None = 5.0) -> None:
        """Signal the loop to exit and wait for an in-flight persist to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning("Periodic persister did not stop within %.1fs", timeout)
            self._thread = None
        logger.info("Periodic persister stopped")

    def _run(self) -> None:
        while not self._stop.wait(self._interval):
            self.persist_once()

    def persist_once(self) -> bool:
        """Run one persist; failures are logged, not raised."""
        try:
            self._store.persist()
        except StoreError:
            logger.exception("Periodic persist failed")
            return False
        self._persist_count += 1
        return True


class StoreLifecycle:
    """
    Owns an event store from open to close.

    Usage:
        lifecycle = StoreLifecycle(store, interval_seconds=10)
        lifecycle.open()
        ...
        lifecycle.close()

    Also usable as a context manager.
    """

    def __init__(self, store: EventRepository, interval_seconds: float = 10.0):
        self.store = store
        self.persister = PeriodicPersister(store, interval_seconds)

    def open(self) -> EventRepository:
        """Connect the store and start background persistence."""
        self.store.connect()
        self.persister.start()
        return self.store

    def close(self) -> None:
        """Stop background persistence, flush once more, close the store."""
        self.persister.stop()
        try:
            self.store.persist()
            logger.info("Final persist complete")
        except StoreError:
            logger.exception("Final persist failed; events since the last persist are lost")
        finally:
            self.store.close()

    def __enter__(self) -> EventRepository:
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
