# ==============================================================================
# Tests for SQLiteEventRepository (sqlite.py)
# ==============================================================================
"""
Tests for the in-memory event store: append, filtered queries, first-seen
lookup, purge and connection handling.
"""

from datetime import timedelta

import pytest

from sitepulse.core.models import NewVisitEvent
from sitepulse.infrastructure.repositories import SQLiteEventRepository
from tests.conftest import NOW


# ==============================================================================
# Append
# ==============================================================================


class TestAppend:
    """Tests for append() and id assignment."""

    def test_ids_increase_in_append_order(self, add_event):
        ids = [add_event("u1", f"/p{i}") for i in range(5)]
        assert ids == sorted(ids)
        assert len(set(ids)) == 5

    def test_fields_round_trip(self, store):
        event_id = store.append(
            NewVisitEvent(
                timestamp=NOW,
                visitor_id="u1",
                client_address="203.0.113.7",
                client_signature="curl/8.0",
                url="/pricing?plan=pro",
                referrer="https://www.google.com/",
                event_type="click",
                meta_data='{"button": "buy"}',
            )
        )

        (event,) = store.query()
        assert event.id == event_id
        assert event.timestamp == NOW
        assert event.visitor_id == "u1"
        assert event.client_address == "203.0.113.7"
        assert event.client_signature == "curl/8.0"
        assert event.url == "/pricing?plan=pro"
        assert event.referrer == "https://www.google.com/"
        assert event.event_type == "click"
        assert event.meta_data == '{"button": "buy"}'

    def test_missing_fields_stored_as_null(self, store):
        store.append(NewVisitEvent())

        (event,) = store.query()
        assert event.visitor_id is None
        assert event.url is None
        assert event.referrer is None
        assert event.event_type == "pageview"

    def test_timestamp_assigned_when_absent(self, store):
        store.append(NewVisitEvent(visitor_id="u1", url="/"))

        (event,) = store.query()
        assert event.timestamp.tzinfo is not None

    def test_sql_metacharacters_stored_literally(self, store):
        url = "/x'); DROP TABLE visits; --"
        store.append(NewVisitEvent(timestamp=NOW, visitor_id="u1", url=url))

        assert store.count() == 1
        assert store.query()[0].url == url


# ==============================================================================
# Query
# ==============================================================================


class TestQuery:
    """Tests for query() filters and ordering."""

    def test_default_order_is_append_order(self, add_event, store):
        """Events come back in id order even when timestamps are out of order."""
        first = add_event("u1", "/late", minutes_ago=1)
        second = add_event("u1", "/early", minutes_ago=30)

        assert [e.id for e in store.query()] == [first, second]

    def test_time_order_breaks_ties_by_id(self, add_event, store):
        a = add_event("u1", "/a", minutes_ago=5)
        b = add_event("u1", "/b", minutes_ago=5)
        c = add_event("u1", "/c", minutes_ago=10)

        assert [e.id for e in store.query(order="time")] == [c, a, b]
        assert [e.id for e in store.query(order="time", descending=True)] == [b, a, c]

    def test_bounds_are_inclusive(self, add_event, store):
        add_event("u1", "/before", minutes_ago=11)
        add_event("u1", "/start", minutes_ago=10)
        add_event("u1", "/end", minutes_ago=0)

        events = store.query(since=NOW - timedelta(minutes=10), until=NOW)
        assert [e.url for e in events] == ["/start", "/end"]

    def test_require_filters_null_fields(self, add_event, store):
        add_event("u1", "/a")
        add_event(None, "/b")
        add_event("u2", None)

        events = store.query(require=("visitor_id", "url"))
        assert [e.url for e in events] == ["/a"]

    def test_require_unknown_field_rejected(self, store):
        with pytest.raises(ValueError):
            store.query(require=("event_type",))

    def test_limit(self, add_event, store):
        for i in range(5):
            add_event("u1", f"/p{i}", minutes_ago=i)

        events = store.query(order="time", descending=True, limit=2)
        assert [e.url for e in events] == ["/p0", "/p1"]

    def test_unknown_order_rejected(self, store):
        with pytest.raises(ValueError):
            store.query(order="url")

    def test_empty_store(self, store):
        assert store.query() == []
        assert store.count() == 0


# ==============================================================================
# First seen
# ==============================================================================


class TestFirstSeen:
    """Tests for the whole-ledger first-seen lookup."""

    def test_earliest_timestamp_per_visitor(self, add_event, store):
        add_event("u1", "/a", minutes_ago=5)
        add_event("u1", "/b", minutes_ago=50)
        add_event("u2", "/a", minutes_ago=1)
        add_event(None, "/a", minutes_ago=100)

        first = store.first_seen()
        assert first == {
            "u1": NOW - timedelta(minutes=50),
            "u2": NOW - timedelta(minutes=1),
        }


# ==============================================================================
# Purge
# ==============================================================================


class TestPurge:
    """Tests for purge_all()."""

    def test_purge_removes_everything(self, add_event, store):
        for i in range(3):
            add_event("u1", f"/p{i}")

        assert store.purge_all() == 3
        assert store.count() == 0
        assert store.query() == []

    def test_ids_not_reused_after_purge(self, add_event, store):
        last = add_event("u1", "/a")
        store.purge_all()

        assert add_event("u1", "/b") > last


# ==============================================================================
# Connection handling
# ==============================================================================


class TestConnection:
    """Tests for connection state and configuration."""

    def test_requires_connect(self):
        repo = SQLiteEventRepository()
        with pytest.raises(RuntimeError):
            repo.count()

    def test_invalid_table_name_rejected(self):
        with pytest.raises(ValueError):
            SQLiteEventRepository(table_name="visits; DROP TABLE x")

    def test_custom_table_name(self):
        repo = SQLiteEventRepository(table_name="page_hits")
        repo.connect()
        try:
            repo.append(NewVisitEvent(timestamp=NOW, url="/"))
            assert repo.count() == 1
            assert repo.table_name == "page_hits"
        finally:
            repo.close()

    def test_snapshot_yields_store(self, store):
        with store.snapshot() as snap:
            assert snap.count() == 0

    def test_from_settings(self, settings):
        repo = SQLiteEventRepository.from_settings(settings)
        assert repo.data_file == settings.store.data_file_path
        assert repo.table_name == "visits"
