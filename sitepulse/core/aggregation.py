# ==============================================================================
# Aggregation Engine - Report Computation
# ==============================================================================
"""
Stateless computation of the analytics report for a time range.

Every breakdown is computed in a single pass over the events in the
requested range. Two metrics deliberately look outside it:

- realtime visitors and the minute trend use the trailing 5 and 60 minutes
  before `now`, whatever the range
- new vs. returning compares each visitor's first-ever event (whole ledger)
  against [range.start, now]; a visitor is "new" when first seen inside that
  window and "returning" otherwise, even if all of its events fall in range

All reads happen inside store.snapshot(), so one report reflects one state
of the ledger. Given the same store contents, range and `now`, compute()
returns an identical report.

Rankings are by count descending; equal counts keep first-seen (id) order.
"""

from collections import Counter
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, tzinfo

from sitepulse.base.repositories import EventRepository
from sitepulse.core.channels import classify_channel
from sitepulse.core.device import classify
from sitepulse.core.models import (
    ChannelBreakdown,
    DeviceInfo,
    RankedCount,
    StatsReport,
    TrendPoint,
    VisitEvent,
)
from sitepulse.core.time_range import TimeRange, resolve_range, resolve_timezone, utc_now

REALTIME_WINDOW = timedelta(minutes=5)
MINUTE_TREND_WINDOW = timedelta(minutes=60)

TOP_PAGES_LIMIT = 10
TOP_REFERRERS_LIMIT = 10
ENTRY_EXIT_LIMIT = 5

MINUTE_FORMAT = "%Y-%m-%d %H:%M"
HOUR_FORMAT = "%H"
DAY_FORMAT = "%Y-%m-%d"


def ranked(values: Iterable[str], limit: int | None = None) -> list[RankedCount]:
    """Count values and rank them; ties keep first-seen order."""
    return [
        RankedCount(value=value, count=count)
        for value, count in Counter(values).most_common(limit)
    ]


def trend(counts: Counter) -> list[TrendPoint]:
    """Sparse, ascending time buckets."""
    return [TrendPoint(bucket=bucket, count=count) for bucket, count in sorted(counts.items())]


class AggregationEngine:
    """
    Computes StatsReport payloads from an EventRepository.

    Args:
        store: Event repository to read from
        tz: Display timezone for "today" and the hour/day/minute buckets;
            defaults to the server's local zone
        now_func: Clock, injectable for tests
    """

    def __init__(
        self,
        store: EventRepository,
        tz: tzinfo | None = None,
        now_func: Callable[[], datetime] | None = None,
    ):
        self._store = store
        self._tz = tz or resolve_timezone()
        self._now = now_func or utc_now

    @property
    def tz(self) -> tzinfo:
        return self._tz

    def report(
        self, name: str | None = None, start: str | None = None, end: str | None = None
    ) -> StatsReport:
        """Resolve a range selector and compute its report with one clock reading."""
        now = self._now()
        time_range = resolve_range(name, start, end, now=now, tz=self._tz)
        return self.compute(time_range, now=now)

    def compute(self, time_range: TimeRange, now: datetime | None = None) -> StatsReport:
        """
        Compute the full report for a resolved range.

        Args:
            time_range: Inclusive range to report on
            now: Reference time for the trailing windows and the
                 new-visitor window (defaults to the engine clock)
        """
        now = now or self._now()

        with self._store.snapshot() as store:
            events = store.query(since=time_range.start, until=time_range.end)
            recent = store.query(since=now - MINUTE_TREND_WINDOW, until=now)
            first_seen = store.first_seen()

        period_unit = "hour" if time_range.name == "today" else "day"
        period_format = HOUR_FORMAT if period_unit == "hour" else DAY_FORMAT

        visitors: set[str] = set()
        period_counts: Counter = Counter()
        pages: list[str] = []
        referrers: list[str] = []
        devices: list[str] = []
        browsers: list[str] = []
        systems: list[str] = []
        channels: Counter = Counter()
        entries: dict[str, VisitEvent] = {}
        exits: dict[str, VisitEvent] = {}
        device_cache: dict[str | None, DeviceInfo] = {}

        for event in events:
            if event.visitor_id is not None:
                visitors.add(event.visitor_id)
            period_counts[event.timestamp.astimezone(self._tz).strftime(period_format)] += 1

            if event.url is not None:
                pages.append(event.url)
            if event.referrer and event.referrer.strip():
                referrers.append(event.referrer)

            device = device_cache.get(event.client_signature)
            if device is None:
                device = device_cache[event.client_signature] = classify(event.client_signature)
            devices.append(device.type)
            browsers.append(device.browser)
            systems.append(device.os)

            channels[classify_channel(event.referrer).value] += 1

            if event.visitor_id is not None and event.url is not None:
                key = (event.timestamp, event.id)
                entry = entries.get(event.visitor_id)
                if entry is None or key < (entry.timestamp, entry.id):
                    entries[event.visitor_id] = event
                exit_ = exits.get(event.visitor_id)
                if exit_ is None or key > (exit_.timestamp, exit_.id):
                    exits[event.visitor_id] = event

        realtime_since = now - REALTIME_WINDOW
        realtime = {
            e.visitor_id
            for e in recent
            if e.visitor_id is not None and e.timestamp >= realtime_since
        }
        minute_counts = Counter(
            e.timestamp.astimezone(self._tz).strftime(MINUTE_FORMAT) for e in recent
        )

        new_visitors = sum(1 for first in first_seen.values() if time_range.start <= first <= now)

        return StatsReport(
            range=time_range.to_info(),
            generated_at=now,
            total_events=len(events),
            unique_visitors=len(visitors),
            realtime_visitors=len(realtime),
            new_visitors=new_visitors,
            returning_visitors=len(first_seen) - new_visitors,
            minute_trend=trend(minute_counts),
            period_unit=period_unit,
            period_trend=trend(period_counts),
            top_pages=ranked(pages, TOP_PAGES_LIMIT),
            top_referrers=ranked(referrers, TOP_REFERRERS_LIMIT),
            devices=ranked(devices),
            browsers=ranked(browsers),
            operating_systems=ranked(systems),
            channels=ChannelBreakdown(**channels),
            entry_pages=ranked((e.url for e in entries.values()), ENTRY_EXIT_LIMIT),
            exit_pages=ranked((e.url for e in exits.values()), ENTRY_EXIT_LIMIT),
        )
