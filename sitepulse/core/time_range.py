# ==============================================================================
# Time Ranges and Timestamp Format
# ==============================================================================
"""
Resolution of report range selectors and the store's timestamp format.

Range selectors:
- today:  local midnight -> now
- week:   now - 7 days -> now
- month:  now - 1 calendar month -> now
- all:    Unix epoch -> now
- custom: explicit start/end (ISO date or datetime)

All bounds are inclusive and returned as timezone-aware UTC datetimes.
"Local" means the display timezone: the configured IANA zone, or the
server's local zone when none is configured.

Timestamps are stored as fixed-width UTC text with millisecond precision
(``2026-10-17T09:30:00.123Z``) so that text order equals time order.
"""

import calendar
import time
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from sitepulse.core.errors import InvalidRangeError
from sitepulse.core.models import RangeInfo

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

RANGE_NAMES = ("today", "week", "month", "all", "custom")
DEFAULT_RANGE = "today"


# ==============================================================================
# Timestamp format
# ==============================================================================


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the stored format. Naive values are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    value = value.astimezone(UTC)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(text: str) -> datetime:
    """Parse a stored (or any ISO-8601) timestamp into an aware UTC datetime."""
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def utc_now() -> datetime:
    return datetime.now(UTC)


# ==============================================================================
# Timezones
# ==============================================================================


class LocalTimezone(tzinfo):
    """
    The server's local zone, following its daylight-saving rules.

    Offsets come from the C library for each instant, so a long-running
    process keeps correct local days across a DST change.
    """

    def fromutc(self, dt: datetime) -> datetime:
        stamp = calendar.timegm(dt.replace(tzinfo=None).timetuple())
        local = time.localtime(stamp)
        shifted = datetime(*local[:6], microsecond=dt.microsecond, tzinfo=self)
        # Second pass through an ambiguous hour
        earlier = time.localtime(stamp - 3600)
        if earlier.tm_isdst > local.tm_isdst:
            shifted = shifted.replace(fold=1)
        return shifted

    def utcoffset(self, dt: datetime | None) -> timedelta:
        return timedelta(seconds=self._local(dt).tm_gmtoff)

    def dst(self, dt: datetime | None) -> timedelta:
        local = self._local(dt)
        if local.tm_isdst > 0:
            return timedelta(seconds=local.tm_gmtoff + time.timezone)
        return timedelta(0)

    def tzname(self, dt: datetime | None) -> str:
        return self._local(dt).tm_zone

    def _local(self, dt: datetime | None) -> time.struct_time:
        if dt is None:
            return time.localtime()
        fields = (dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)
        # Wall times that exist once, twice (fold) or never (gap)
        stamps = []
        for isdst in (0, 1):
            try:
                stamp = time.mktime((*fields, 0, 0, isdst))
            except OverflowError:
                continue
            if time.localtime(stamp)[:6] == fields and stamp not in stamps:
                stamps.append(stamp)
        stamps.sort()
        if not stamps:
            return time.localtime(time.mktime((*fields, 0, 0, -1)))
        return time.localtime(stamps[min(dt.fold, len(stamps) - 1)])

    def __repr__(self) -> str:
        return "LocalTimezone()"


def resolve_timezone(name: str | None = None) -> tzinfo:
    """
    Resolve the display timezone.

    Args:
        name: IANA zone name, or None for the server's local zone

    Raises:
        ValueError: If the zone name is unknown
    """
    if name:
        try:
            return ZoneInfo(name)
        except ZoneInfoNotFoundError as e:
            raise ValueError(f"Unknown timezone: {name}") from e
    return LocalTimezone()


def local_midnight(now: datetime, tz: tzinfo) -> datetime:
    """Start of the current day in the display timezone, as UTC."""
    local = now.astimezone(tz)
    return local.replace(hour=0, minute=0, second=0, microsecond=0).astimezone(UTC)


def subtract_month(value: datetime) -> datetime:
    """Same wall-clock time one calendar month earlier, day clamped to month length."""
    year, month = (value.year, value.month - 1) if value.month > 1 else (value.year - 1, 12)
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


# ==============================================================================
# Ranges
# ==============================================================================


@dataclass(frozen=True)
class TimeRange:
    """An inclusive [start, end] window, both bounds aware UTC datetimes."""

    name: str
    start: datetime
    end: datetime

    def to_info(self) -> RangeInfo:
        return RangeInfo(name=self.name, start=self.start, end=self.end)


def _parse_bound(text: str, tz: tzinfo, end_of_day: bool) -> datetime:
    """Parse an explicit range bound; date-only ends cover the whole day."""
    text = text.strip()
    try:
        if len(text) == 10:
            day = date.fromisoformat(text)
            value = datetime(day.year, day.month, day.day, tzinfo=tz)
            if end_of_day:
                value += timedelta(days=1, microseconds=-1)
        else:
            value = datetime.fromisoformat(text)
            if value.tzinfo is None:
                value = value.replace(tzinfo=tz)
    except ValueError as e:
        raise InvalidRangeError(f"Invalid date/time: '{text}'") from e
    return value.astimezone(UTC)


def resolve_range(
    name: str | None = None,
    start: str | None = None,
    end: str | None = None,
    now: datetime | None = None,
    tz: tzinfo | None = None,
) -> TimeRange:
    """
    Resolve a range selector into concrete bounds.

    Args:
        name: One of RANGE_NAMES; None or "" means "today"
        start: Explicit start for "custom"
        end: Explicit end for "custom"
        now: Reference time (defaults to the current time)
        tz: Display timezone (defaults to the server's local zone)

    Returns:
        Resolved TimeRange

    Raises:
        InvalidRangeError: Unknown selector, missing or unparsable custom
                           bounds, or start after end
    """
    now = (now or utc_now()).astimezone(UTC)
    tz = tz or resolve_timezone()
    name = (name or DEFAULT_RANGE).strip().lower()

    if name == "today":
        return TimeRange(name, local_midnight(now, tz), now)
    if name == "week":
        return TimeRange(name, now - timedelta(days=7), now)
    if name == "month":
        return TimeRange(name, subtract_month(now), now)
    if name == "all":
        return TimeRange(name, EPOCH, now)
    if name == "custom":
        if not start or not end:
            raise InvalidRangeError("Custom range requires both 'start' and 'end'")
        lower = _parse_bound(start, tz, end_of_day=False)
        upper = _parse_bound(end, tz, end_of_day=True)
        if lower > upper:
            raise InvalidRangeError("Custom range 'start' must not be after 'end'")
        return TimeRange(name, lower, upper)

    raise InvalidRangeError(
        f"Unknown range '{name}'. Use one of: {', '.join(RANGE_NAMES)}"
    )


def clamp(value: int, low: int, high: int) -> int:
    """Clamp an integer parameter into [low, high]."""
    return max(low, min(high, value))
