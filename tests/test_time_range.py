# ==============================================================================
# Tests for Time Ranges (time_range.py)
# ==============================================================================
"""
Tests for range selector resolution and the stored timestamp format.
"""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from sitepulse.core.errors import InvalidRangeError
from sitepulse.core.time_range import (
    EPOCH,
    LocalTimezone,
    format_timestamp,
    local_midnight,
    parse_timestamp,
    resolve_range,
    resolve_timezone,
    subtract_month,
)
from tests.conftest import NOW

# Fixed offset zone so "today" differs from the UTC day
UTC_MINUS_5 = timezone(timedelta(hours=-5))


# ==============================================================================
# Named ranges
# ==============================================================================


class TestNamedRanges:
    """Tests for today/week/month/all."""

    def test_today_starts_at_local_midnight(self):
        r = resolve_range("today", now=NOW, tz=UTC)
        assert r.start == datetime(2024, 6, 15, tzinfo=UTC)
        assert r.end == NOW

    def test_today_uses_display_timezone(self):
        # 12:00 UTC is 07:00 in UTC-5, so local midnight is 05:00 UTC
        r = resolve_range("today", now=NOW, tz=UTC_MINUS_5)
        assert r.start == datetime(2024, 6, 15, 5, tzinfo=UTC)

    def test_default_is_today(self):
        assert resolve_range(None, now=NOW, tz=UTC).name == "today"
        assert resolve_range("", now=NOW, tz=UTC).name == "today"

    def test_week(self):
        r = resolve_range("week", now=NOW, tz=UTC)
        assert r.start == NOW - timedelta(days=7)
        assert r.end == NOW

    def test_month_is_calendar_month(self):
        r = resolve_range("month", now=NOW, tz=UTC)
        assert r.start == datetime(2024, 5, 15, 12, tzinfo=UTC)

    def test_all_starts_at_epoch(self):
        assert resolve_range("all", now=NOW, tz=UTC).start == EPOCH

    def test_names_are_case_insensitive(self):
        assert resolve_range("WEEK", now=NOW, tz=UTC).name == "week"

    def test_today_within_week(self):
        today = resolve_range("today", now=NOW, tz=UTC)
        week = resolve_range("week", now=NOW, tz=UTC)
        assert week.start <= today.start and today.end == week.end


# ==============================================================================
# Custom ranges
# ==============================================================================


# ==============================================================================
# Server local zone
# ==============================================================================


class TestLocalTimezone:
    """The unconfigured display zone follows the server's DST rules."""

    def test_unconfigured_zone_is_local(self):
        assert isinstance(resolve_timezone(None), LocalTimezone)
        assert isinstance(resolve_timezone(""), LocalTimezone)

    def test_midnight_on_both_sides_of_dst(self, eastern_local_time):
        tz = resolve_timezone()
        summer = local_midnight(datetime(2026, 10, 17, 12, tzinfo=UTC), tz)
        winter = local_midnight(datetime(2026, 12, 15, 12, tzinfo=UTC), tz)

        assert summer == datetime(2026, 10, 17, 4, tzinfo=UTC)
        assert winter == datetime(2026, 12, 15, 5, tzinfo=UTC)

    def test_today_after_dst_ends(self, eastern_local_time):
        tz = resolve_timezone()
        r = resolve_range("today", now=datetime(2026, 12, 15, 12, tzinfo=UTC), tz=tz)
        assert r.start == datetime(2026, 12, 15, 5, tzinfo=UTC)

    def test_repeated_hour_round_trips(self, eastern_local_time):
        tz = resolve_timezone()
        # 01:30 happens twice on 2026-11-01: first EDT, then EST
        first = datetime(2026, 11, 1, 5, 30, tzinfo=UTC).astimezone(tz)
        second = datetime(2026, 11, 1, 6, 30, tzinfo=UTC).astimezone(tz)

        assert (first.hour, first.minute, first.fold) == (1, 30, 0)
        assert (second.hour, second.minute, second.fold) == (1, 30, 1)
        assert first.astimezone(UTC) == datetime(2026, 11, 1, 5, 30, tzinfo=UTC)
        assert second.astimezone(UTC) == datetime(2026, 11, 1, 6, 30, tzinfo=UTC)

    def test_unknown_zone_name(self):
        with pytest.raises(ValueError, match="Unknown timezone"):
            resolve_timezone("Mars/Olympus_Mons")


class TestCustomRange:
    """Tests for explicit start/end bounds."""

    def test_date_only_end_covers_whole_day(self):
        r = resolve_range("custom", "2024-06-01", "2024-06-01", now=NOW, tz=UTC)
        assert r.start == datetime(2024, 6, 1, tzinfo=UTC)
        assert r.end == datetime(2024, 6, 1, 23, 59, 59, 999999, tzinfo=UTC)

    def test_datetime_bounds(self):
        r = resolve_range(
            "custom", "2024-06-01T08:00:00Z", "2024-06-01T09:30:00+00:00", now=NOW, tz=UTC
        )
        assert r.start == datetime(2024, 6, 1, 8, tzinfo=UTC)
        assert r.end == datetime(2024, 6, 1, 9, 30, tzinfo=UTC)

    def test_naive_bounds_use_display_timezone(self):
        r = resolve_range("custom", "2024-06-01T00:00", "2024-06-02T00:00", now=NOW, tz=UTC_MINUS_5)
        assert r.start == datetime(2024, 6, 1, 5, tzinfo=UTC)

    @pytest.mark.parametrize(
        "start, end",
        [
            (None, "2024-06-01"),
            ("2024-06-01", None),
            ("not-a-date", "2024-06-01"),
            ("2024-06-02", "2024-06-01"),
        ],
    )
    def test_invalid_custom_range(self, start, end):
        with pytest.raises(InvalidRangeError):
            resolve_range("custom", start, end, now=NOW, tz=UTC)

    def test_unknown_name(self):
        with pytest.raises(InvalidRangeError, match="Unknown range"):
            resolve_range("fortnight", now=NOW, tz=UTC)

    def test_invalid_range_is_value_error(self):
        assert issubclass(InvalidRangeError, ValueError)


# ==============================================================================
# Helpers
# ==============================================================================


class TestTimestampFormat:
    """Tests for the stored timestamp text."""

    def test_fixed_width_utc_milliseconds(self):
        value = datetime(2024, 6, 15, 12, 0, 1, 123456, tzinfo=UTC)
        assert format_timestamp(value) == "2024-06-15T12:00:01.123Z"

    def test_converts_to_utc(self):
        value = datetime(2024, 6, 15, 7, 0, tzinfo=UTC_MINUS_5)
        assert format_timestamp(value) == "2024-06-15T12:00:00.000Z"

    def test_parse_round_trip(self):
        assert parse_timestamp(format_timestamp(NOW)) == NOW

    def test_text_order_matches_time_order(self):
        earlier = format_timestamp(datetime(2024, 6, 15, 9, 59, 59, 999000, tzinfo=UTC))
        later = format_timestamp(datetime(2024, 6, 15, 10, 0, tzinfo=UTC))
        assert earlier < later


class TestSubtractMonth:
    """Tests for subtract_month()."""

    def test_clamps_day(self):
        assert subtract_month(datetime(2024, 3, 31, tzinfo=UTC)) == datetime(2024, 2, 29, tzinfo=UTC)

    def test_wraps_year(self):
        assert subtract_month(datetime(2024, 1, 10, tzinfo=UTC)) == datetime(2023, 12, 10, tzinfo=UTC)
