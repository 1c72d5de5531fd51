"""Tests for src.core.calendar_resolver - pure local-calendar arithmetic."""

import time
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from src.core.calendar_resolver import (
    WEEKDAYS,
    CalendarSnapshot,
    format_instant,
    format_local_date,
    next_weekday_dates,
    parse_local_date,
    resolve_month_phrase,
    resolve_this_weekday,
    start_of_local_day,
    timezone_snapshot,
)

NY = ZoneInfo("America/New_York")


# ---------------------------------------------------------------------------
# next_weekday_dates
# ---------------------------------------------------------------------------


class TestNextWeekdayDates:
    def test_returns_all_seven_lowercase_names(self):
        result = next_weekday_dates(date(2026, 1, 15))
        assert list(result) == list(WEEKDAYS)

    def test_gap_is_one_to_seven_days_and_nearest(self):
        start = date(2023, 12, 1)
        for offset in range(800):
            ref = start + timedelta(days=offset)
            for name, resolved in next_weekday_dates(ref).items():
                gap = (resolved - ref).days
                assert 1 <= gap <= 7
                assert WEEKDAYS[resolved.weekday()] == name
                # nearest: no earlier future day has the same weekday
                assert all(
                    WEEKDAYS[(ref + timedelta(days=d)).weekday()] != name
                    for d in range(1, gap)
                )

    def test_same_weekday_is_next_week(self):
        # 2025-03-12 is a Wednesday
        result = next_weekday_dates(date(2025, 3, 12))
        assert result["wednesday"] == date(2025, 3, 19)
        assert result["friday"] == date(2025, 3, 14)
        assert result["monday"] == date(2025, 3, 17)

    def test_year_boundary_dec_30(self):
        # 2025-12-30 is a Tuesday
        result = next_weekday_dates(date(2025, 12, 30))
        assert result["thursday"] == date(2026, 1, 1)
        assert result["wednesday"] == date(2025, 12, 31)

    def test_year_boundary_dec_31_same_weekday(self):
        # 2025-12-31 is a Wednesday
        result = next_weekday_dates(date(2025, 12, 31))
        assert result["wednesday"] == date(2026, 1, 7)

    def test_leap_day(self):
        # 2024-02-28 is a Wednesday
        result = next_weekday_dates(date(2024, 2, 28))
        assert result["thursday"] == date(2024, 2, 29)
        assert result["friday"] == date(2024, 3, 1)

    def test_uses_local_date_of_aware_instant(self):
        # 23:30 on Tuesday in New York is already Wednesday in UTC
        ref = datetime(2025, 12, 30, 23, 30, tzinfo=NY)
        assert next_weekday_dates(ref)["wednesday"] == date(2025, 12, 31)
        assert next_weekday_dates(ref.astimezone(timezone.utc))["wednesday"] == date(2026, 1, 7)

    def test_across_dst_start(self):
        # US DST starts Sunday 2026-03-08
        ref = datetime(2026, 3, 7, 23, 59, tzinfo=NY)
        assert next_weekday_dates(ref)["sunday"] == date(2026, 3, 8)
        assert next_weekday_dates(ref)["monday"] == date(2026, 3, 9)


# ---------------------------------------------------------------------------
# format / parse
# ---------------------------------------------------------------------------


class TestFormatParse:
    def test_format_zero_pads(self):
        assert format_local_date(date(2026, 1, 5)) == "2026-01-05"

    def test_format_uses_instant_local_date(self):
        late_la = datetime(2026, 1, 1, 23, 30, tzinfo=ZoneInfo("America/Los_Angeles"))
        assert format_local_date(late_la) == "2026-01-01"
        early_tokyo = datetime(2026, 1, 1, 0, 30, tzinfo=ZoneInfo("Asia/Tokyo"))
        assert format_local_date(early_tokyo) == "2026-01-01"

    def test_round_trip(self):
        d = date(2023, 1, 1)
        while d < date(2025, 1, 1):
            s = format_local_date(d)
            assert format_local_date(parse_local_date(s)) == s
            d += timedelta(days=1)

    @pytest.mark.parametrize("host_tz", ["America/Los_Angeles", "Pacific/Kiritimati", "UTC"])
    def test_parse_ignores_host_offset(self, monkeypatch, host_tz):
        monkeypatch.setenv("TZ", host_tz)
        time.tzset()
        try:
            assert parse_local_date("2026-03-08") == date(2026, 3, 8)
            assert format_local_date(parse_local_date("2024-02-29")) == "2024-02-29"
        finally:
            monkeypatch.undo()
            time.tzset()

    @pytest.mark.parametrize("bad", [
        "2026-13-01", "2026-02-30", "2026/01/01", "tomorrow", "",
        "2026-1-5", "26-01-05", "2026-01-05T00:00", "２０２６-01-05", "٢٠٢٦-٠١-٠٥",
    ])
    def test_parse_rejects_malformed(self, bad):
        with pytest.raises(ValueError):
            parse_local_date(bad)

    def test_format_instant_keeps_offset(self):
        dt = datetime(2026, 1, 15, 9, 0, 30, 123456, tzinfo=NY)
        assert format_instant(dt) == "2026-01-15T09:00:30-05:00"
        assert format_instant(datetime(2026, 1, 15, tzinfo=timezone.utc)).endswith("+00:00")


# ---------------------------------------------------------------------------
# Month / "this weekday" phrases
# ---------------------------------------------------------------------------


class TestResolveMonthPhrase:
    # Reference Wednesday 2025-03-12
    REF = date(2025, 3, 12)

    def test_mid_month_in_past_rolls_to_next_year(self):
        assert resolve_month_phrase(self.REF, "feb", "mid") == date(2026, 2, 15)

    def test_mid_month_ahead_stays_this_year(self):
        assert resolve_month_phrase(self.REF, "May", "mid") == date(2025, 5, 15)

    def test_next_month_name_is_next_year(self):
        assert resolve_month_phrase(self.REF, "march", next_year=True) == date(2026, 3, 1)
        assert resolve_month_phrase(self.REF, 12, next_year=True) == date(2026, 12, 1)

    def test_bare_month_is_first(self):
        assert resolve_month_phrase(self.REF, "june") == date(2025, 6, 1)

    def test_current_month_first_already_passed(self):
        assert resolve_month_phrase(self.REF, "march") == date(2026, 3, 1)

    def test_end_of_month_handles_leap_years(self):
        assert resolve_month_phrase(date(2027, 1, 10), "february", "end") == date(2027, 2, 28)
        assert resolve_month_phrase(date(2028, 1, 10), "february", "end") == date(2028, 2, 29)

    def test_end_of_december(self):
        assert resolve_month_phrase(self.REF, "dec", "end") == date(2025, 12, 31)

    def test_unknown_inputs(self):
        with pytest.raises(ValueError):
            resolve_month_phrase(self.REF, "smarch")
        with pytest.raises(ValueError):
            resolve_month_phrase(self.REF, "may", "late")
        with pytest.raises(ValueError):
            resolve_month_phrase(self.REF, 13)


class TestResolveThisWeekday:
    REF = date(2025, 3, 12)  # Wednesday

    def test_later_this_week(self):
        assert resolve_this_weekday(self.REF, "friday") == date(2025, 3, 14)
        assert resolve_this_weekday(self.REF, "sun") == date(2025, 3, 16)

    def test_passed_or_today_is_none(self):
        assert resolve_this_weekday(self.REF, "monday") is None
        assert resolve_this_weekday(self.REF, "Wednesday") is None

    def test_unknown_weekday(self):
        with pytest.raises(ValueError):
            resolve_this_weekday(self.REF, "someday")


# ---------------------------------------------------------------------------
# Local midnights / snapshot
# ---------------------------------------------------------------------------


class TestStartOfLocalDay:
    def test_midnight_today(self):
        now = datetime(2026, 1, 15, 10, 0, tzinfo=NY)
        assert start_of_local_day(now) == datetime(2026, 1, 15, 0, 0, tzinfo=NY)

    def test_across_dst_uses_wall_clock_midnight(self):
        now = datetime(2026, 3, 7, 12, 0, tzinfo=NY)
        two_days = start_of_local_day(now, days=2)
        assert (two_days.year, two_days.month, two_days.day, two_days.hour) == (2026, 3, 9, 0)
        assert two_days.utcoffset() == timedelta(hours=-4)
        # 47 real hours between the two local midnights
        elapsed = two_days.astimezone(timezone.utc) - start_of_local_day(now).astimezone(timezone.utc)
        assert elapsed == timedelta(hours=47)

    def test_month_and_year_rollover(self):
        now = datetime(2025, 12, 31, 22, 0, tzinfo=NY)
        assert start_of_local_day(now, days=1) == datetime(2026, 1, 1, tzinfo=NY)


class TestTimezoneSnapshot:
    def test_snapshot_fields(self):
        snap = timezone_snapshot(datetime(2026, 1, 15, 9, 7, tzinfo=NY))
        assert snap == CalendarSnapshot(
            timezone="America/New_York",
            offset_hours=-5.0,
            local_date="2026-01-15",
            local_time="09:07",
            weekday="Thursday",
        )

    def test_half_hour_offset(self):
        snap = timezone_snapshot(datetime(2026, 1, 15, 23, 0, tzinfo=ZoneInfo("Asia/Kolkata")))
        assert snap.offset_hours == 5.5
        assert snap.local_date == "2026-01-15"

    def test_fixed_offset_zone_uses_abbreviation(self):
        snap = timezone_snapshot(datetime(2026, 1, 15, 8, 0, tzinfo=timezone.utc))
        assert snap.timezone == "UTC"
        assert snap.offset_hours == 0.0
