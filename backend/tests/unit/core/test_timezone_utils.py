from datetime import date, datetime, time, timedelta, timezone

import pytest

from app.core.timezone_utils import (
    format_for_display,
    is_valid_timezone,
    local_to_utc,
    local_today,
    normalize_timezone,
    parse_clock_time,
    parse_iso_date,
    parse_iso_instant,
    sunday_based_weekday,
    to_iso_z,
)


class TestTimezoneNames:
    def test_known_zone_is_valid(self):
        assert is_valid_timezone("America/New_York")
        assert is_valid_timezone(" Europe/London ")

    @pytest.mark.parametrize("value", [None, "", "   ", "Mars/Olympus_Mons", 42])
    def test_unknown_zone_is_invalid(self, value):
        assert not is_valid_timezone(value)

    def test_normalize_falls_back_to_utc(self):
        assert normalize_timezone("Nowhere/Special") == "UTC"
        assert normalize_timezone(" Asia/Tokyo ") == "Asia/Tokyo"


class TestParsing:
    def test_clock_time_accepts_minutes_and_seconds(self):
        assert parse_clock_time("09:30") == time(9, 30)
        assert parse_clock_time("23:59:59") == time(23, 59, 59)

    @pytest.mark.parametrize("value", ["9:30", "24:00", "12:60", "noon", None])
    def test_clock_time_rejects_malformed(self, value):
        assert parse_clock_time(value) is None

    def test_iso_date_is_strict(self):
        assert parse_iso_date("2026-03-10") == date(2026, 3, 10)
        assert parse_iso_date("2026-3-10") is None
        assert parse_iso_date("2026-02-30") is None

    def test_iso_instant_normalises_to_utc(self):
        parsed = parse_iso_instant("2026-03-10T10:00:00-04:00")
        assert parsed == datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)
        assert parse_iso_instant("2026-03-10T14:00:00Z") == parsed

    def test_naive_instant_is_read_as_utc(self):
        assert parse_iso_instant("2026-03-10T14:00:00") == datetime(
            2026, 3, 10, 14, 0, tzinfo=timezone.utc
        )

    def test_garbage_instant_is_none(self):
        assert parse_iso_instant("tomorrow at ten") is None
        assert parse_iso_instant("") is None


class TestLocalConversion:
    def test_each_boundary_uses_its_own_offset(self):
        # New York switches to EDT on 2026-03-08
        before = local_to_utc(date(2026, 3, 7), time(9, 0), "America/New_York")
        after = local_to_utc(date(2026, 3, 9), time(9, 0), "America/New_York")
        assert before == datetime(2026, 3, 7, 14, 0, tzinfo=timezone.utc)
        assert after == datetime(2026, 3, 9, 13, 0, tzinfo=timezone.utc)

    def test_wall_time_in_dst_gap_uses_pre_transition_offset(self):
        gap = local_to_utc(date(2026, 3, 8), time(2, 30), "America/New_York")
        assert gap == datetime(2026, 3, 8, 7, 30, tzinfo=timezone.utc)

    def test_ambiguous_wall_time_uses_first_occurrence(self):
        # 01:30 happens twice in New York on 2026-11-01; the first is EDT
        ambiguous = local_to_utc(date(2026, 11, 1), time(1, 30), "America/New_York")
        assert ambiguous == datetime(2026, 11, 1, 5, 30, tzinfo=timezone.utc)

    def test_wall_time_after_fall_back_uses_standard_time(self):
        after = local_to_utc(date(2026, 11, 1), time(2, 0), "America/New_York")
        assert after == datetime(2026, 11, 1, 7, 0, tzinfo=timezone.utc)

    def test_local_today_crosses_midnight(self):
        now = datetime(2026, 3, 11, 2, 0, tzinfo=timezone.utc)
        assert local_today(now, "America/Los_Angeles") == date(2026, 3, 10)
        assert local_today(now, "UTC") == date(2026, 3, 11)

    def test_weekday_is_sunday_based(self):
        assert sunday_based_weekday(date(2026, 3, 8)) == 0
        assert sunday_based_weekday(date(2026, 3, 10)) == 2
        assert sunday_based_weekday(date(2026, 3, 14)) == 6


class TestFormatting:
    def test_iso_z_has_millisecond_precision(self):
        instant = datetime(2026, 3, 10, 14, 0, 5, 123456, tzinfo=timezone.utc)
        assert to_iso_z(instant) == "2026-03-10T14:00:05.123Z"

    def test_iso_z_converts_offsets(self):
        instant = datetime(2026, 3, 10, 10, 0, tzinfo=timezone(timedelta(hours=-4)))
        assert to_iso_z(instant) == "2026-03-10T14:00:00.000Z"

    def test_display_label_uses_target_zone(self):
        instant = datetime(2026, 3, 10, 14, 0, tzinfo=timezone.utc)
        assert format_for_display(instant, "America/New_York") == "Mar 10, 2026, 10:00 AM"
        assert format_for_display(instant, "Europe/London") == "Mar 10, 2026, 2:00 PM"

    def test_display_label_with_unknown_zone_uses_utc(self):
        instant = datetime(2026, 3, 10, 0, 5, tzinfo=timezone.utc)
        assert format_for_display(instant, "Not/AZone") == "Mar 10, 2026, 12:05 AM"
