"""Tests for local calendar day keys and ISO week keys."""

from datetime import date, datetime, timedelta, timezone

from streak_guard.dates import (
    add_local_days_key,
    diff_local_days,
    epoch_ms,
    get_iso_week_key,
    local_date_key,
    parse_local_date_key,
)


class TestLocalDateKey:
    """Tests for local_date_key function."""

    def test_zero_pads_month_and_day(self):
        assert local_date_key(datetime(2026, 1, 5, 9, 0)) == "2026-01-05"

    def test_late_evening_stays_on_same_day(self):
        assert local_date_key(datetime(2026, 3, 9, 23, 59, 59)) == "2026-03-09"

    def test_aware_datetime_uses_its_own_zone(self):
        pacific = timezone(timedelta(hours=-8))
        # 07:30 UTC on the 6th, still the evening of the 5th in UTC-8
        dt = datetime(2026, 1, 5, 23, 30, tzinfo=pacific)
        assert local_date_key(dt) == "2026-01-05"

    def test_accepts_plain_date(self):
        assert local_date_key(date(2026, 12, 31)) == "2026-12-31"


class TestParseLocalDateKey:
    """Tests for parse_local_date_key function."""

    def test_valid_key(self):
        assert parse_local_date_key("2026-01-05") == date(2026, 1, 5)

    def test_unpadded_components(self):
        assert parse_local_date_key("2026-1-5") == date(2026, 1, 5)

    def test_two_components(self):
        assert parse_local_date_key("2026-01") is None

    def test_four_components(self):
        assert parse_local_date_key("2026-01-05-01") is None

    def test_non_numeric(self):
        assert parse_local_date_key("yyyy-mm-dd") is None

    def test_impossible_date(self):
        assert parse_local_date_key("2026-02-30") is None

    def test_none_and_empty(self):
        assert parse_local_date_key(None) is None
        assert parse_local_date_key("") is None


class TestAddLocalDaysKey:
    """Tests for add_local_days_key function."""

    def test_month_rollover(self):
        assert add_local_days_key("2026-01-31", 1) == "2026-02-01"

    def test_year_rollover(self):
        assert add_local_days_key("2025-12-31", 1) == "2026-01-01"

    def test_leap_day(self):
        assert add_local_days_key("2024-02-28", 1) == "2024-02-29"

    def test_negative_days(self):
        assert add_local_days_key("2026-03-01", -1) == "2026-02-28"

    def test_zero_days(self):
        assert add_local_days_key("2026-01-05", 0) == "2026-01-05"

    def test_malformed_key(self):
        assert add_local_days_key("not-a-date", 1) is None

    def test_overflow_returns_none(self):
        assert add_local_days_key("9999-12-31", 1) is None


class TestDiffLocalDays:
    """Tests for diff_local_days function."""

    def test_forward(self):
        assert diff_local_days("2026-01-01", "2026-01-04") == 3

    def test_backward_is_negative(self):
        assert diff_local_days("2026-01-04", "2026-01-01") == -3

    def test_same_day(self):
        assert diff_local_days("2026-01-04", "2026-01-04") == 0

    def test_across_year(self):
        assert diff_local_days("2025-12-30", "2026-01-02") == 3

    def test_malformed_either_side(self):
        assert diff_local_days("bad", "2026-01-01") is None
        assert diff_local_days("2026-01-01", None) is None


class TestIsoWeekKey:
    """Tests for get_iso_week_key function."""

    def test_first_thursday_of_year(self):
        # 2026-01-01 is a Thursday, so it anchors week 1
        assert get_iso_week_key(datetime(2026, 1, 1)) == "2026-W01"

    def test_sunday_ends_the_week(self):
        assert get_iso_week_key(datetime(2026, 1, 4, 23, 0)) == "2026-W01"

    def test_monday_starts_a_new_week(self):
        assert get_iso_week_key(datetime(2026, 1, 5, 0, 0)) == "2026-W02"

    def test_new_year_day_in_previous_iso_year(self):
        # Friday 2027-01-01 belongs to the 53rd week of 2026
        assert get_iso_week_key(datetime(2027, 1, 1)) == "2026-W53"

    def test_late_december_in_next_iso_year(self):
        # Monday 2024-12-30 is in week 1 of 2025
        assert get_iso_week_key(datetime(2024, 12, 30)) == "2025-W01"

    def test_sunday_after_leap_year_week_53(self):
        assert get_iso_week_key(datetime(2021, 1, 3)) == "2020-W53"

    def test_zero_pads_week(self):
        assert get_iso_week_key(datetime(2026, 2, 10)) == "2026-W07"


class TestEpochMs:
    """Tests for epoch_ms function."""

    def test_epoch(self):
        assert epoch_ms(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_milliseconds(self):
        dt = datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)
        assert epoch_ms(dt) == 1500
