"""
UTC helper tests.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from branchpos.time_utils import month_start, parse_iso_datetime, to_utc_z, week_start


class TestParse:
    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_means_no_bound(self, value):
        assert parse_iso_datetime(value) is None

    def test_offsets_fold_into_naive_utc(self):
        assert parse_iso_datetime("2026-03-02T09:05:00Z") == datetime(2026, 3, 2, 9, 5)
        assert parse_iso_datetime("2026-03-02T11:05:00+02:00") == datetime(2026, 3, 2, 9, 5)
        assert parse_iso_datetime("2026-03-02T09:05") == datetime(2026, 3, 2, 9, 5)

    def test_garbage_names_the_value(self):
        with pytest.raises(ValueError, match="yesterday"):
            parse_iso_datetime("yesterday")


class TestFormat:
    def test_trailing_z_and_whole_seconds(self):
        assert to_utc_z(datetime(2026, 3, 2, 9, 5, 7, 999)) == "2026-03-02T09:05:07Z"
        aware = datetime(2026, 3, 2, 11, 5, tzinfo=timezone(timedelta(hours=2)))
        assert to_utc_z(aware) == "2026-03-02T09:05:00Z"
        assert to_utc_z(None) is None


class TestCalendar:
    def test_week_and_month_start(self):
        # 2026-03-04 is a Wednesday
        assert week_start(date(2026, 3, 4)) == date(2026, 3, 1)
        assert week_start(date(2026, 3, 1)) == date(2026, 3, 1)
        assert month_start(date(2026, 3, 31)) == date(2026, 3, 1)
