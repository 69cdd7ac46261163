"""
Tests for civil calendar helpers: labels, month boundaries in Asia/Dubai.
"""
from datetime import datetime, timezone

import pytest

from utils import civil_time


class TestMonthLabel:
    def test_label_format(self):
        assert civil_time.month_label(2026, 2) == 'Feb 2026'

    def test_september_uses_three_letters(self):
        assert civil_time.month_label(2026, 9) == 'Sep 2026'

    def test_year_is_zero_padded(self):
        assert civil_time.month_label(987, 1) == 'Jan 0987'

    @pytest.mark.parametrize('month', [0, 13])
    def test_month_out_of_range_rejected(self, month):
        with pytest.raises(ValueError):
            civil_time.month_label(2026, month)


class TestCivilBoundaries:
    def test_late_utc_evening_is_next_civil_month(self, app, clock):
        """22:00 UTC on 31 Jan is 02:00 on 1 Feb in Dubai."""
        clock(2026, 1, 31, 22, 0)
        assert civil_time.current_month_label() == 'Feb 2026'
        assert civil_time.civil_today() == (2026, 2, 1)

    def test_just_before_civil_midnight(self, app, clock):
        clock(2026, 1, 31, 19, 59)
        assert civil_time.current_month_label() == 'Jan 2026'

    def test_naive_datetime_read_as_utc(self, app):
        assert civil_time.period_of(datetime(2026, 3, 31, 21, 0)) == (2026, 4)

    def test_aware_datetime_converted(self, app):
        assert civil_time.period_of(datetime(2026, 3, 31, 19, 0, tzinfo=timezone.utc)) == (2026, 3)

    def test_configured_timezone_is_used(self, app, clock, monkeypatch):
        monkeypatch.setitem(app.config, 'CIVIL_TIMEZONE', 'UTC')
        clock(2026, 1, 31, 22, 0)
        assert civil_time.current_month_label() == 'Jan 2026'

    def test_unknown_timezone_raises(self, app, monkeypatch):
        monkeypatch.setitem(app.config, 'CIVIL_TIMEZONE', 'Not/AZone')
        with pytest.raises(ValueError):
            civil_time.civil_zone()


class TestLastDayOfMonth:
    @pytest.mark.parametrize('year, month, expected', [
        (2026, 2, 28),
        (2028, 2, 29),
        (2026, 4, 30),
        (2026, 12, 31),
    ])
    def test_month_lengths(self, year, month, expected):
        assert civil_time.last_day_of_month(year, month) == expected
