"""
Unit tests for date/interval helpers.
"""

from datetime import date, datetime

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..', '..', 'backend'))

from carecycle.services.date_utils import (
    safe_parse_date,
    safe_format_date,
    format_date_for_db,
    add_weeks,
    weeks_to_days,
    days_to_weeks,
    days_between,
    whole_weeks_between,
    today,
)


# =============================================================================
# Test safe_parse_date
# =============================================================================

class TestSafeParseDate:
    """Tests for tolerant date parsing."""

    def test_parses_iso_date_string(self):
        assert safe_parse_date("2026-10-19") == date(2026, 10, 19)

    def test_parses_iso_timestamp(self):
        assert safe_parse_date("2026-10-19T14:30:00Z") == date(2026, 10, 19)

    def test_accepts_date_and_datetime(self):
        assert safe_parse_date(date(2026, 1, 2)) == date(2026, 1, 2)
        assert safe_parse_date(datetime(2026, 1, 2, 23, 59)) == date(2026, 1, 2)

    def test_empty_and_none_return_none(self):
        assert safe_parse_date(None) is None
        assert safe_parse_date("") is None

    def test_garbage_returns_none(self):
        assert safe_parse_date("not-a-date") is None
        assert safe_parse_date("2026-13-45") is None
        assert safe_parse_date(12345) is None

    def test_out_of_range_years_return_none(self):
        assert safe_parse_date("1899-12-31") is None
        assert safe_parse_date("2101-01-01") is None
        assert safe_parse_date("1900-01-01") == date(1900, 1, 1)


# =============================================================================
# Test formatting
# =============================================================================

class TestFormatting:

    def test_safe_format_date_uses_fallback(self):
        assert safe_format_date(None) == "No date"
        assert safe_format_date("bad", fallback="-") == "-"

    def test_safe_format_date_custom_format(self):
        assert safe_format_date("2026-10-19", fmt="%d/%m/%Y") == "19/10/2026"

    def test_format_date_for_db(self):
        assert format_date_for_db(date(2026, 3, 7)) == "2026-03-07"


# =============================================================================
# Test interval arithmetic
# =============================================================================

class TestIntervals:

    def test_weeks_days_conversion(self):
        assert weeks_to_days(4) == 28
        assert days_to_weeks(13) == 1
        assert days_to_weeks(14) == 2

    def test_add_weeks(self):
        assert add_weeks(date(2026, 10, 19), 4) == date(2026, 11, 16)
        assert add_weeks("2026-12-28", 1) == date(2027, 1, 4)

    def test_add_weeks_unusable_value(self):
        assert add_weeks(None, 2) is None

    def test_days_between_is_signed(self):
        assert days_between(date(2026, 1, 10), date(2026, 1, 1)) == -9
        assert days_between(date(2026, 1, 1), date(2026, 1, 10)) == 9

    def test_whole_weeks_between_floors(self):
        start = datetime(2026, 10, 1, 12, 0)
        assert whole_weeks_between(start, datetime(2026, 10, 11, 12, 0)) == 1
        assert whole_weeks_between(start, datetime(2026, 10, 14, 11, 59)) == 1
        assert whole_weeks_between(start, datetime(2026, 10, 15, 12, 0)) == 2

    def test_whole_weeks_between_never_negative(self):
        start = datetime(2026, 10, 15)
        assert whole_weeks_between(start, datetime(2026, 10, 1)) == 0
        assert whole_weeks_between(start, start) == 0


class TestToday:

    def test_today_in_named_zone(self):
        result = today("UTC")
        assert isinstance(result, date)
        assert not isinstance(result, datetime)
