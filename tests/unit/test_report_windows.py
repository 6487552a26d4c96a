"""Unit tests for reporting windows and money helpers."""
from datetime import datetime, timezone, timedelta
from decimal import Decimal

import pytest

from stockledger.exceptions import InvalidDateRangeError
from stockledger.utils.dates import (
    days_from_now, ensure_utc, parse_iso_datetime, parse_period, validate_window
)
from stockledger.utils.money import percentage, round_rate, to_minor_units


class TestPeriods:
    """Test month and quarter windows."""

    def test_month(self):
        start, end = parse_period('2024-02')
        assert start == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 2, 29, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_quarter(self):
        start, end = parse_period('2024-Q2')
        assert start == datetime(2024, 4, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 6, 30, 23, 59, 59, 999999, tzinfo=timezone.utc)

    @pytest.mark.parametrize('period', ['2024', '2024-13', '2024-Q5', 'last-month', ''])
    def test_invalid_period(self, period):
        with pytest.raises(InvalidDateRangeError):
            parse_period(period)


class TestParseIsoDatetime:
    """Test ISO-8601 parsing."""

    def test_bare_date_start_and_end_of_day(self):
        assert parse_iso_datetime('2024-05-31') == datetime(2024, 5, 31, tzinfo=timezone.utc)
        assert parse_iso_datetime('2024-05-31', end_of_day=True) == datetime(
            2024, 5, 31, 23, 59, 59, 999999, tzinfo=timezone.utc
        )

    def test_zulu_and_offsets_normalized_to_utc(self):
        assert parse_iso_datetime('2024-05-31T10:00:00Z') == datetime(2024, 5, 31, 10, tzinfo=timezone.utc)
        assert parse_iso_datetime('2024-05-31T10:00:00+02:00') == datetime(2024, 5, 31, 8, tzinfo=timezone.utc)

    def test_invalid(self):
        with pytest.raises(InvalidDateRangeError):
            parse_iso_datetime('31/05/2024')


class TestValidateWindow:
    """Test window validation."""

    def test_start_after_end_rejected(self):
        with pytest.raises(InvalidDateRangeError):
            validate_window(datetime(2024, 2, 1), datetime(2024, 1, 1))

    def test_single_instant_window_allowed(self):
        moment = datetime(2024, 1, 1, 12, tzinfo=timezone.utc)
        assert validate_window(moment, moment) == (moment, moment)

    def test_naive_values_taken_as_utc(self):
        start, _ = validate_window(datetime(2024, 1, 1), datetime(2024, 1, 2))
        assert start.tzinfo is not None
        assert ensure_utc(datetime(2024, 1, 1)) == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_days_from_now(self):
        now = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert days_from_now(30, now) == now + timedelta(days=30)


class TestMoney:
    """Test presentation rounding."""

    def test_half_up(self):
        assert to_minor_units(Decimal('2.5')) == 3
        assert to_minor_units(Decimal('2.4999')) == 2
        assert to_minor_units(None) == 0

    def test_round_rate(self):
        assert round_rate(Decimal(1000) / Decimal(3)) == '333.3333'
        assert round_rate(Decimal('100')) == '100.0000'

    def test_percentage(self):
        assert percentage(150, 450) == Decimal('33.33')
        assert percentage(10, 0) == Decimal('0.00')
