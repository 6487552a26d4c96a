"""UTC date helpers for sales timestamps and reporting windows."""
import calendar
import re
from datetime import datetime, timezone, timedelta

from stockledger.exceptions import InvalidDateRangeError

_MONTH_RE = re.compile(r'^(\d{4})-(\d{1,2})$')
_QUARTER_RE = re.compile(r'^(\d{4})-Q([1-4])$', re.IGNORECASE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Normalize to an aware UTC datetime. Naive values are taken as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_iso_datetime(value: str, end_of_day: bool = False) -> datetime:
    """
    Parse an ISO-8601 date or datetime string into aware UTC.

    A bare date ("2024-05-31") means start of day, or its last microsecond
    when end_of_day is True.
    """
    if not value:
        raise InvalidDateRangeError('Date is required')
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise InvalidDateRangeError(f'Invalid date: {value}')
    if end_of_day and len(value.strip()) == 10:
        parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999999)
    return ensure_utc(parsed)


def month_window(year: int, month: int):
    """First and last instant of a calendar month (UTC)."""
    if not 1 <= month <= 12:
        raise InvalidDateRangeError(f'Invalid month: {month}')
    last_day = calendar.monthrange(year, month)[1]
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)
    return start, end


def quarter_window(year: int, quarter: int):
    """First and last instant of a calendar quarter (UTC)."""
    if not 1 <= quarter <= 4:
        raise InvalidDateRangeError(f'Invalid quarter: {quarter}')
    start_month = (quarter - 1) * 3 + 1
    start, _ = month_window(year, start_month)
    _, end = month_window(year, start_month + 2)
    return start, end


def parse_period(period: str):
    """Window for "YYYY-MM" or "YYYY-Qn"."""
    text = (period or '').strip()
    match = _QUARTER_RE.match(text)
    if match:
        return quarter_window(int(match.group(1)), int(match.group(2)))
    match = _MONTH_RE.match(text)
    if match:
        return month_window(int(match.group(1)), int(match.group(2)))
    raise InvalidDateRangeError(f'Invalid period: {period}. Use YYYY-MM or YYYY-Qn')


def validate_window(start: datetime, end: datetime):
    """Return the window as aware UTC, rejecting start > end."""
    start = ensure_utc(start)
    end = ensure_utc(end)
    if start > end:
        raise InvalidDateRangeError('Start date must be on or before end date')
    return start, end


def days_from_now(days: int, now: datetime = None) -> datetime:
    return ensure_utc(now or utcnow()) + timedelta(days=days)
