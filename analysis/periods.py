"""
Calendar arithmetic for the report engine.

All computations run on naive ``datetime.date`` values interpreted as UTC
calendar days, so results never depend on the server's local timezone.
"""
import calendar
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple

DEFAULT_MONTHS_RANGE = 3
MAX_MONTHS_RANGE = 12

MONTH_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


@dataclass(frozen=True)
class DateRange:
    """Inclusive window of calendar days plus the month window that covers it."""
    start: date
    end: date
    focus_month: str
    months_range: int


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


def format_date(value: date) -> str:
    return value.strftime("%Y-%m-%d")


def format_month(value: date) -> str:
    return value.strftime("%Y-%m")


def parse_date_only(value: Optional[str]) -> Optional[date]:
    """
    Parse the calendar day of a ``YYYY-MM-DD`` string or ISO timestamp.

    Timestamps with an offset are converted to UTC before taking the day.
    Returns None for empty or unparsable input.
    """
    if not value:
        return None
    value = value.strip()
    if len(value) == 10:
        try:
            return date.fromisoformat(value)
        except ValueError:
            return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


def parse_entry_date(date_key: str) -> Optional[date]:
    try:
        return date.fromisoformat(date_key[:10])
    except ValueError:
        return None


def clamp_months(value: Optional[int], default: int = DEFAULT_MONTHS_RANGE) -> int:
    if value is None:
        return default
    return max(1, min(MAX_MONTHS_RANGE, int(value)))


def add_months(value: date, months: int) -> date:
    """Shift by calendar months, clamping the day to the target month's length."""
    index = value.year * 12 + (value.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def months_between(start: date, end: date) -> int:
    months = (end.year - start.year) * 12 + (end.month - start.month) + 1
    return max(1, min(MAX_MONTHS_RANGE, months))


def resolve_date_range(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    months: Optional[int] = None,
    today: Optional[date] = None,
) -> DateRange:
    """
    Resolve optional report bounds into a concrete window.

    - end defaults to today
    - start defaults to ``end - (months - 1)`` calendar months
    - an inverted pair is swapped, never rejected
    """
    today = today or utc_today()

    end = parse_date_only(end_date) or today
    start = parse_date_only(start_date)
    if start is None:
        start = add_months(end, -(clamp_months(months) - 1))

    if start > end:
        start, end = end, start

    if months is not None:
        months_range = clamp_months(months)
    else:
        months_range = months_between(start, end)

    return DateRange(
        start=start,
        end=end,
        focus_month=format_month(end),
        months_range=months_range,
    )


def week_bounds(value: date) -> Tuple[date, date]:
    """Monday..Sunday week containing ``value``."""
    start = value - timedelta(days=(value.isoweekday() + 6) % 7)
    return start, start + timedelta(days=6)


def iso_week(value: date) -> Tuple[int, int]:
    """(ISO year, ISO week number), Thursday-anchored."""
    iso_year, week, _ = value.isocalendar()
    return iso_year, week


def sanitize_month(month: Optional[str], today: Optional[date] = None) -> str:
    if month and MONTH_RE.match(month):
        return month
    return format_month(today or utc_today())


def month_sequence(focus_month: str, months_range: int) -> List[str]:
    """Contiguous ``YYYY-MM`` ids ending at ``focus_month``, oldest first."""
    year, month = (int(part) for part in focus_month.split("-"))
    anchor = date(year, month, 1)
    return [
        format_month(add_months(anchor, -offset))
        for offset in range(months_range - 1, -1, -1)
    ]


def iter_month_starts(start: date, end: date) -> List[date]:
    """First day of every calendar month touched by ``start..end``."""
    cursor = start.replace(day=1)
    months = []
    while cursor <= end:
        months.append(cursor)
        cursor = add_months(cursor, 1)
    return months


def next_monday_midnight(reference: datetime) -> datetime:
    """
    Next Monday 00:00:00.000 UTC strictly after ``reference``.

    On a Monday this is seven days ahead.
    """
    reference = reference.astimezone(timezone.utc)
    days_ahead = (7 - reference.weekday()) % 7 or 7
    target = reference.date() + timedelta(days=days_ahead)
    return datetime.combine(target, time.min, tzinfo=timezone.utc)
