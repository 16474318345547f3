from __future__ import annotations

import calendar
from datetime import date, datetime, time
from typing import Optional, Union

from ..core.constants import ISO_DATE_FORMAT, MONTH_FORMAT
from ..core.exceptions import ValidationError

DateLike = Union[date, datetime]

# Millisecond precision, matching DATETIME(3) columns.
END_OF_DAY = time(23, 59, 59, 999000)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO date or timestamp into a naive datetime.

    Browsers send either ``2024-03-05`` or ``2024-03-05T10:15:00.000Z``.
    The calendar fields are kept as written; any UTC offset is dropped.
    """

    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)

    v = (value or "").strip() if isinstance(value, str) else ""
    if not v:
        raise ValidationError("Date is required")
    try:
        return datetime.strptime(v, ISO_DATE_FORMAT)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(v.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        raise ValidationError(f"Invalid date: {v!r}")


def parse_month(value: str) -> date:
    """Parse YYYY-MM into the first day of that month."""
    v = (value or "").strip() if isinstance(value, str) else ""
    try:
        return datetime.strptime(v[:7], MONTH_FORMAT).date()
    except ValueError:
        raise ValidationError(f"Invalid month: {v!r} (expected YYYY-MM)")


def format_month(value: DateLike) -> str:
    return value.strftime(MONTH_FORMAT)


def start_of_day(value: DateLike) -> datetime:
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min)


def day_window(value: DateLike) -> tuple[datetime, datetime]:
    """First and last instant of the calendar day containing ``value``."""
    d = value.date() if isinstance(value, datetime) else value
    return datetime.combine(d, time.min), datetime.combine(d, END_OF_DAY)


def month_window(value: DateLike) -> tuple[datetime, datetime]:
    """First and last instant of the calendar month containing ``value``.

    Shared by the tute syncer (what may be removed) and the history views
    (what is displayed) so both always agree on the month boundaries.
    """

    last_day = calendar.monthrange(value.year, value.month)[1]
    first = date(value.year, value.month, 1)
    last = date(value.year, value.month, last_day)
    return datetime.combine(first, time.min), datetime.combine(last, END_OF_DAY)


def range_window(start: DateLike, end: DateLike) -> tuple[datetime, datetime]:
    """Whole-day window from the start of ``start`` to the end of ``end``."""
    if end < start:
        raise ValidationError("startDate must not be after endDate")
    return day_window(start)[0], day_window(end)[1]


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def to_iso(value: Optional[DateLike]) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat(timespec="milliseconds")
    return value.isoformat()
