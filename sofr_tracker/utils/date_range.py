"""Utility helpers for building synchronisation windows."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta

ISO_FORMAT = "%Y-%m-%d"
DEFAULT_READ_WINDOW_MONTHS = 3


@dataclass(frozen=True)
class DateRange:
    """Container representing a closed date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("start date must not be after end date")

    def as_params(self) -> dict[str, str]:
        """Return the range as ``startDate``/``endDate`` query parameters."""
        return {"startDate": format_date(self.start), "endDate": format_date(self.end)}

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


def parse_date(value: str | date) -> date:
    """Parse a date string in ISO format to :class:`date`."""

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(value.strip(), ISO_FORMAT).date()


def format_date(value: date) -> str:
    return value.strftime(ISO_FORMAT)


def lookback_window(lookback_days: int, *, today: date | None = None) -> DateRange:
    """Return the window ``[today - lookback_days, today]``."""

    if lookback_days < 0:
        raise ValueError("lookback_days must not be negative")
    end = today or date.today()
    try:
        start = end - timedelta(days=lookback_days)
    except OverflowError:
        raise ValueError(f"lookback_days={lookback_days} reaches before {date.min}") from None
    return DateRange(start=start, end=end)


def explicit_window(start: str | date, end: str | date) -> DateRange:
    """Build a window from caller supplied bounds (ISO strings or dates)."""

    return DateRange(start=parse_date(start), end=parse_date(end))


def default_read_window(
    start: str | date | None = None,
    end: str | date | None = None,
    *,
    today: date | None = None,
) -> DateRange:
    """Fill in missing read bounds: three months back through today."""

    current = today or date.today()
    end_date = parse_date(end) if end is not None else current
    start_date = (
        parse_date(start)
        if start is not None
        else _months_before(current, DEFAULT_READ_WINDOW_MONTHS)
    )
    return DateRange(start=start_date, end=end_date)


def _months_before(day: date, months: int) -> date:
    """Return ``day`` shifted back by ``months``, clamped to the month's last day."""

    month_index = day.year * 12 + (day.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    return date(year, month, min(day.day, _days_in_month(year, month)))


def _days_in_month(year: int, month: int) -> int:
    if month == 12:
        return 31
    return (date(year, month + 1, 1) - timedelta(days=1)).day
