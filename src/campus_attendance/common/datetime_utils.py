from __future__ import annotations

from datetime import date, datetime

ISO_DATE_FORMAT = "%Y-%m-%d"
TIME_OF_DAY_FORMAT = "%H:%M"
MONTH_LABEL_FORMAT = "%B %Y"


def parse_iso_date(value: str | date) -> date:
    """Parse YYYY-MM-DD string into date."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.strptime(str(value).strip()[:10], ISO_DATE_FORMAT).date()


def format_iso_date(value: date) -> str:
    return value.strftime(ISO_DATE_FORMAT)


def format_time_of_day(value: datetime) -> str:
    """Zero-padded HH:mm, comparable lexicographically within one day."""
    return value.strftime(TIME_OF_DAY_FORMAT)


def month_label(value: date) -> str:
    """Month bucket label, e.g. 'March 2025'."""
    return value.strftime(MONTH_LABEL_FORMAT)


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()
