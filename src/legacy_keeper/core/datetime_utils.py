"""Date helpers shared across the application."""

from __future__ import annotations

import calendar
from datetime import date, datetime

__all__ = [
    "serialize_date",
    "parse_date",
    "serialize_datetime",
    "parse_datetime",
    "display_date",
    "month_label",
    "today",
]


def today() -> date:
    """Return the current local calendar date."""
    return date.today()


def serialize_date(value: date | None) -> str | None:
    """Serialise ``value`` to an ISO 8601 calendar date."""
    if value is None:
        return None
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def parse_date(value: str | date | None) -> date | None:
    """Parse an ISO 8601 date (or the date part of a timestamp)."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(value[:10])


def serialize_datetime(value: datetime | None) -> str | None:
    """Serialise ``value`` to ISO 8601, normalising timezone-aware values."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.isoformat()
    return value.astimezone().isoformat()


def parse_datetime(value: str | datetime | None) -> datetime | None:
    """Parse an ISO 8601 string into a ``datetime`` instance."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


def display_date(value: date | None) -> str | None:
    """Return a user-friendly representation of ``value``."""
    if value is None:
        return None
    return value.strftime("%b %d, %Y")


def month_label(value: date) -> str:
    """Return a locale-independent "October 2026" style label."""
    return f"{calendar.month_name[value.month]} {value.year}"
