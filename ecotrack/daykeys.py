"""Calendar day keys.

A day key is the ``YYYY-MM-DD`` string of a user's *local* calendar date. It
joins ledger rows and checklist items, so its format must never change.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, tzinfo
from typing import Optional

from .services.errors import ValidationError

DAY_FORMAT = "%Y-%m-%d"


def _local_date(instant: datetime, tz: Optional[tzinfo] = None) -> date:
    # Naive instants are local wall time already; aware ones are shifted into
    # the configured zone (or the server's zone), never into UTC.
    if instant.tzinfo is None:
        if tz is None:
            return instant.date()
        return instant.astimezone().astimezone(tz).date()
    if tz is None:
        return instant.astimezone().date()
    return instant.astimezone(tz).date()


def day_key(instant: datetime, tz: Optional[tzinfo] = None) -> str:
    """Format ``instant`` as its local calendar day, zero padded."""
    return _local_date(instant, tz).strftime(DAY_FORMAT)


def yesterday(instant: datetime, tz: Optional[tzinfo] = None) -> str:
    """Day key of the calendar day before ``instant``'s local day."""
    return (_local_date(instant, tz) - timedelta(days=1)).strftime(DAY_FORMAT)


def parse_day(value: str) -> date:
    if not isinstance(value, str) or len(value) != 10:
        raise ValidationError(f"Invalid day {value!r}, expected YYYY-MM-DD")
    try:
        return datetime.strptime(value, DAY_FORMAT).date()
    except ValueError as exc:
        raise ValidationError(f"Invalid day {value!r}, expected YYYY-MM-DD") from exc


def previous_day(value: str) -> str:
    return (parse_day(value) - timedelta(days=1)).strftime(DAY_FORMAT)
