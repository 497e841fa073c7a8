from __future__ import annotations

from datetime import date, datetime, time

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_iso_datetime(value: str) -> datetime:
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise ValidationError(f"Invalid datetime: {value!r}")


def parse_time_of_day(value) -> time | None:
    """Parse 'HH:MM' (or 'HH:MM:SS') into a time; empty values mean 'no bound'."""

    if value is None or isinstance(value, time):
        return value
    v = str(value).strip()
    if not v:
        return None
    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(v, fmt).time()
        except ValueError:
            continue
    raise ValidationError(f"Invalid time of day (HH:MM): {value!r}")


def format_time_of_day(value: time | None) -> str | None:
    return value.strftime("%H:%M") if value else None


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def to_local_naive(value: datetime) -> datetime:
    """Offset-aware values are converted to local wall time; naive ones are kept."""

    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
