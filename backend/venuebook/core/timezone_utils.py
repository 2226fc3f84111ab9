"""
Timezone utilities for the venue booking backend.

Booking dates and start times are wall-clock values in the venue's
timezone; timestamps are stored in UTC.
"""

from datetime import date, datetime, time, timezone

import pytz

from .config import settings


def get_venue_timezone() -> pytz.BaseTzInfo:
    """Return the configured venue timezone."""
    return pytz.timezone(settings.venue_timezone)


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """
    Normalize a datetime to aware UTC.

    SQLite hands back naive datetimes for timezone-aware columns; those are
    stored in UTC, so they are tagged rather than converted.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def get_venue_today(now: datetime | None = None) -> date:
    """Today's date at the venue."""
    current = ensure_utc(now) if now else utc_now()
    return current.astimezone(get_venue_timezone()).date()


def venue_datetime_to_utc(booking_date: date, start_time: time) -> datetime:
    """Convert a venue-local date and time to aware UTC."""
    local_tz = get_venue_timezone()
    local_dt = local_tz.localize(datetime.combine(booking_date, start_time))
    return local_dt.astimezone(timezone.utc)


def utc_to_venue(value: datetime) -> datetime:
    """Convert a stored UTC timestamp to venue-local time."""
    return ensure_utc(value).astimezone(get_venue_timezone())


def hours_until(target_utc: datetime, now: datetime | None = None) -> float:
    """Hours from now until target (negative when target is in the past)."""
    current = ensure_utc(now) if now else utc_now()
    return (ensure_utc(target_utc) - current).total_seconds() / 3600
