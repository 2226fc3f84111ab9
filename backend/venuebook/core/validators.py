"""
Input rules shared by the booking and payment services.

Each validator raises ValidationException with a message that can be shown
to the customer as-is.
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

from .config import settings
from .exceptions import ValidationException
from .timezone_utils import ensure_utc, get_venue_today, utc_now, venue_datetime_to_utc


def validate_duration(duration_hours: int) -> None:
    if isinstance(duration_hours, bool) or not isinstance(duration_hours, int):
        raise ValidationException(
            "Duration must be a whole number of hours",
            details={"duration_hours": duration_hours},
        )
    if duration_hours <= 0:
        raise ValidationException(
            "Duration must be positive", details={"duration_hours": duration_hours}
        )
    if not settings.min_duration_hours <= duration_hours <= settings.max_duration_hours:
        raise ValidationException(
            f"Duration must be between {settings.min_duration_hours} and "
            f"{settings.max_duration_hours} hours",
            details={"duration_hours": duration_hours},
        )


def validate_start_time(start_time: time) -> None:
    if start_time.minute or start_time.second or start_time.microsecond:
        raise ValidationException(
            "Bookings must start on the hour",
            details={"start_time": start_time.isoformat()},
        )


def validate_booking_date(booking_date: date, today: Optional[date] = None) -> None:
    today = today or get_venue_today()
    if booking_date < today:
        raise ValidationException(
            "Booking date cannot be in the past",
            details={"booking_date": booking_date.isoformat()},
        )
    latest = today + timedelta(days=settings.max_advance_booking_days)
    if booking_date > latest:
        raise ValidationException(
            f"Bookings can be made at most {settings.max_advance_booking_days} days ahead",
            details={"booking_date": booking_date.isoformat(), "latest": latest.isoformat()},
        )


def validate_same_day_lead(
    booking_date: date, start_time: time, now: Optional[datetime] = None
) -> None:
    """A booking for today has to start more than the lead time from now."""
    current = ensure_utc(now) if now else utc_now()
    if booking_date != get_venue_today(current):
        return
    earliest = current + timedelta(minutes=settings.same_day_lead_minutes)
    if venue_datetime_to_utc(booking_date, start_time) <= earliest:
        raise ValidationException(
            f"Bookings for today must start at least {settings.same_day_lead_minutes} "
            "minutes from now",
            details={
                "booking_date": booking_date.isoformat(),
                "start_time": start_time.strftime("%H:%M"),
            },
        )


def validate_rejection_reason(reason: Optional[str]) -> str:
    cleaned = (reason or "").strip()
    if len(cleaned) < settings.rejection_reason_min_length:
        raise ValidationException(
            f"Rejection reason must be at least {settings.rejection_reason_min_length} characters"
        )
    return cleaned


def validate_sender_name(name: Optional[str]) -> str:
    cleaned = (name or "").strip()
    if not 2 <= len(cleaned) <= 100:
        raise ValidationException("Sender name must be 2-100 characters")
    return cleaned


def validate_transfer_reference(reference: Optional[str]) -> Optional[str]:
    if reference is None or not reference.strip():
        return None
    cleaned = reference.strip()
    if not 6 <= len(cleaned) <= 20:
        raise ValidationException("Transfer reference must be 6-20 characters")
    return cleaned


def validate_transfer_date(transfer_date: datetime, now: Optional[datetime] = None) -> None:
    current = ensure_utc(now) if now else utc_now()
    transferred_at = ensure_utc(transfer_date)
    if transferred_at > current:
        raise ValidationException("Transfer date cannot be in the future")
    if transferred_at < current - timedelta(days=settings.transfer_max_age_days):
        raise ValidationException(
            f"Transfer date cannot be more than {settings.transfer_max_age_days} days ago"
        )


def validate_transfer_amount(transfer_amount: int, payment_amount: int) -> None:
    if transfer_amount != payment_amount:
        raise ValidationException(
            "Transferred amount does not match the payment amount",
            details={"transfer_amount": transfer_amount, "amount": payment_amount},
        )
