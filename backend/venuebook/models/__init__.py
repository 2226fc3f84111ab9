"""
Database models for the venue booking backend.

- Field: bookable pitch with operating hours and hourly price
- Booking: reservation of a field slot
- Payment: proof-of-transfer submitted for a booking
"""

from .booking import (
    ACTIVE_BOOKING_STATUSES,
    BOOKING_TRANSITIONS,
    Booking,
    BookingPaymentStatus,
    BookingStatus,
)
from .field import Field, FieldStatus
from .payment import OPEN_PAYMENT_STATUSES, Payment, PaymentStatus, PaymentType

__all__ = [
    "ACTIVE_BOOKING_STATUSES",
    "BOOKING_TRANSITIONS",
    "OPEN_PAYMENT_STATUSES",
    "Booking",
    "BookingPaymentStatus",
    "BookingStatus",
    "Field",
    "FieldStatus",
    "Payment",
    "PaymentStatus",
    "PaymentType",
]
