# backend/venuebook/models/booking.py
"""
Booking model.

A booking reserves one field for a half-open range of whole hours on a
venue-local date. Two statuses travel together: the lifecycle status
(pending until a payment is verified) and the payment status that mirrors
the latest payment decision.
"""

from datetime import date, datetime, time, timezone
from enum import Enum
import logging
from typing import Any, Dict, FrozenSet, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
)
from sqlalchemy.orm import relationship
import ulid

from ..core.exceptions import StateTransitionException
from ..core.timezone_utils import venue_datetime_to_utc
from ..database import Base
from ..utils.time_slots import SlotInterval

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookingStatus(str, Enum):
    """Booking lifecycle statuses."""

    PENDING = "pending"  # Waiting for a verified payment
    CONFIRMED = "confirmed"  # Payment verified by a cashier
    CANCELLED = "cancelled"
    COMPLETED = "completed"  # Match played
    EXPIRED = "expired"  # Payment window passed without a payment


class BookingPaymentStatus(str, Enum):
    """Payment progress as seen from the booking."""

    NO_PAYMENT = "no_payment"
    PENDING_VERIFICATION = "pending_verification"
    DP_CONFIRMED = "dp_confirmed"
    FULLY_PAID = "fully_paid"
    EXPIRED = "expired"
    REFUNDED = "refunded"


ACTIVE_BOOKING_STATUSES: FrozenSet[str] = frozenset(
    {BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value}
)

TERMINAL_BOOKING_STATUSES: FrozenSet[str] = frozenset(
    {
        BookingStatus.CANCELLED.value,
        BookingStatus.COMPLETED.value,
        BookingStatus.EXPIRED.value,
    }
)

BOOKING_TRANSITIONS: Dict[str, FrozenSet[str]] = {
    BookingStatus.PENDING.value: frozenset(
        {
            BookingStatus.CONFIRMED.value,
            BookingStatus.CANCELLED.value,
            BookingStatus.EXPIRED.value,
        }
    ),
    BookingStatus.CONFIRMED.value: frozenset(
        {BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value}
    ),
    BookingStatus.CANCELLED.value: frozenset(),
    BookingStatus.COMPLETED.value: frozenset(),
    BookingStatus.EXPIRED.value: frozenset(),
}


class Booking(Base):
    """Reservation of a field for a whole number of hours."""

    __tablename__ = "bookings"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))

    customer_id = Column(String(26), nullable=False, index=True)
    field_id = Column(String(26), ForeignKey("fields.id"), nullable=False)

    booking_date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    duration_hours = Column(Integer, nullable=False)
    price = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=BookingStatus.PENDING.value)
    payment_status = Column(
        String(30), nullable=False, default=BookingPaymentStatus.NO_PAYMENT.value
    )

    cashier_id = Column(String(26), nullable=True)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    payment_deadline = Column(DateTime(timezone=True), nullable=False)

    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_by_id = Column(String(26), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    expired_at = Column(DateTime(timezone=True), nullable=True)
    preparation_reminder_sent = Column(Boolean, nullable=False, default=False)

    notes = Column(Text, nullable=True)
    rescheduled_at = Column(DateTime(timezone=True), nullable=True)
    rescheduled_by_id = Column(String(26), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    field = relationship("Field", lazy="joined")
    payments = relationship(
        "Payment",
        back_populates="booking",
        order_by="Payment.created_at",
    )

    __table_args__ = (
        CheckConstraint("duration_hours > 0", name="check_booking_duration_positive"),
        CheckConstraint("price >= 0", name="check_booking_price_non_negative"),
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled', 'completed', 'expired')",
            name="check_booking_status",
        ),
        CheckConstraint(
            "payment_status IN ('no_payment', 'pending_verification', 'dp_confirmed', "
            "'fully_paid', 'expired', 'refunded')",
            name="check_booking_payment_status",
        ),
        Index("ix_bookings_field_date_status", "field_id", "booking_date", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Booking {self.id} field={self.field_id} {self.booking_date} "
            f"{self.start_time}+{self.duration_hours}h {self.status}/{self.payment_status}>"
        )

    @property
    def interval(self) -> SlotInterval:
        return SlotInterval.from_start(self.start_time, self.duration_hours)

    @property
    def end_label(self) -> str:
        return self.interval.end_label

    @property
    def starts_at(self) -> datetime:
        """Start of play as an aware UTC datetime."""
        return venue_datetime_to_utc(self.booking_date, self.start_time)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_BOOKING_STATUSES

    def is_owned_by(self, customer_id: str) -> bool:
        return self.customer_id == customer_id

    def can_transition_to(self, target: str) -> bool:
        return target in BOOKING_TRANSITIONS.get(self.status, frozenset())

    def transition_to(self, target: str) -> None:
        """Move to ``target`` or raise if the lifecycle does not allow it."""
        if not self.can_transition_to(target):
            raise StateTransitionException(
                f"Booking cannot move from {self.status} to {target}",
                current_status=self.status,
                target_status=target,
                details={"booking_id": self.id},
            )
        logger.debug(f"Booking {self.id}: {self.status} -> {target}")
        self.status = target

    def confirm(self, cashier_id: str, payment_status: str, at: datetime) -> None:
        self.transition_to(BookingStatus.CONFIRMED.value)
        self.payment_status = payment_status
        self.cashier_id = cashier_id
        self.confirmed_at = at

    def reset_to_unpaid(self) -> None:
        """Return to pending with no payment after a rejection."""
        self.status = BookingStatus.PENDING.value
        self.payment_status = BookingPaymentStatus.NO_PAYMENT.value
        self.cashier_id = None
        self.confirmed_at = None

    def cancel(self, cancelled_by_id: str, at: datetime) -> None:
        self.transition_to(BookingStatus.CANCELLED.value)
        self.cancelled_at = at
        self.cancelled_by_id = cancelled_by_id

    def complete(self, at: datetime) -> None:
        self.transition_to(BookingStatus.COMPLETED.value)
        self.completed_at = at

    def expire(self, at: datetime) -> None:
        self.transition_to(BookingStatus.EXPIRED.value)
        self.payment_status = BookingPaymentStatus.EXPIRED.value
        self.expired_at = at

    def reschedule(
        self, booking_date: date, start_time: time, duration_hours: int, by_id: str, at: datetime
    ) -> None:
        self.booking_date = booking_date
        self.start_time = start_time
        self.duration_hours = duration_hours
        self.rescheduled_at = at
        self.rescheduled_by_id = by_id

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "field_id": self.field_id,
            "booking_date": self.booking_date.isoformat() if self.booking_date else None,
            "start_time": self.interval.start_label if self.start_time else None,
            "end_time": self.end_label if self.start_time else None,
            "duration_hours": self.duration_hours,
            "price": self.price,
            "status": self.status,
            "payment_status": self.payment_status,
            "cashier_id": self.cashier_id,
            "confirmed_at": _iso(self.confirmed_at),
            "payment_deadline": _iso(self.payment_deadline),
            "notes": self.notes,
            "cancelled_at": _iso(self.cancelled_at),
            "created_at": _iso(self.created_at),
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
