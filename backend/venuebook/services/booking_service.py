# backend/venuebook/services/booking_service.py
"""
Booking Service for the venue booking backend.

Owns the customer side of the booking lifecycle:
- Creating a pending booking after a slot check
- Rescheduling or annotating a booking while it is still pending
- Cancelling, with hard delete for bookings that never received a payment
- Completing confirmed bookings once the match has been played

Payment decisions move bookings between pending and confirmed; that lives
in PaymentVerificationService.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
import logging
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    ForbiddenException,
    NotFoundException,
    SlotConflictException,
    StateTransitionException,
)
from ..core.slot_lock import SlotLock, get_slot_lock
from ..core.timezone_utils import hours_until, utc_now
from ..core.validators import validate_booking_date, validate_same_day_lead
from ..models.booking import Booking, BookingPaymentStatus, BookingStatus
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.payment_repository import PaymentRepository
from ..schemas.booking import BookingUpdate
from .base import BaseService
from .cache_service import CacheKeyBuilder
from .conflict_checker import SlotAvailabilityChecker

if TYPE_CHECKING:
    from .cache_service import CacheInvalidationPort

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CancellationResult:
    booking_id: str
    hard_deleted: bool
    booking: Optional[Booking] = None


class BookingService(BaseService):
    """
    Service layer for booking creation, changes and cancellation.

    Writes that claim a slot run under the per-(field, date) slot lock so
    that the availability check and the insert are atomic with respect to
    other writers.
    """

    def __init__(
        self,
        db: Session,
        cache: Optional["CacheInvalidationPort"] = None,
        slot_lock: Optional[SlotLock] = None,
        availability_checker: Optional[SlotAvailabilityChecker] = None,
        booking_repository: Optional[BookingRepository] = None,
        payment_repository: Optional[PaymentRepository] = None,
    ):
        super().__init__(db, cache)
        self.logger = logging.getLogger(__name__)
        self.slot_lock = slot_lock or get_slot_lock()
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.payment_repository = (
            payment_repository or RepositoryFactory.create_payment_repository(db)
        )
        self.availability_checker = availability_checker or SlotAvailabilityChecker(
            db, booking_repository=self.booking_repository
        )

    # Queries

    def get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        return booking

    def get_booking_for_customer(self, booking_id: str, customer_id: str) -> Booking:
        booking = self.get_booking(booking_id)
        if not booking.is_owned_by(customer_id):
            raise ForbiddenException("You can only access your own bookings")
        return booking

    @BaseService.measure_operation("get_customer_bookings")
    def get_customer_bookings(
        self, customer_id: str, include_cancelled: bool = False
    ) -> List[Booking]:
        return self.booking_repository.get_customer_bookings(customer_id, include_cancelled)

    # Commands

    @BaseService.measure_operation("create_booking")
    def create_booking(
        self,
        customer_id: str,
        field_id: str,
        booking_date: date,
        start_time: time,
        duration_hours: int,
        notes: Optional[str] = None,
    ) -> Booking:
        """
        Reserve a slot for a customer.

        The booking starts as pending with no payment and must receive a
        payment before ``payment_deadline``.

        Raises:
            ValidationException: bad input or slot outside operating hours
            NotFoundException: unknown field
            FieldUnavailableException: field closed for booking
            SlotConflictException: slot overlaps an active booking
            SlotBusyException: slot lock not acquired in time
        """
        validate_booking_date(booking_date)
        validate_same_day_lead(booking_date, start_time)

        with self.slot_lock.hold(field_id, booking_date):
            with self.transaction():
                try:
                    field = self.availability_checker.ensure_available(
                        field_id, booking_date, start_time, duration_hours
                    )
                except SlotConflictException:
                    prometheus_metrics.inc_slot_conflict("create")
                    raise

                now = utc_now()
                booking = self.booking_repository.create(
                    customer_id=customer_id,
                    field_id=field_id,
                    booking_date=booking_date,
                    start_time=start_time,
                    duration_hours=duration_hours,
                    price=field.price_per_hour * duration_hours,
                    status=BookingStatus.PENDING.value,
                    payment_status=BookingPaymentStatus.NO_PAYMENT.value,
                    payment_deadline=now + timedelta(hours=settings.payment_window_hours),
                    notes=notes,
                    created_at=now,
                )

        self.log_operation(
            "create_booking",
            booking_id=booking.id,
            customer_id=customer_id,
            field_id=field_id,
            slot=f"{booking_date} {booking.interval}",
        )
        self.invalidate_cache(
            CacheKeyBuilder.customer_bookings(customer_id),
            CacheKeyBuilder.field_availability(field_id, booking_date),
        )
        return booking

    @BaseService.measure_operation("update_booking")
    def update_booking(
        self, booking_id: str, requester_id: str, patch: BookingUpdate
    ) -> Booking:
        """
        Apply a customer's changes to a pending booking.

        A changed date, start time or duration re-runs the slot check with the
        booking itself excluded; a changed duration re-prices the booking.
        """
        booking = self.get_booking(booking_id)
        if not booking.is_owned_by(requester_id):
            raise ForbiddenException("You can only change your own bookings")
        self._ensure_pending(booking, "update")

        changes = patch.changes()
        if not changes:
            return booking

        old_date = booking.booking_date
        new_date = changes.get("booking_date", booking.booking_date)
        new_start = changes.get("start_time", booking.start_time)
        new_duration = changes.get("duration_hours", booking.duration_hours)
        reschedule = (new_date, new_start, new_duration) != (
            booking.booking_date,
            booking.start_time,
            booking.duration_hours,
        )

        if reschedule:
            if new_date != old_date:
                validate_booking_date(new_date)
            if (new_date, new_start) != (old_date, booking.start_time):
                validate_same_day_lead(new_date, new_start)
            with self.slot_lock.hold(booking.field_id, new_date):
                with self.transaction():
                    self.db.refresh(booking)
                    self._ensure_pending(booking, "update")
                    try:
                        field = self.availability_checker.ensure_available(
                            booking.field_id,
                            new_date,
                            new_start,
                            new_duration,
                            exclude_booking_id=booking.id,
                        )
                    except SlotConflictException:
                        prometheus_metrics.inc_slot_conflict("update")
                        raise
                    if new_duration != booking.duration_hours:
                        booking.price = field.price_per_hour * new_duration
                    booking.reschedule(new_date, new_start, new_duration, requester_id, utc_now())
                    if "notes" in changes:
                        booking.notes = changes["notes"]
                    self.booking_repository.save(booking)
        else:
            with self.transaction():
                booking.notes = changes.get("notes", booking.notes)
                self.booking_repository.save(booking)

        self.log_operation(
            "update_booking",
            booking_id=booking.id,
            rescheduled=reschedule,
            fields=sorted(changes),
        )
        keys = [CacheKeyBuilder.customer_bookings(booking.customer_id)]
        if reschedule:
            keys.append(CacheKeyBuilder.field_availability(booking.field_id, old_date))
            if new_date != old_date:
                keys.append(CacheKeyBuilder.field_availability(booking.field_id, new_date))
        self.invalidate_cache(*keys)
        return booking

    @BaseService.measure_operation("cancel_booking")
    def cancel_booking(self, booking_id: str, requester_id: str) -> CancellationResult:
        """
        Cancel a booking on the customer's request.

        Pending bookings can always be cancelled. Confirmed bookings need at
        least ``cancellation_notice_hours`` before the start, measured in the
        venue's timezone. Bookings without any payment are deleted; the rest
        are kept as cancelled for the payment audit trail.
        """
        booking = self.get_booking(booking_id)
        if not booking.is_owned_by(requester_id):
            raise ForbiddenException("You can only cancel your own bookings")

        if booking.status == BookingStatus.CONFIRMED.value:
            remaining = hours_until(booking.starts_at)
            if remaining < settings.cancellation_notice_hours:
                raise StateTransitionException(
                    f"Confirmed bookings can only be cancelled at least "
                    f"{settings.cancellation_notice_hours} hours before the start",
                    current_status=booking.status,
                    target_status=BookingStatus.CANCELLED.value,
                    details={"booking_id": booking.id, "hours_until_start": round(remaining, 2)},
                )
        elif not booking.can_transition_to(BookingStatus.CANCELLED.value):
            raise StateTransitionException(
                f"A {booking.status} booking cannot be cancelled",
                current_status=booking.status,
                target_status=BookingStatus.CANCELLED.value,
                details={"booking_id": booking.id},
            )

        customer_id = booking.customer_id
        field_id = booking.field_id
        booking_date = booking.booking_date

        with self.transaction():
            if self.payment_repository.has_payments(booking.id):
                booking.cancel(requester_id, utc_now())
                self.booking_repository.save(booking)
                result = CancellationResult(booking_id=booking.id, hard_deleted=False, booking=booking)
            else:
                self.booking_repository.delete(booking.id)
                result = CancellationResult(booking_id=booking_id, hard_deleted=True)

        self.log_operation(
            "cancel_booking",
            booking_id=booking_id,
            requester_id=requester_id,
            hard_deleted=result.hard_deleted,
        )
        self.invalidate_cache(
            CacheKeyBuilder.customer_bookings(customer_id),
            CacheKeyBuilder.field_availability(field_id, booking_date),
        )
        return result

    @BaseService.measure_operation("complete_booking")
    def complete_booking(self, booking_id: str, completed_at: Optional[datetime] = None) -> Booking:
        """Mark a confirmed booking as played."""
        booking = self.get_booking(booking_id)
        with self.transaction():
            booking.complete(completed_at or utc_now())
            self.booking_repository.save(booking)

        self.log_operation("complete_booking", booking_id=booking.id)
        self.invalidate_cache(CacheKeyBuilder.customer_bookings(booking.customer_id))
        return booking

    # Helpers

    @staticmethod
    def _ensure_pending(booking: Booking, action: str) -> None:
        if booking.status != BookingStatus.PENDING.value:
            raise StateTransitionException(
                f"Only pending bookings can be changed; this booking is {booking.status}",
                current_status=booking.status,
                details={"booking_id": booking.id, "action": action},
            )
