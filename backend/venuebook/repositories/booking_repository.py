# backend/venuebook/repositories/booking_repository.py
"""
Booking Repository for the venue booking backend.

Slot queries filter on field, date and the active statuses; the composite
index ``ix_bookings_field_date_status`` covers them.
"""

from datetime import date, datetime
import logging
from typing import List, Optional, cast

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session, joinedload

from ..core.exceptions import RepositoryException
from ..models.booking import (
    ACTIVE_BOOKING_STATUSES,
    Booking,
    BookingPaymentStatus,
    BookingStatus,
)
from .base_repository import BaseRepository


class BookingRepository(BaseRepository[Booking]):
    def __init__(self, db: Session):
        super().__init__(db, Booking)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(Booking.field))

    # Slot queries

    def get_active_bookings_for_slot(
        self,
        field_id: str,
        booking_date: date,
        exclude_booking_id: Optional[str] = None,
    ) -> List[Booking]:
        """
        Pending and confirmed bookings on a field for one date.

        Args:
            field_id: Field to check
            booking_date: Venue-local date
            exclude_booking_id: Booking being rescheduled, if any

        Returns:
            Bookings ordered by start time
        """
        try:
            query = self.db.query(Booking).filter(
                Booking.field_id == field_id,
                Booking.booking_date == booking_date,
                Booking.status.in_(sorted(ACTIVE_BOOKING_STATUSES)),
            )
            if exclude_booking_id:
                query = query.filter(Booking.id != exclude_booking_id)
            return cast(List[Booking], query.order_by(Booking.start_time).all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error getting bookings for slot check: {str(e)}")
            raise RepositoryException(f"Failed to get slot bookings: {str(e)}")

    # Customer queries

    def get_customer_bookings(
        self, customer_id: str, include_cancelled: bool = False
    ) -> List[Booking]:
        """Bookings of one customer, newest first."""
        query = self._apply_eager_loading(self._build_query()).filter(
            Booking.customer_id == customer_id
        )
        if not include_cancelled:
            query = query.filter(Booking.status != BookingStatus.CANCELLED.value)
        return self._execute_query(query.order_by(Booking.created_at.desc(), Booking.id.desc()))

    # Maintenance queries

    def get_unpaid_past_deadline(self, now: datetime) -> List[Booking]:
        """Pending bookings without a payment whose payment window has closed."""
        query = self._build_query().filter(
            Booking.status == BookingStatus.PENDING.value,
            Booking.payment_status == BookingPaymentStatus.NO_PAYMENT.value,
            Booking.payment_deadline < now,
        )
        return self._execute_query(query.order_by(Booking.payment_deadline))

    def get_unreminded_confirmed_between(self, date_from: date, date_to: date) -> List[Booking]:
        """Confirmed bookings in a date range that have not been reminded yet."""
        query = self._build_query().filter(
            Booking.status == BookingStatus.CONFIRMED.value,
            Booking.preparation_reminder_sent.is_(False),
            Booking.booking_date >= date_from,
            Booking.booking_date <= date_to,
        )
        return self._execute_query(query.order_by(Booking.booking_date, Booking.start_time))
