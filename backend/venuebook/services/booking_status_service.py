# backend/venuebook/services/booking_status_service.py
"""
Booking progress timeline.

``project_booking_status`` is a pure function of a booking and its latest
payment. Nothing here is stored: the view is rebuilt on every read so that
it can never drift from the records it describes.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import ForbiddenException, NotFoundException, ValidationException
from ..core.ulid_helper import is_valid_ulid
from ..models.booking import Booking, BookingStatus
from ..models.payment import Payment, PaymentStatus
from ..repositories import RepositoryFactory
from ..schemas.booking_status import (
    BookingProgress,
    BookingStatusView,
    Milestone,
    MilestoneKey,
    NextAction,
)
from .base import BaseService

logger = logging.getLogger(__name__)

TOTAL_MILESTONES = 4


def _next_action(booking: Booking, payment: Optional[Payment]) -> NextAction:
    if booking.status == BookingStatus.CANCELLED.value:
        return NextAction.NONE
    if booking.status == BookingStatus.CONFIRMED.value:
        return NextAction.NONE
    if payment is None:
        return NextAction.UPLOAD_PAYMENT
    if payment.status == PaymentStatus.PENDING.value:
        return NextAction.WAIT_VERIFICATION
    if payment.status == PaymentStatus.REJECTED.value:
        return NextAction.REUPLOAD_PAYMENT
    return NextAction.WAIT


def _timeline(booking: Booking, payment: Optional[Payment]) -> List[Milestone]:
    verified = payment is not None and payment.status == PaymentStatus.VERIFIED.value
    confirmed = booking.status == BookingStatus.CONFIRMED.value
    return [
        Milestone(
            label=MilestoneKey.CREATED,
            completed=True,
            timestamp=booking.created_at,
            description="Booking created",
        ),
        Milestone(
            label=MilestoneKey.PAYMENT_UPLOADED,
            completed=payment is not None,
            timestamp=payment.created_at if payment is not None else None,
            description="Payment proof uploaded",
        ),
        Milestone(
            label=MilestoneKey.PAYMENT_VERIFIED,
            completed=verified,
            timestamp=payment.verified_at if verified else None,
            description="Payment verified by cashier",
        ),
        Milestone(
            label=MilestoneKey.BOOKING_CONFIRMED,
            completed=confirmed,
            timestamp=booking.confirmed_at if confirmed else None,
            description="Booking confirmed",
        ),
    ]


def project_booking_status(booking: Booking, latest_payment: Optional[Payment]) -> BookingStatusView:
    """Build the progress view for a booking and its most recent payment."""
    timeline = _timeline(booking, latest_payment)
    completed = sum(1 for milestone in timeline if milestone.completed)
    return BookingStatusView(
        booking_id=booking.id,
        booking_status=booking.status,
        payment_status=booking.payment_status,
        latest_payment_id=latest_payment.id if latest_payment else None,
        latest_payment_status=latest_payment.status if latest_payment else None,
        rejection_reason=(
            latest_payment.rejection_reason
            if latest_payment and latest_payment.status == PaymentStatus.REJECTED.value
            else None
        ),
        timeline=timeline,
        progress=BookingProgress(
            completed_count=completed,
            total_steps=TOTAL_MILESTONES,
            completion_percentage=round(100 * completed / TOTAL_MILESTONES),
            next_action=_next_action(booking, latest_payment),
        ),
    )


class BookingStatusService(BaseService):
    """Read-only access to booking progress."""

    def __init__(self, db: Session):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.booking_repository = RepositoryFactory.create_booking_repository(db)
        self.payment_repository = RepositoryFactory.create_payment_repository(db)

    @BaseService.measure_operation("get_booking_status")
    def get_booking_status(
        self, booking_id: str, requester_id: Optional[str] = None
    ) -> BookingStatusView:
        """
        Progress view for one booking.

        Args:
            booking_id: Booking to describe
            requester_id: When given, the booking must belong to this customer
        """
        if not is_valid_ulid(booking_id):
            raise ValidationException("Invalid booking id", details={"booking_id": booking_id})
        booking = self.booking_repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        if requester_id is not None and not booking.is_owned_by(requester_id):
            raise ForbiddenException("You can only view your own bookings")
        latest = self.payment_repository.get_latest_for_booking(booking.id)
        return project_booking_status(booking, latest)
