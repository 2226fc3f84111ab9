# backend/tests/unit/services/test_booking_status_service.py
"""
Tests for the booking progress timeline.
"""

from datetime import timedelta

import pytest

from venuebook.core.exceptions import ForbiddenException, NotFoundException, ValidationException
from venuebook.core.timezone_utils import utc_now
from venuebook.core.ulid_helper import generate_ulid
from venuebook.models import BookingPaymentStatus, BookingStatus, PaymentStatus
from venuebook.schemas.booking_status import MilestoneKey, NextAction
from venuebook.services.booking_status_service import BookingStatusService, project_booking_status


def _completed(view):
    return [milestone.label for milestone in view.timeline if milestone.completed]


class TestProjection:
    def test_new_booking(self, make_booking) -> None:
        view = project_booking_status(make_booking(), None)

        assert _completed(view) == [MilestoneKey.CREATED]
        assert view.progress.completed_count == 1
        assert view.progress.total_steps == 4
        assert view.progress.completion_percentage == 25
        assert view.progress.next_action == NextAction.UPLOAD_PAYMENT
        assert view.latest_payment_id is None

    def test_payment_waiting_for_review(self, make_booking, make_payment) -> None:
        booking = make_booking(payment_status=BookingPaymentStatus.PENDING_VERIFICATION.value)
        payment = make_payment(booking)

        view = project_booking_status(booking, payment)

        assert _completed(view) == [MilestoneKey.CREATED, MilestoneKey.PAYMENT_UPLOADED]
        assert view.progress.completion_percentage == 50
        assert view.progress.next_action == NextAction.WAIT_VERIFICATION
        assert view.timeline[1].timestamp is not None

    def test_rejected_payment_asks_for_reupload(self, make_booking, make_payment) -> None:
        booking = make_booking()
        payment = make_payment(
            booking, status=PaymentStatus.REJECTED.value, rejection_reason="Blurry photo"
        )

        view = project_booking_status(booking, payment)

        assert view.progress.next_action == NextAction.REUPLOAD_PAYMENT
        assert view.rejection_reason == "Blurry photo"
        assert view.progress.completion_percentage == 50

    def test_confirmed_booking_is_complete(self, make_booking, make_payment) -> None:
        now = utc_now()
        booking = make_booking(
            status=BookingStatus.CONFIRMED.value,
            payment_status=BookingPaymentStatus.FULLY_PAID.value,
            confirmed_at=now,
        )
        payment = make_payment(booking, status=PaymentStatus.VERIFIED.value, verified_at=now)

        view = project_booking_status(booking, payment)

        assert view.progress.completed_count == 4
        assert view.progress.completion_percentage == 100
        assert view.progress.next_action == NextAction.NONE
        assert view.rejection_reason is None
        assert all(milestone.timestamp is not None for milestone in view.timeline)

    def test_cancelled_booking_needs_nothing(self, make_booking) -> None:
        view = project_booking_status(make_booking(status=BookingStatus.CANCELLED.value), None)

        assert view.progress.next_action == NextAction.NONE

    def test_expired_unpaid_booking_still_asks_for_payment(self, make_booking) -> None:
        booking = make_booking(
            status=BookingStatus.EXPIRED.value,
            payment_status=BookingPaymentStatus.EXPIRED.value,
        )

        view = project_booking_status(booking, None)

        assert view.progress.next_action == NextAction.UPLOAD_PAYMENT

    def test_completed_booking_falls_through_to_wait(self, make_booking, make_payment) -> None:
        booking = make_booking(
            status=BookingStatus.COMPLETED.value,
            payment_status=BookingPaymentStatus.FULLY_PAID.value,
        )
        payment = make_payment(booking, status=PaymentStatus.VERIFIED.value)

        view = project_booking_status(booking, payment)

        assert view.progress.next_action == NextAction.WAIT


class TestBookingStatusService:
    def test_uses_latest_payment(self, db, make_booking, make_payment) -> None:
        booking = make_booking()
        now = utc_now()
        make_payment(
            booking,
            status=PaymentStatus.REPLACED.value,
            rejection_reason="Wrong amount",
            created_at=now - timedelta(hours=2),
        )
        latest = make_payment(booking, created_at=now - timedelta(minutes=10))

        view = BookingStatusService(db).get_booking_status(booking.id)

        assert view.latest_payment_id == latest.id
        assert view.rejection_reason is None
        assert view.progress.next_action == NextAction.WAIT_VERIFICATION

    def test_invalid_id(self, db) -> None:
        with pytest.raises(ValidationException):
            BookingStatusService(db).get_booking_status("not-a-ulid")

    def test_unknown_booking(self, db) -> None:
        with pytest.raises(NotFoundException):
            BookingStatusService(db).get_booking_status(generate_ulid())

    def test_other_customer_is_forbidden(self, db, make_booking) -> None:
        booking = make_booking()

        with pytest.raises(ForbiddenException):
            BookingStatusService(db).get_booking_status(booking.id, requester_id=generate_ulid())
