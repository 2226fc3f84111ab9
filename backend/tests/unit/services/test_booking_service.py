# backend/tests/unit/services/test_booking_service.py
"""
Tests for BookingService against an in-memory database.

Covers creation and its slot checks, customer changes to pending
bookings, cancellation (hard delete vs soft cancel, notice period) and
completion.
"""

from datetime import time, timedelta

import pytest

from venuebook.core.exceptions import (
    ForbiddenException,
    NotFoundException,
    SlotConflictException,
    StateTransitionException,
    ValidationException,
)
from venuebook.core.timezone_utils import get_venue_today, utc_now, utc_to_venue
from venuebook.core.ulid_helper import generate_ulid
from venuebook.models import Booking, BookingPaymentStatus, BookingStatus, PaymentStatus
from venuebook.schemas.booking import BookingUpdate


def _confirmed_starting_in(make_booking, hours: int) -> Booking:
    """Confirmed booking starting on the hour, roughly ``hours`` from now."""
    local_start = utc_to_venue(utc_now() + timedelta(hours=hours))
    return make_booking(
        booking_date=local_start.date(),
        start_time=time(local_start.hour, 0),
        duration_hours=1,
        price=100_000,
        status=BookingStatus.CONFIRMED.value,
        payment_status=BookingPaymentStatus.FULLY_PAID.value,
    )


class TestCreateBooking:
    def test_creates_pending_booking(
        self, booking_service, field, customer_id, booking_day, cache
    ) -> None:
        before = utc_now()

        booking = booking_service.create_booking(
            customer_id, field.id, booking_day, time(10, 0), 2, notes="Futsal with friends"
        )

        assert booking.status == BookingStatus.PENDING.value
        assert booking.payment_status == BookingPaymentStatus.NO_PAYMENT.value
        assert booking.price == 200_000
        assert booking.notes == "Futsal with friends"
        deadline = booking.payment_deadline
        assert before + timedelta(hours=24) <= deadline <= utc_now() + timedelta(hours=24)
        cache.invalidate.assert_called_once_with(
            [f"bookings:{customer_id}", f"availability:{field.id}:{booking_day.isoformat()}"]
        )

    def test_overlap_is_rejected(self, booking_service, field, customer_id, booking_day) -> None:
        first = booking_service.create_booking(customer_id, field.id, booking_day, time(10, 0), 2)

        with pytest.raises(SlotConflictException) as exc_info:
            booking_service.create_booking(generate_ulid(), field.id, booking_day, time(11, 0), 2)

        assert exc_info.value.conflicting_booking_id == first.id

    def test_adjacent_bookings_are_accepted(
        self, booking_service, field, customer_id, booking_day
    ) -> None:
        booking_service.create_booking(customer_id, field.id, booking_day, time(10, 0), 2)

        later = booking_service.create_booking(customer_id, field.id, booking_day, time(12, 0), 1)
        earlier = booking_service.create_booking(customer_id, field.id, booking_day, time(9, 0), 1)

        assert later.interval.start_label == "12:00"
        assert earlier.interval.end_label == "10:00"

    def test_past_date_is_rejected(self, booking_service, field, customer_id) -> None:
        with pytest.raises(ValidationException, match="past"):
            booking_service.create_booking(
                customer_id, field.id, get_venue_today() - timedelta(days=1), time(10, 0), 1
            )

    def test_same_day_slot_that_already_started_is_rejected(
        self, booking_service, field, customer_id
    ) -> None:
        local_now = utc_to_venue(utc_now())

        with pytest.raises(ValidationException, match="minutes from now"):
            booking_service.create_booking(
                customer_id, field.id, local_now.date(), time(local_now.hour, 0), 1
            )

    def test_unknown_field(self, booking_service, customer_id, booking_day) -> None:
        with pytest.raises(NotFoundException):
            booking_service.create_booking(customer_id, generate_ulid(), booking_day, time(10, 0), 1)

    def test_cache_failure_does_not_undo_booking(
        self, booking_service, field, customer_id, booking_day, cache, db
    ) -> None:
        cache.invalidate.side_effect = RuntimeError("redis down")

        booking = booking_service.create_booking(customer_id, field.id, booking_day, time(10, 0), 1)

        assert db.get(Booking, booking.id) is not None


class TestUpdateBooking:
    def test_reschedule_reprices_and_stamps(
        self, booking_service, make_booking, customer_id, booking_day
    ) -> None:
        booking = make_booking(booking_date=booking_day)

        updated = booking_service.update_booking(
            booking.id,
            customer_id,
            BookingUpdate(start_time=time(14, 0), duration_hours=3),
        )

        assert updated.start_time == time(14, 0)
        assert updated.duration_hours == 3
        assert updated.price == 300_000
        assert updated.rescheduled_by_id == customer_id
        assert updated.rescheduled_at is not None

    def test_reschedule_may_overlap_its_own_slot(
        self, booking_service, make_booking, customer_id, booking_day
    ) -> None:
        booking = make_booking(booking_date=booking_day, start_time=time(10, 0), duration_hours=2)

        updated = booking_service.update_booking(
            booking.id, customer_id, BookingUpdate(start_time=time(11, 0))
        )

        assert updated.start_time == time(11, 0)
        assert updated.price == 200_000

    def test_reschedule_into_other_booking_conflicts(
        self, booking_service, make_booking, customer_id, booking_day
    ) -> None:
        booking = make_booking(booking_date=booking_day, start_time=time(10, 0))
        make_booking(booking_date=booking_day, start_time=time(14, 0), customer_id=generate_ulid())

        with pytest.raises(SlotConflictException):
            booking_service.update_booking(
                booking.id, customer_id, BookingUpdate(start_time=time(13, 0))
            )

    def test_reschedule_to_a_started_slot_today_is_rejected(
        self, booking_service, make_booking, customer_id, db
    ) -> None:
        booking = make_booking()
        local_now = utc_to_venue(utc_now())

        with pytest.raises(ValidationException, match="minutes from now"):
            booking_service.update_booking(
                booking.id,
                customer_id,
                BookingUpdate(booking_date=local_now.date(), start_time=time(local_now.hour, 0)),
            )

        db.refresh(booking)
        assert booking.start_time == time(10, 0)

    def test_notes_only(self, booking_service, make_booking, customer_id) -> None:
        booking = make_booking()

        updated = booking_service.update_booking(
            booking.id, customer_id, BookingUpdate(notes="Bring bibs")
        )

        assert updated.notes == "Bring bibs"
        assert updated.rescheduled_at is None

    def test_other_customer_is_forbidden(self, booking_service, make_booking) -> None:
        booking = make_booking()

        with pytest.raises(ForbiddenException):
            booking_service.update_booking(
                booking.id, generate_ulid(), BookingUpdate(notes="mine now")
            )

    def test_confirmed_booking_cannot_change(
        self, booking_service, make_booking, customer_id
    ) -> None:
        booking = make_booking(status=BookingStatus.CONFIRMED.value)

        with pytest.raises(StateTransitionException):
            booking_service.update_booking(
                booking.id, customer_id, BookingUpdate(start_time=time(15, 0))
            )


class TestCancelBooking:
    def test_unpaid_booking_is_deleted(
        self, booking_service, make_booking, customer_id, db
    ) -> None:
        booking = make_booking()

        result = booking_service.cancel_booking(booking.id, customer_id)

        assert result.hard_deleted is True
        assert result.booking is None
        assert db.get(Booking, booking.id) is None

    def test_booking_with_payment_is_soft_cancelled(
        self, booking_service, make_booking, make_payment, customer_id
    ) -> None:
        booking = make_booking(payment_status=BookingPaymentStatus.PENDING_VERIFICATION.value)
        make_payment(booking, status=PaymentStatus.REJECTED.value, rejection_reason="Blurry photo")

        result = booking_service.cancel_booking(booking.id, customer_id)

        assert result.hard_deleted is False
        assert result.booking.status == BookingStatus.CANCELLED.value
        assert result.booking.cancelled_by_id == customer_id
        assert result.booking.cancelled_at is not None

    def test_cancelled_slot_can_be_rebooked(
        self, booking_service, make_booking, make_payment, field, customer_id, booking_day
    ) -> None:
        booking = make_booking(booking_date=booking_day)
        make_payment(booking, status=PaymentStatus.REJECTED.value, rejection_reason="Wrong amount")
        booking_service.cancel_booking(booking.id, customer_id)

        again = booking_service.create_booking(
            generate_ulid(), field.id, booking_day, time(10, 0), 2
        )

        assert again.status == BookingStatus.PENDING.value

    def test_confirmed_inside_notice_period_fails(
        self, booking_service, make_booking, customer_id
    ) -> None:
        booking = _confirmed_starting_in(make_booking, 2)

        with pytest.raises(StateTransitionException) as exc_info:
            booking_service.cancel_booking(booking.id, customer_id)

        assert exc_info.value.details["hours_until_start"] < 24

    def test_confirmed_well_ahead_can_cancel(
        self, booking_service, make_booking, make_payment, customer_id
    ) -> None:
        booking = _confirmed_starting_in(make_booking, 48)
        make_payment(booking, status=PaymentStatus.VERIFIED.value)

        result = booking_service.cancel_booking(booking.id, customer_id)

        assert result.hard_deleted is False
        assert result.booking.status == BookingStatus.CANCELLED.value

    @pytest.mark.parametrize(
        "status",
        [BookingStatus.CANCELLED.value, BookingStatus.COMPLETED.value, BookingStatus.EXPIRED.value],
    )
    def test_terminal_booking_cannot_cancel(
        self, booking_service, make_booking, customer_id, status: str
    ) -> None:
        booking = make_booking(status=status)

        with pytest.raises(StateTransitionException):
            booking_service.cancel_booking(booking.id, customer_id)

    def test_other_customer_is_forbidden(self, booking_service, make_booking) -> None:
        booking = make_booking()

        with pytest.raises(ForbiddenException):
            booking_service.cancel_booking(booking.id, generate_ulid())


class TestCompleteBooking:
    def test_confirmed_booking_completes(self, booking_service, make_booking) -> None:
        booking = make_booking(status=BookingStatus.CONFIRMED.value)

        completed = booking_service.complete_booking(booking.id)

        assert completed.status == BookingStatus.COMPLETED.value
        assert completed.completed_at is not None

    def test_pending_booking_cannot_complete(self, booking_service, make_booking, db) -> None:
        booking = make_booking()

        with pytest.raises(StateTransitionException):
            booking_service.complete_booking(booking.id)

        db.refresh(booking)
        assert booking.status == BookingStatus.PENDING.value


def test_customer_bookings_hide_cancelled(booking_service, make_booking, customer_id) -> None:
    kept = make_booking(start_time=time(10, 0))
    make_booking(start_time=time(14, 0), status=BookingStatus.CANCELLED.value)

    assert [b.id for b in booking_service.get_customer_bookings(customer_id)] == [kept.id]
    assert len(booking_service.get_customer_bookings(customer_id, include_cancelled=True)) == 2


def test_get_booking_for_customer_checks_owner(booking_service, make_booking, customer_id) -> None:
    booking = make_booking()

    assert booking_service.get_booking_for_customer(booking.id, customer_id).id == booking.id
    with pytest.raises(ForbiddenException):
        booking_service.get_booking_for_customer(booking.id, generate_ulid())
    with pytest.raises(NotFoundException):
        booking_service.get_booking(generate_ulid())
