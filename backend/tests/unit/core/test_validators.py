from datetime import date, datetime, time, timedelta, timezone

import pytest

from venuebook.core.exceptions import ValidationException
from venuebook.core.timezone_utils import get_venue_today, utc_now
from venuebook.core.validators import (
    validate_booking_date,
    validate_duration,
    validate_rejection_reason,
    validate_same_day_lead,
    validate_sender_name,
    validate_start_time,
    validate_transfer_amount,
    validate_transfer_date,
    validate_transfer_reference,
)


class TestBookingInputRules:
    @pytest.mark.parametrize("duration", [1, 4, 8])
    def test_duration_within_bounds(self, duration: int) -> None:
        validate_duration(duration)

    @pytest.mark.parametrize("duration", [0, -1, 9, True, 2.5])
    def test_duration_rejected(self, duration) -> None:
        with pytest.raises(ValidationException):
            validate_duration(duration)

    def test_start_time_must_be_on_the_hour(self) -> None:
        validate_start_time(time(10, 0))
        with pytest.raises(ValidationException):
            validate_start_time(time(10, 30))

    def test_booking_date_window(self) -> None:
        today = get_venue_today()
        validate_booking_date(today)
        validate_booking_date(today + timedelta(days=30))

        with pytest.raises(ValidationException, match="past"):
            validate_booking_date(today - timedelta(days=1))
        with pytest.raises(ValidationException, match="30 days"):
            validate_booking_date(today + timedelta(days=31))

    def test_same_day_start_needs_an_hour_of_lead(self) -> None:
        # 10:00 at the venue (UTC+7)
        now = datetime(2030, 1, 15, 3, 0, tzinfo=timezone.utc)
        today = date(2030, 1, 15)

        validate_same_day_lead(today, time(12, 0), now=now)
        validate_same_day_lead(today + timedelta(days=1), time(8, 0), now=now)

        with pytest.raises(ValidationException, match="60 minutes"):
            validate_same_day_lead(today, time(11, 0), now=now)
        with pytest.raises(ValidationException, match="60 minutes"):
            validate_same_day_lead(today, time(9, 0), now=now)


class TestPaymentInputRules:
    def test_rejection_reason_min_length(self) -> None:
        assert validate_rejection_reason("  blurry  ") == "blurry"
        with pytest.raises(ValidationException):
            validate_rejection_reason("bad")
        with pytest.raises(ValidationException):
            validate_rejection_reason(None)

    def test_sender_name_length(self) -> None:
        assert validate_sender_name(" Budi ") == "Budi"
        with pytest.raises(ValidationException):
            validate_sender_name("B")
        with pytest.raises(ValidationException):
            validate_sender_name("x" * 101)

    def test_transfer_reference_is_optional(self) -> None:
        assert validate_transfer_reference(None) is None
        assert validate_transfer_reference("   ") is None
        assert validate_transfer_reference("TRX123456") == "TRX123456"
        with pytest.raises(ValidationException):
            validate_transfer_reference("12345")
        with pytest.raises(ValidationException):
            validate_transfer_reference("x" * 21)

    def test_transfer_date_window(self) -> None:
        now = utc_now()
        validate_transfer_date(now - timedelta(days=6), now=now)

        with pytest.raises(ValidationException, match="future"):
            validate_transfer_date(now + timedelta(minutes=5), now=now)
        with pytest.raises(ValidationException, match="7 days"):
            validate_transfer_date(now - timedelta(days=8), now=now)

    def test_transfer_date_accepts_naive_utc(self) -> None:
        now = utc_now()
        validate_transfer_date((now - timedelta(hours=1)).replace(tzinfo=None), now=now)

    def test_transfer_amount_must_match(self) -> None:
        validate_transfer_amount(200_000, 200_000)
        with pytest.raises(ValidationException):
            validate_transfer_amount(199_999, 200_000)
