# backend/venuebook/services/conflict_checker.py
"""
Slot availability checks for the venue booking backend.

Decides whether a field is free for a requested date, start time and
duration. Intervals are half-open ``[start, start + duration)``, so a
booking that ends at 12:00 never conflicts with one that starts at 12:00.
Only pending and confirmed bookings occupy a slot.

The checker reads; it never writes. Callers that insert after a positive
check must hold the slot lock across check and commit.
"""

from dataclasses import dataclass
from datetime import date, time
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.exceptions import (
    FieldUnavailableException,
    NotFoundException,
    SlotConflictException,
    ValidationException,
)
from ..core.validators import validate_duration, validate_start_time
from ..models.booking import Booking
from ..models.field import Field
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.field_repository import FieldRepository
from ..schemas.booking import AvailabilityResult, BookedSlot, SlotConflictDetail
from ..utils.time_slots import SlotInterval
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotEvaluation:
    field: Field
    interval: SlotInterval
    conflict: Optional[Booking]


class SlotAvailabilityChecker(BaseService):
    """
    Service for checking whether a field slot can be booked.

    Failure order: bad duration or start time, unknown field, field closed
    for booking, slot outside operating hours, overlap with an active
    booking.
    """

    def __init__(
        self,
        db: Session,
        field_repository: Optional[FieldRepository] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db)
        self.logger = logging.getLogger(__name__)
        self.field_repository = field_repository or RepositoryFactory.create_field_repository(db)
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )

    def get_field(self, field_id: str) -> Field:
        field = self.field_repository.get_by_id(field_id)
        if not field:
            raise NotFoundException(f"Field {field_id} not found", details={"field_id": field_id})
        return field

    def get_bookable_field(self, field_id: str) -> Field:
        field = self.get_field(field_id)
        if not field.is_available:
            raise FieldUnavailableException(field_id, field.status)
        return field

    @staticmethod
    def validate_operating_hours(field: Field, interval: SlotInterval) -> None:
        window = field.operating_window
        if not window.contains(interval):
            raise ValidationException(
                f"Requested time {interval} is outside operating hours {window}",
                details={
                    "field_id": field.id,
                    "requested": str(interval),
                    "operating_hours": str(window),
                },
            )

    def find_conflict(
        self,
        field_id: str,
        booking_date: date,
        interval: SlotInterval,
        exclude_booking_id: Optional[str] = None,
    ) -> Optional[Booking]:
        """First active booking whose interval overlaps the requested one."""
        candidates = self.booking_repository.get_active_bookings_for_slot(
            field_id, booking_date, exclude_booking_id
        )
        for booking in candidates:
            if interval.overlaps(booking.interval):
                return booking
        return None

    def _evaluate(
        self,
        field_id: str,
        booking_date: date,
        start_time: time,
        duration_hours: int,
        exclude_booking_id: Optional[str],
    ) -> SlotEvaluation:
        validate_duration(duration_hours)
        validate_start_time(start_time)
        field = self.get_bookable_field(field_id)
        interval = SlotInterval.from_start(start_time, duration_hours)
        self.validate_operating_hours(field, interval)
        conflict = self.find_conflict(field_id, booking_date, interval, exclude_booking_id)
        if conflict is not None:
            self.logger.warning(
                f"Slot conflict on field {field_id} {booking_date} {interval}: "
                f"overlaps booking {conflict.id} ({conflict.interval}, {conflict.status})"
            )
        return SlotEvaluation(field=field, interval=interval, conflict=conflict)

    @BaseService.measure_operation("ensure_available")
    def ensure_available(
        self,
        field_id: str,
        booking_date: date,
        start_time: time,
        duration_hours: int,
        exclude_booking_id: Optional[str] = None,
    ) -> Field:
        """
        Raise unless the slot can be booked.

        Returns:
            The field, so that callers can price the booking

        Raises:
            ValidationException: bad duration/start or outside operating hours
            NotFoundException: unknown field
            FieldUnavailableException: field not open for booking
            SlotConflictException: overlap with an active booking
        """
        evaluation = self._evaluate(
            field_id, booking_date, start_time, duration_hours, exclude_booking_id
        )
        if evaluation.conflict is not None:
            conflict = evaluation.conflict
            raise SlotConflictException(
                f"Time slot {evaluation.interval} conflicts with booking "
                f"{conflict.interval} on {booking_date}",
                details={
                    "booking_id": conflict.id,
                    "field_id": field_id,
                    "booking_date": booking_date.isoformat(),
                    "start_time": conflict.interval.start_label,
                    "end_time": conflict.interval.end_label,
                    "status": conflict.status,
                },
            )
        return evaluation.field

    @BaseService.measure_operation("check_availability")
    def check_availability(
        self,
        field_id: str,
        booking_date: date,
        start_time: time,
        duration_hours: int,
        exclude_booking_id: Optional[str] = None,
    ) -> AvailabilityResult:
        """
        Report whether the slot is free.

        Overlaps are reported in the result; invalid input and unknown or
        closed fields still raise.
        """
        evaluation = self._evaluate(
            field_id, booking_date, start_time, duration_hours, exclude_booking_id
        )
        conflict_detail = None
        if evaluation.conflict is not None:
            conflict_detail = SlotConflictDetail(
                booking_id=evaluation.conflict.id,
                start_time=evaluation.conflict.interval.start_label,
                end_time=evaluation.conflict.interval.end_label,
                status=evaluation.conflict.status,
            )
        return AvailabilityResult(
            field_id=field_id,
            booking_date=booking_date,
            start_time=evaluation.interval.start_label,
            end_time=evaluation.interval.end_label,
            available=conflict_detail is None,
            conflict=conflict_detail,
        )

    @BaseService.measure_operation("get_booked_slots")
    def get_booked_slots(self, field_id: str, booking_date: date) -> List[BookedSlot]:
        """Active booking intervals on a field for one date, ordered by start."""
        self.get_field(field_id)
        return [
            BookedSlot(
                booking_id=booking.id,
                start_time=booking.interval.start_label,
                end_time=booking.interval.end_label,
                status=booking.status,
            )
            for booking in self.booking_repository.get_active_bookings_for_slot(
                field_id, booking_date
            )
        ]
