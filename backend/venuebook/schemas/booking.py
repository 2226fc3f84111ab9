"""
Booking payloads and slot read models.

Range rules (duration bounds, on-the-hour starts, booking window) live in
``core.validators`` so that every caller gets the same domain errors.
"""

from datetime import date, time
from typing import Any, Dict, Optional

from pydantic import Field

from .base import StandardizedModel, StrictModel


class BookingUpdate(StrictModel):
    """
    Patch for a pending booking.

    Only the slot and the customer note can change; unset fields keep
    their current value.
    """

    booking_date: Optional[date] = None
    start_time: Optional[time] = None
    duration_hours: Optional[int] = None
    notes: Optional[str] = Field(None, max_length=500)

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude_none=True)


class BookedSlot(StandardizedModel):
    booking_id: str
    start_time: str
    end_time: str
    status: str


class SlotConflictDetail(StandardizedModel):
    booking_id: str
    start_time: str
    end_time: str
    status: str


class AvailabilityResult(StandardizedModel):
    field_id: str
    booking_date: date
    start_time: str
    end_time: str
    available: bool
    conflict: Optional[SlotConflictDetail] = None
