"""
Read model for the booking progress timeline.

Never persisted; rebuilt from the booking and its latest payment on every
read.
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from .base import StandardizedModel


class MilestoneKey(str, Enum):
    CREATED = "created"
    PAYMENT_UPLOADED = "payment_uploaded"
    PAYMENT_VERIFIED = "payment_verified"
    BOOKING_CONFIRMED = "booking_confirmed"


class NextAction(str, Enum):
    NONE = "none"
    UPLOAD_PAYMENT = "upload_payment"
    WAIT_VERIFICATION = "wait_verification"
    REUPLOAD_PAYMENT = "reupload_payment"
    WAIT = "wait"


class Milestone(StandardizedModel):
    label: MilestoneKey
    completed: bool
    timestamp: Optional[datetime] = None
    description: str


class BookingProgress(StandardizedModel):
    completed_count: int
    total_steps: int
    completion_percentage: int
    next_action: NextAction


class BookingStatusView(StandardizedModel):
    booking_id: str
    booking_status: str
    payment_status: str
    latest_payment_id: Optional[str] = None
    latest_payment_status: Optional[str] = None
    rejection_reason: Optional[str] = None
    timeline: List[Milestone] = Field(default_factory=list)
    progress: BookingProgress
