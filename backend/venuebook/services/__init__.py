"""Business logic layer."""

from .booking_maintenance_service import BookingMaintenanceService
from .booking_service import BookingService, CancellationResult
from .booking_status_service import BookingStatusService, project_booking_status
from .conflict_checker import SlotAvailabilityChecker
from .payment_service import PaymentVerificationService, calculate_payment_summary

__all__ = [
    "BookingMaintenanceService",
    "BookingService",
    "BookingStatusService",
    "CancellationResult",
    "PaymentVerificationService",
    "SlotAvailabilityChecker",
    "calculate_payment_summary",
    "project_booking_status",
]
