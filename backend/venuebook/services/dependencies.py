# backend/venuebook/services/dependencies.py
"""
Dependency injection functions for services.

Usage in routes:
    booking_service: BookingService = Depends(get_booking_service)
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from ..database import get_db
from .booking_maintenance_service import BookingMaintenanceService
from .booking_service import BookingService
from .booking_status_service import BookingStatusService
from .cache_service import CacheService
from .conflict_checker import SlotAvailabilityChecker
from .notification_service import NotificationService
from .payment_service import PaymentVerificationService


@lru_cache(maxsize=1)
def get_cache_service() -> CacheService:
    """One cache client per process."""
    return CacheService()


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    return NotificationService()


def get_availability_checker(db: Session = Depends(get_db)) -> SlotAvailabilityChecker:
    return SlotAvailabilityChecker(db)


def get_booking_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
) -> BookingService:
    return BookingService(db, cache=cache)


def get_payment_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> PaymentVerificationService:
    return PaymentVerificationService(db, cache=cache, notifications=notifications)


def get_booking_status_service(db: Session = Depends(get_db)) -> BookingStatusService:
    return BookingStatusService(db)


def get_maintenance_service(
    db: Session = Depends(get_db),
    cache: CacheService = Depends(get_cache_service),
    notifications: NotificationService = Depends(get_notification_service),
) -> BookingMaintenanceService:
    return BookingMaintenanceService(db, cache=cache, notifications=notifications)
