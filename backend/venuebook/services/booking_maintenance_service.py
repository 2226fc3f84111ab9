# backend/venuebook/services/booking_maintenance_service.py
"""
Periodic booking housekeeping.

Two entry points meant to be called by an external scheduler (cron, a
worker beat). Neither knows when it runs; both take ``now`` so a run is
reproducible.
"""

from datetime import datetime, timedelta
import logging
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.timezone_utils import ensure_utc, get_venue_today, utc_now
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from .base import BaseService
from .cache_service import CacheKeyBuilder

if TYPE_CHECKING:
    from .cache_service import CacheInvalidationPort
    from .notification_service import NotificationPort

logger = logging.getLogger(__name__)


class BookingMaintenanceService(BaseService):
    def __init__(
        self,
        db: Session,
        cache: Optional["CacheInvalidationPort"] = None,
        notifications: Optional["NotificationPort"] = None,
        booking_repository: Optional[BookingRepository] = None,
    ):
        super().__init__(db, cache)
        self.logger = logging.getLogger(__name__)
        self.notifications = notifications
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )

    @BaseService.measure_operation("sweep_expired_bookings")
    def sweep_expired_bookings(self, now: Optional[datetime] = None) -> List[Booking]:
        """
        Expire pending bookings that never received a payment in time.

        Returns:
            The bookings moved to expired
        """
        current = ensure_utc(now) if now else utc_now()
        with self.transaction():
            expired = self.booking_repository.get_unpaid_past_deadline(current)
            for booking in expired:
                booking.expire(current)
                self.booking_repository.save(booking)

        if expired:
            prometheus_metrics.inc_maintenance("expired", len(expired))
            self.log_operation(
                "sweep_expired_bookings",
                count=len(expired),
                booking_ids=[booking.id for booking in expired],
            )
            keys = set()
            for booking in expired:
                keys.add(CacheKeyBuilder.customer_bookings(booking.customer_id))
                keys.add(CacheKeyBuilder.field_availability(booking.field_id, booking.booking_date))
            self.invalidate_cache(*sorted(keys))
        return expired

    @BaseService.measure_operation("collect_preparation_reminders")
    def collect_preparation_reminders(self, now: Optional[datetime] = None) -> List[Booking]:
        """
        Flag confirmed bookings starting within the reminder window and notify
        their customers. Each booking is reminded at most once.
        """
        current = ensure_utc(now) if now else utc_now()
        window_end = current + timedelta(minutes=settings.preparation_reminder_minutes)

        with self.transaction():
            candidates = self.booking_repository.get_unreminded_confirmed_between(
                get_venue_today(current), get_venue_today(window_end)
            )
            due = [b for b in candidates if current <= b.starts_at <= window_end]
            for booking in due:
                booking.preparation_reminder_sent = True
                self.booking_repository.save(booking)

        for booking in due:
            self._send_reminder(booking)

        if due:
            prometheus_metrics.inc_maintenance("reminded", len(due))
            self.log_operation("collect_preparation_reminders", count=len(due))
        return due

    def _send_reminder(self, booking: Booking) -> None:
        if not self.notifications:
            return
        try:
            self.notifications.send_preparation_reminder(booking)
        except Exception as e:
            self.logger.warning(f"Preparation reminder failed for booking {booking.id}: {e}")
