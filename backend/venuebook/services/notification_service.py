# backend/venuebook/services/notification_service.py
"""
Customer notifications for booking events.

Delivery (SMS, push) belongs to an external provider. This module builds
the event payload and hands it to a sender callable; the default sender
only logs. Callers treat every notification as fire-and-forget.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Dict, Optional, Protocol

from ..core.timezone_utils import utc_now
from ..models.booking import Booking
from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

EVENT_BOOKING_CONFIRMED = "booking_confirmed"
EVENT_PREPARATION_REMINDER = "preparation_reminder"


class NotificationPort(Protocol):
    def on_booking_confirmed(self, booking: Booking) -> None:
        ...

    def send_preparation_reminder(self, booking: Booking) -> None:
        ...


@dataclass(slots=True)
class NotificationEvent:
    event_type: str
    customer_id: str
    booking_id: str
    payload: Dict[str, Any] = field(default_factory=dict)


def _log_sender(event: NotificationEvent) -> None:
    logger.info(
        f"Notification {event.event_type} for booking {event.booking_id}",
        extra={"event_type": event.event_type, "customer_id": event.customer_id},
    )


class NotificationService:
    """Builds booking notifications and passes them to a sender."""

    def __init__(self, sender: Optional[Callable[[NotificationEvent], None]] = None):
        self.sender = sender or _log_sender
        self.logger = logging.getLogger(__name__)

    def _dispatch(self, event: NotificationEvent) -> None:
        try:
            self.sender(event)
        except Exception:
            prometheus_metrics.record_notification(event.event_type, "failed")
            raise
        prometheus_metrics.record_notification(event.event_type, "sent")

    @staticmethod
    def _booking_payload(booking: Booking) -> Dict[str, Any]:
        return {
            "field_id": booking.field_id,
            "booking_date": booking.booking_date.isoformat(),
            "start_time": booking.interval.start_label,
            "end_time": booking.end_label,
            "price": booking.price,
            "payment_status": booking.payment_status,
        }

    def on_booking_confirmed(self, booking: Booking) -> None:
        self._dispatch(
            NotificationEvent(
                event_type=EVENT_BOOKING_CONFIRMED,
                customer_id=booking.customer_id,
                booking_id=booking.id,
                payload=self._booking_payload(booking),
            )
        )

    def send_preparation_reminder(self, booking: Booking) -> None:
        payload = self._booking_payload(booking)
        payload["minutes_until_start"] = max(
            0, int((booking.starts_at - utc_now()).total_seconds() // 60)
        )
        self._dispatch(
            NotificationEvent(
                event_type=EVENT_PREPARATION_REMINDER,
                customer_id=booking.customer_id,
                booking_id=booking.id,
                payload=payload,
            )
        )
