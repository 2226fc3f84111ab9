# backend/venuebook/repositories/payment_repository.py
"""
Payment Repository for the venue booking backend.

"Latest" means most recently created; ties on ``created_at`` fall back to
the ULID, which is itself time ordered.
"""

import logging
from typing import List, Optional

from sqlalchemy.orm import Query, Session, joinedload

from ..models.payment import OPEN_PAYMENT_STATUSES, Payment, PaymentStatus
from .base_repository import BaseRepository


class PaymentRepository(BaseRepository[Payment]):
    def __init__(self, db: Session):
        super().__init__(db, Payment)
        self.logger = logging.getLogger(__name__)

    def _apply_eager_loading(self, query: Query) -> Query:
        return query.options(joinedload(Payment.booking))

    def _newest_first(self, query: Query) -> Query:
        return query.order_by(Payment.created_at.desc(), Payment.id.desc())

    def get_open_payment_for_booking(self, booking_id: str) -> Optional[Payment]:
        """The pending or verified payment of a booking, if any."""
        query = self._build_query().filter(
            Payment.booking_id == booking_id,
            Payment.status.in_(sorted(OPEN_PAYMENT_STATUSES)),
        )
        return self._execute_first(self._newest_first(query))

    def get_rejected_for_booking(self, booking_id: str) -> List[Payment]:
        query = self._build_query().filter(
            Payment.booking_id == booking_id,
            Payment.status == PaymentStatus.REJECTED.value,
        )
        return self._execute_query(query)

    def get_latest_for_booking(self, booking_id: str) -> Optional[Payment]:
        query = self._build_query().filter(Payment.booking_id == booking_id)
        return self._execute_first(self._newest_first(query))

    def has_payments(self, booking_id: str) -> bool:
        return self.exists(booking_id=booking_id)

    def get_pending_payments(self) -> List[Payment]:
        """Payments waiting for a cashier, oldest first."""
        query = self._apply_eager_loading(self._build_query()).filter(
            Payment.status == PaymentStatus.PENDING.value
        )
        return self._execute_query(query.order_by(Payment.created_at, Payment.id))

    def get_customer_payments(self, customer_id: str) -> List[Payment]:
        query = self._apply_eager_loading(self._build_query()).filter(
            Payment.customer_id == customer_id
        )
        return self._execute_query(self._newest_first(query))
