# backend/venuebook/models/payment.py
"""
Payment model.

A payment is a customer's claim that money was transferred for a booking,
backed by a proof image stored elsewhere. A cashier verifies or rejects it;
rejected payments are superseded (``replaced``) when the customer submits
again. Payments are never deleted.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
import ulid

from ..database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PaymentType(str, Enum):
    FULL = "full"
    DP = "dp"  # Fixed down payment


class PaymentStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"
    REPLACED = "replaced"


# At most one payment per booking may be in one of these
OPEN_PAYMENT_STATUSES: FrozenSet[str] = frozenset(
    {PaymentStatus.PENDING.value, PaymentStatus.VERIFIED.value}
)

APPROVABLE_PAYMENT_STATUSES: FrozenSet[str] = frozenset(
    {PaymentStatus.PENDING.value, PaymentStatus.REJECTED.value}
)


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    booking_id = Column(String(26), ForeignKey("bookings.id"), nullable=False)
    customer_id = Column(String(26), nullable=False, index=True)

    payment_type = Column(String(10), nullable=False)
    amount = Column(Integer, nullable=False)
    total_booking_amount = Column(Integer, nullable=False)
    remaining_amount = Column(Integer, nullable=False, default=0)
    proof_ref = Column(String(500), nullable=False)

    # Transfer details as reported by the customer
    sender_name = Column(String(100), nullable=False)
    transfer_amount = Column(Integer, nullable=False)
    transfer_date = Column(DateTime(timezone=True), nullable=False)
    transfer_reference = Column(String(20), nullable=True)
    customer_notes = Column(Text, nullable=True)

    status = Column(String(20), nullable=False, default=PaymentStatus.PENDING.value)
    verifier_id = Column(String(26), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    verification_notes = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    previous_rejection_reason = Column(Text, nullable=True)

    replaced_at = Column(DateTime(timezone=True), nullable=True)
    replaced_by_id = Column(String(26), nullable=True)
    replaced_by_payment_id = Column(String(26), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=True, onupdate=_utcnow)

    booking = relationship("Booking", back_populates="payments")

    __table_args__ = (
        CheckConstraint("amount > 0", name="check_payment_amount_positive"),
        CheckConstraint("payment_type IN ('full', 'dp')", name="check_payment_type"),
        CheckConstraint(
            "status IN ('pending', 'verified', 'rejected', 'replaced')",
            name="check_payment_status",
        ),
        Index("ix_payments_booking_status", "booking_id", "status"),
    )

    def __repr__(self) -> str:
        return f"<Payment {self.id} booking={self.booking_id} {self.payment_type} {self.status}>"

    @property
    def is_full(self) -> bool:
        return self.payment_type == PaymentType.FULL.value
