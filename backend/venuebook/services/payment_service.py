# backend/venuebook/services/payment_service.py
"""
Payment Verification Service for the venue booking backend.

Customers submit a proof of transfer for a pending booking; a cashier then
verifies or rejects it. Every decision writes the payment and its booking
in one transaction, so the pair is never seen half-updated:

    approve: payment pending|rejected -> verified, booking -> confirmed
    reject:  payment pending -> rejected, booking -> pending / no_payment

A booking holds at most one pending or verified payment. Submitting again
after a rejection marks the earlier rejected payments as replaced. Every
write holds the per-booking lock and re-reads both rows inside it.
"""

from datetime import datetime
import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from sqlalchemy.orm import Session

from ..core.config import settings
from ..core.exceptions import (
    DuplicatePaymentException,
    ForbiddenException,
    NotFoundException,
    StateTransitionException,
    ValidationException,
)
from ..core.slot_lock import SlotLock, get_slot_lock
from ..core.timezone_utils import utc_now
from ..core.validators import (
    validate_rejection_reason,
    validate_sender_name,
    validate_transfer_amount,
    validate_transfer_date,
    validate_transfer_reference,
)
from ..models.booking import Booking, BookingPaymentStatus, BookingStatus
from ..models.payment import (
    APPROVABLE_PAYMENT_STATUSES,
    Payment,
    PaymentStatus,
    PaymentType,
)
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories import RepositoryFactory
from ..repositories.booking_repository import BookingRepository
from ..repositories.payment_repository import PaymentRepository
from ..schemas.payment import PaymentSummary, TransferDetails
from .base import BaseService
from .cache_service import CacheKeyBuilder

if TYPE_CHECKING:
    from .cache_service import CacheInvalidationPort
    from .notification_service import NotificationPort

logger = logging.getLogger(__name__)


def calculate_payment_summary(total_amount: int, payment_type: str) -> PaymentSummary:
    """Amount due now and the balance left for the venue to collect."""
    if payment_type == PaymentType.DP.value:
        return PaymentSummary(
            payment_type=payment_type,
            total_amount=total_amount,
            payment_amount=settings.dp_amount,
            remaining_amount=total_amount - settings.dp_amount,
        )
    return PaymentSummary(
        payment_type=payment_type,
        total_amount=total_amount,
        payment_amount=total_amount,
        remaining_amount=0,
    )


class PaymentVerificationService(BaseService):
    """Service layer for payment submission and cashier review."""

    def __init__(
        self,
        db: Session,
        cache: Optional["CacheInvalidationPort"] = None,
        notifications: Optional["NotificationPort"] = None,
        booking_repository: Optional[BookingRepository] = None,
        payment_repository: Optional[PaymentRepository] = None,
        slot_lock: Optional[SlotLock] = None,
    ):
        super().__init__(db, cache)
        self.logger = logging.getLogger(__name__)
        self.notifications = notifications
        self.slot_lock = slot_lock or get_slot_lock()
        self.booking_repository = (
            booking_repository or RepositoryFactory.create_booking_repository(db)
        )
        self.payment_repository = (
            payment_repository or RepositoryFactory.create_payment_repository(db)
        )

    # Queries

    def get_payment(self, payment_id: str) -> Payment:
        payment = self.payment_repository.get_by_id(payment_id)
        if not payment:
            raise NotFoundException(
                f"Payment {payment_id} not found", details={"payment_id": payment_id}
            )
        return payment

    @BaseService.measure_operation("get_pending_payments")
    def get_pending_payments(self) -> List[Payment]:
        """Payments waiting for review, oldest first."""
        return self.payment_repository.get_pending_payments()

    @BaseService.measure_operation("get_customer_payments")
    def get_customer_payments(self, customer_id: str) -> List[Payment]:
        return self.payment_repository.get_customer_payments(customer_id)

    def get_latest_payment(self, booking_id: str) -> Optional[Payment]:
        return self.payment_repository.get_latest_for_booking(booking_id)

    # Customer submission

    @BaseService.measure_operation("submit_payment")
    def submit_payment(
        self,
        booking_id: str,
        customer_id: str,
        payment_type: str,
        amount: int,
        proof_ref: str,
        transfer: TransferDetails,
    ) -> Payment:
        """
        Record a proof of transfer for a pending booking.

        The booking lock is held from the duplicate check to the commit, so
        two submissions for one booking cannot both create a payment.

        Raises:
            NotFoundException: unknown booking
            ForbiddenException: booking belongs to someone else
            StateTransitionException: booking is no longer pending
            ValidationException: wrong amount, missing proof or bad transfer details
            DuplicatePaymentException: booking already has a pending or verified payment
            BookingBusyException: booking lock not acquired in time
        """
        booking = self._get_booking(booking_id)
        if not booking.is_owned_by(customer_id):
            raise ForbiddenException("You can only pay for your own bookings")

        if not proof_ref or not proof_ref.strip():
            raise ValidationException("Payment proof is required")
        sender_name = validate_sender_name(transfer.sender_name)
        validate_transfer_amount(transfer.transfer_amount, amount)
        validate_transfer_date(transfer.transfer_date)
        reference = validate_transfer_reference(transfer.transfer_reference)

        with self.slot_lock.hold_booking(booking.id):
            with self.transaction():
                booking = self._lock_booking(booking.id)
                self._ensure_booking_pending(booking)
                self._validate_amount(booking, payment_type, amount)

                existing = self.payment_repository.get_open_payment_for_booking(booking.id)
                if existing:
                    raise DuplicatePaymentException(booking.id, existing.id, existing.status)

                summary = calculate_payment_summary(booking.price, payment_type)
                now = utc_now()
                payment = self.payment_repository.create(
                    booking_id=booking.id,
                    customer_id=customer_id,
                    payment_type=payment_type,
                    amount=amount,
                    total_booking_amount=summary.total_amount,
                    remaining_amount=summary.remaining_amount,
                    proof_ref=proof_ref.strip(),
                    sender_name=sender_name,
                    transfer_amount=transfer.transfer_amount,
                    transfer_date=transfer.transfer_date,
                    transfer_reference=reference,
                    customer_notes=transfer.notes,
                    status=PaymentStatus.PENDING.value,
                    created_at=now,
                )
                replaced = self.payment_repository.get_rejected_for_booking(booking.id)
                for old in replaced:
                    old.status = PaymentStatus.REPLACED.value
                    old.replaced_at = now
                    old.replaced_by_id = customer_id
                    old.replaced_by_payment_id = payment.id
                    self.payment_repository.save(old)

                booking.payment_status = BookingPaymentStatus.PENDING_VERIFICATION.value
                self.booking_repository.save(booking)

        self.log_operation(
            "submit_payment",
            payment_id=payment.id,
            booking_id=booking.id,
            payment_type=payment_type,
            replaced=len(replaced),
        )
        self.invalidate_cache(
            CacheKeyBuilder.pending_payments(),
            CacheKeyBuilder.customer_payments(customer_id),
            CacheKeyBuilder.customer_bookings(customer_id),
        )
        return payment

    # Cashier review

    @BaseService.measure_operation("approve_payment")
    def approve_payment(
        self, payment_id: str, verifier_id: str, notes: Optional[str] = None
    ) -> Payment:
        """
        Verify a payment and confirm its booking in one transaction.

        A previously rejected payment may still be approved; its rejection
        reason moves to ``previous_rejection_reason``. Both rows are re-read
        under the booking lock before any status check.
        """
        payment = self.get_payment(payment_id)

        with self.slot_lock.hold_booking(payment.booking_id):
            confirm = self.with_transaction(self._apply_approval)
            payment, booking = confirm(payment.id, verifier_id, notes, utc_now())

        prometheus_metrics.inc_payment_review("verified", payment.payment_type)
        self.log_operation(
            "approve_payment",
            payment_id=payment.id,
            booking_id=booking.id,
            verifier_id=verifier_id,
            booking_payment_status=booking.payment_status,
        )
        self._notify_confirmed(booking)
        self.invalidate_cache(
            CacheKeyBuilder.pending_payments(),
            CacheKeyBuilder.customer_payments(payment.customer_id),
            CacheKeyBuilder.customer_bookings(booking.customer_id),
            CacheKeyBuilder.field_availability(booking.field_id, booking.booking_date),
        )
        return payment

    def _apply_approval(
        self,
        payment_id: str,
        verifier_id: str,
        notes: Optional[str],
        now: datetime,
    ) -> Tuple[Payment, Booking]:
        payment = self._lock_payment(payment_id)
        if payment.status not in APPROVABLE_PAYMENT_STATUSES:
            raise StateTransitionException(
                f"A {payment.status} payment cannot be approved",
                current_status=payment.status,
                target_status=PaymentStatus.VERIFIED.value,
                details={"payment_id": payment.id},
            )

        booking = self._lock_booking(payment.booking_id)
        if not booking.can_transition_to(BookingStatus.CONFIRMED.value):
            raise StateTransitionException(
                f"A {booking.status} booking cannot be confirmed",
                current_status=booking.status,
                target_status=BookingStatus.CONFIRMED.value,
                details={"booking_id": booking.id, "payment_id": payment.id},
            )
        if payment.status == PaymentStatus.REJECTED.value:
            other = self.payment_repository.get_open_payment_for_booking(booking.id)
            if other and other.id != payment.id:
                raise DuplicatePaymentException(booking.id, other.id, other.status)
            payment.previous_rejection_reason = payment.rejection_reason

        payment.status = PaymentStatus.VERIFIED.value
        payment.verifier_id = verifier_id
        payment.verified_at = now
        payment.verification_notes = notes
        payment.rejection_reason = None
        self.payment_repository.save(payment)

        booking.confirm(
            cashier_id=verifier_id,
            payment_status=(
                BookingPaymentStatus.FULLY_PAID.value
                if payment.is_full
                else BookingPaymentStatus.DP_CONFIRMED.value
            ),
            at=now,
        )
        self.booking_repository.save(booking)
        return payment, booking

    @BaseService.measure_operation("reject_payment")
    def reject_payment(self, payment_id: str, verifier_id: str, reason: str) -> Payment:
        """
        Reject a pending payment and return its booking to pending/no_payment.

        The customer can then submit a new payment for the same booking.
        """
        cleaned_reason = validate_rejection_reason(reason)
        payment = self.get_payment(payment_id)

        with self.slot_lock.hold_booking(payment.booking_id):
            reject = self.with_transaction(self._apply_rejection)
            payment, booking = reject(payment.id, verifier_id, cleaned_reason, utc_now())

        prometheus_metrics.inc_payment_review("rejected", payment.payment_type)
        self.log_operation(
            "reject_payment",
            payment_id=payment.id,
            booking_id=booking.id,
            verifier_id=verifier_id,
        )
        self.invalidate_cache(
            CacheKeyBuilder.pending_payments(),
            CacheKeyBuilder.customer_payments(payment.customer_id),
            CacheKeyBuilder.customer_bookings(booking.customer_id),
        )
        return payment

    def _apply_rejection(
        self,
        payment_id: str,
        verifier_id: str,
        reason: str,
        now: datetime,
    ) -> Tuple[Payment, Booking]:
        payment = self._lock_payment(payment_id)
        if payment.status != PaymentStatus.PENDING.value:
            raise StateTransitionException(
                f"Only pending payments can be rejected; this payment is {payment.status}",
                current_status=payment.status,
                target_status=PaymentStatus.REJECTED.value,
                details={"payment_id": payment.id},
            )

        booking = self._lock_booking(payment.booking_id)
        if booking.status != BookingStatus.PENDING.value:
            raise StateTransitionException(
                f"Payments of a {booking.status} booking cannot be rejected",
                current_status=booking.status,
                details={"booking_id": booking.id, "payment_id": payment.id},
            )

        payment.status = PaymentStatus.REJECTED.value
        payment.rejection_reason = reason
        payment.verifier_id = verifier_id
        payment.verified_at = now
        self.payment_repository.save(payment)

        booking.reset_to_unpaid()
        self.booking_repository.save(booking)
        return payment, booking

    # Helpers

    def _get_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_by_id(booking_id)
        if not booking:
            raise NotFoundException(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        return booking

    def _lock_booking(self, booking_id: str) -> Booking:
        booking = self.booking_repository.get_for_update(booking_id)
        if not booking:
            raise NotFoundException(
                f"Booking {booking_id} not found", details={"booking_id": booking_id}
            )
        return booking

    def _lock_payment(self, payment_id: str) -> Payment:
        payment = self.payment_repository.get_for_update(payment_id)
        if not payment:
            raise NotFoundException(
                f"Payment {payment_id} not found", details={"payment_id": payment_id}
            )
        return payment

    @staticmethod
    def _ensure_booking_pending(booking: Booking) -> None:
        if booking.status != BookingStatus.PENDING.value:
            raise StateTransitionException(
                f"Payments can only be submitted for pending bookings; this booking is "
                f"{booking.status}",
                current_status=booking.status,
                details={"booking_id": booking.id},
            )

    @staticmethod
    def _validate_amount(booking: Booking, payment_type: str, amount: int) -> None:
        if payment_type == PaymentType.DP.value:
            if booking.price <= settings.dp_amount:
                raise ValidationException(
                    "Down payment is not available for this booking; pay the full amount",
                    details={"price": booking.price, "dp_amount": settings.dp_amount},
                )
            if amount != settings.dp_amount:
                raise ValidationException(
                    f"Down payment must be exactly {settings.dp_amount}",
                    details={"amount": amount, "expected": settings.dp_amount},
                )
        elif payment_type == PaymentType.FULL.value:
            if amount != booking.price:
                raise ValidationException(
                    f"Full payment must be exactly {booking.price}",
                    details={"amount": amount, "expected": booking.price},
                )
        else:
            raise ValidationException(
                f"Unknown payment type: {payment_type}",
                details={"payment_type": payment_type},
            )

    def _notify_confirmed(self, booking: Booking) -> None:
        if not self.notifications:
            return
        try:
            self.notifications.on_booking_confirmed(booking)
        except Exception as e:
            self.logger.warning(f"Confirmation notification failed for booking {booking.id}: {e}")
