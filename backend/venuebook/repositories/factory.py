# backend/venuebook/repositories/factory.py
"""
Repository Factory for the venue booking backend.

Provides centralized creation of repository instances so that services
share one session per unit of work.
"""

from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

# Avoid circular imports
if TYPE_CHECKING:
    from .booking_repository import BookingRepository
    from .field_repository import FieldRepository
    from .payment_repository import PaymentRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_field_repository(db: Session) -> "FieldRepository":
        from .field_repository import FieldRepository

        return FieldRepository(db)

    @staticmethod
    def create_booking_repository(db: Session) -> "BookingRepository":
        from .booking_repository import BookingRepository

        return BookingRepository(db)

    @staticmethod
    def create_payment_repository(db: Session) -> "PaymentRepository":
        from .payment_repository import PaymentRepository

        return PaymentRepository(db)
