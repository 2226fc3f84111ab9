from datetime import datetime, time, timedelta
from typing import Any, Callable, Optional
from unittest.mock import Mock

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from venuebook.core.slot_lock import LocalSlotLock
from venuebook.core.timezone_utils import get_venue_today, utc_now
from venuebook.core.ulid_helper import generate_ulid
from venuebook.database import Base

# Import models so Base.metadata is populated for create_all.
from venuebook.models import (
    Booking,
    BookingPaymentStatus,
    BookingStatus,
    Field,
    FieldStatus,
    Payment,
    PaymentStatus,
    PaymentType,
)
from venuebook.schemas.payment import TransferDetails
from venuebook.services.booking_maintenance_service import BookingMaintenanceService
from venuebook.services.booking_service import BookingService
from venuebook.services.payment_service import PaymentVerificationService


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Session:
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def customer_id() -> str:
    return generate_ulid()


@pytest.fixture
def cashier_id() -> str:
    return generate_ulid()


@pytest.fixture
def booking_day():
    """A date inside the booking window."""
    return get_venue_today() + timedelta(days=1)


@pytest.fixture
def make_field(db) -> Callable[..., Field]:
    def _make(**overrides: Any) -> Field:
        data = {
            "name": "Lapangan A",
            "open_time": time(8, 0),
            "close_time": time(22, 0),
            "price_per_hour": 100_000,
            "status": FieldStatus.AVAILABLE.value,
        }
        data.update(overrides)
        field = Field(**data)
        db.add(field)
        db.commit()
        return field

    return _make


@pytest.fixture
def field(make_field) -> Field:
    return make_field()


@pytest.fixture
def make_booking(db, field, customer_id) -> Callable[..., Booking]:
    """Insert a booking row directly, bypassing service checks."""

    def _make(**overrides: Any) -> Booking:
        duration = overrides.get("duration_hours", 2)
        data = {
            "customer_id": customer_id,
            "field_id": field.id,
            "booking_date": get_venue_today() + timedelta(days=1),
            "start_time": time(10, 0),
            "duration_hours": duration,
            "price": field.price_per_hour * duration,
            "status": BookingStatus.PENDING.value,
            "payment_status": BookingPaymentStatus.NO_PAYMENT.value,
            "payment_deadline": utc_now() + timedelta(hours=24),
        }
        data.update(overrides)
        booking = Booking(**data)
        db.add(booking)
        db.commit()
        return booking

    return _make


@pytest.fixture
def make_payment(db) -> Callable[..., Payment]:
    def _make(booking: Booking, **overrides: Any) -> Payment:
        data = {
            "booking_id": booking.id,
            "customer_id": booking.customer_id,
            "payment_type": PaymentType.FULL.value,
            "amount": booking.price,
            "total_booking_amount": booking.price,
            "remaining_amount": 0,
            "proof_ref": "proofs/transfer.jpg",
            "sender_name": "Budi Santoso",
            "transfer_amount": booking.price,
            "transfer_date": utc_now() - timedelta(hours=1),
            "status": PaymentStatus.PENDING.value,
        }
        data.update(overrides)
        payment = Payment(**data)
        db.add(payment)
        db.commit()
        return payment

    return _make


def make_transfer(amount: int, transfer_date: Optional[datetime] = None, **overrides: Any) -> TransferDetails:
    data = {
        "sender_name": "Budi Santoso",
        "transfer_amount": amount,
        "transfer_date": transfer_date or utc_now() - timedelta(hours=1),
        "transfer_reference": "TRX123456",
    }
    data.update(overrides)
    return TransferDetails(**data)


@pytest.fixture
def transfer() -> Callable[..., TransferDetails]:
    return make_transfer


@pytest.fixture
def slot_lock() -> LocalSlotLock:
    return LocalSlotLock(wait_seconds=5)


@pytest.fixture
def cache() -> Mock:
    return Mock()


@pytest.fixture
def notifications() -> Mock:
    return Mock()


@pytest.fixture
def booking_service(db, cache, slot_lock) -> BookingService:
    return BookingService(db, cache=cache, slot_lock=slot_lock)


@pytest.fixture
def payment_service(db, cache, notifications, slot_lock) -> PaymentVerificationService:
    return PaymentVerificationService(
        db, cache=cache, notifications=notifications, slot_lock=slot_lock
    )


@pytest.fixture
def maintenance_service(db, cache, notifications) -> BookingMaintenanceService:
    return BookingMaintenanceService(db, cache=cache, notifications=notifications)
