# backend/venuebook/models/field.py
"""
Field model.

Fields are owned by the venue catalogue; the booking core only reads the
operating window, hourly price and availability flag.
"""

from enum import Enum

from sqlalchemy import CheckConstraint, Column, DateTime, Integer, String, Time
from sqlalchemy.sql import func
import ulid

from ..database import Base
from ..utils.time_slots import SlotInterval


class FieldStatus(str, Enum):
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"


class Field(Base):
    __tablename__ = "fields"

    id = Column(String(26), primary_key=True, index=True, default=lambda: str(ulid.ULID()))
    name = Column(String(100), nullable=False)
    open_time = Column(Time, nullable=False)
    # 00:00 closes at midnight
    close_time = Column(Time, nullable=False)
    price_per_hour = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default=FieldStatus.AVAILABLE.value)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("price_per_hour > 0", name="check_field_price_positive"),
        CheckConstraint(
            "status IN ('available', 'unavailable')",
            name="check_field_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Field {self.id} {self.name} {self.open_time}-{self.close_time}>"

    @property
    def is_available(self) -> bool:
        return self.status == FieldStatus.AVAILABLE.value

    @property
    def operating_window(self) -> SlotInterval:
        return SlotInterval.operating_window(self.open_time, self.close_time)
