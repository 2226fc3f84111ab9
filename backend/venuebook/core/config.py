# backend/venuebook/core/config.py
from typing import Optional

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment label")

    # Storage
    database_url: str = Field(
        default="sqlite:///./venuebook.db",
        description="SQLAlchemy database URL",
    )
    redis_url: Optional[str] = Field(
        default=None,
        description="Shared store for slot locks and response caches. Unset disables both.",
    )

    # Venue rules
    venue_timezone: str = Field(
        default="Asia/Jakarta",
        description="Timezone that booking dates and start times are expressed in",
    )
    dp_amount: int = Field(default=50_000, description="Fixed down payment amount")
    min_duration_hours: int = Field(default=1, ge=1)
    max_duration_hours: int = Field(default=8, ge=1)
    payment_window_hours: int = Field(
        default=24, description="Hours a new booking has to receive a payment"
    )
    cancellation_notice_hours: int = Field(
        default=24, description="Minimum notice for cancelling a confirmed booking"
    )
    max_advance_booking_days: int = Field(default=30, ge=0)
    same_day_lead_minutes: int = Field(
        default=60, ge=0, description="How far ahead a booking for today must start"
    )
    rejection_reason_min_length: int = Field(default=5, ge=1)
    transfer_max_age_days: int = Field(default=7, ge=0)
    preparation_reminder_minutes: int = Field(default=60, ge=1)

    # Slot serialization
    slot_lock_ttl_seconds: int = Field(default=30, ge=1)
    slot_lock_wait_seconds: float = Field(default=10.0, gt=0)

    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("venue_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @model_validator(mode="after")
    def _check_duration_bounds(self) -> "Settings":
        if self.min_duration_hours > self.max_duration_hours:
            raise ValueError("min_duration_hours cannot exceed max_duration_hours")
        return self


settings = Settings()
