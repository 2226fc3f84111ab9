"""Payment payloads."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from .base import StandardizedModel, StrictModel


class TransferDetails(StrictModel):
    """Bank transfer as reported by the customer alongside the proof image."""

    sender_name: str
    transfer_amount: int
    transfer_date: datetime
    transfer_reference: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=500)


class PaymentSummary(StandardizedModel):
    payment_type: str
    total_amount: int
    payment_amount: int
    remaining_amount: int
