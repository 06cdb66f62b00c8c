# backend/tripbooking/schemas/payment.py
"""Payment, saved method and reconciliation schemas."""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from ..integrations.payment_gateway import CardDetails
from .base import Money, StandardizedModel, StrictRequestModel


class CardDetailsIn(StrictRequestModel):
    """Non-sensitive card descriptor plus the gateway's payment-method token."""

    card_type: str = Field(..., min_length=1, max_length=30)
    last4: str = Field(..., pattern=r"^\d{4}$")
    expiry_month: int = Field(..., ge=1, le=12)
    expiry_year: int = Field(..., ge=2000, le=2100)
    token: Optional[str] = Field(None, description="Gateway payment method reference")

    def to_card(self) -> CardDetails:
        return CardDetails(
            card_type=self.card_type,
            last4=self.last4,
            expiry_month=self.expiry_month,
            expiry_year=self.expiry_year,
            token=self.token,
        )


class ProcessPaymentRequest(StrictRequestModel):
    booking_id: str = Field(..., min_length=1)
    method: str = Field(..., min_length=1, max_length=50)
    card_details: Optional[CardDetailsIn] = None
    save_payment_method: bool = False

    @field_validator("method")
    @classmethod
    def _method_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("method must not be blank")
        return value.strip()


class ProcessPaymentResponse(StandardizedModel):
    payment_id: str
    transaction_id: str
    status: str


class PaymentResponse(StandardizedModel):
    id: str
    booking_id: str
    method: str
    amount: Money
    status: str
    transaction_id: Optional[str] = None
    error_message: Optional[str] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SavedPaymentMethodResponse(StandardizedModel):
    id: str
    card_type: str
    last4: str
    expiry_month: int
    expiry_year: int
    is_default: bool
    created_at: Optional[datetime] = None


class ReconciliationCaseResponse(StandardizedModel):
    id: str
    booking_id: str
    payment_id: str
    transaction_id: str
    amount: Money
    method: str
    error: Optional[str] = None
    status: str
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
