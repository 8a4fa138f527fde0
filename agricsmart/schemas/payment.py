# ==============================================================================
# PAYMENT SCHEMAS - Payments, Mock Providers & Webhook
# ==============================================================================

from __future__ import annotations

from typing import Literal, Optional

from pydantic import ConfigDict, Field, field_validator

from agricsmart.schemas.base import BaseSchema, TimestampSchema
from agricsmart.schemas.order import CurrencyCode

PaymentMethodName = Literal["momo", "card", "bank", "crypto"]
PaymentStatusName = Literal["pending", "completed", "failed", "refunded"]


class PaymentDetails(BaseSchema):
    """Provider-specific payment details. Unknown keys are kept."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        extra="allow",
    )

    reference: Optional[str] = None
    transaction_id: Optional[str] = None
    provider: Optional[str] = None
    phone_number: Optional[str] = None
    card_type: Optional[str] = None
    last4: Optional[str] = None


class PaymentCreate(BaseSchema):
    """Schema for recording a payment."""

    order_id: Optional[str] = Field(None, description="Order being paid, if any")
    amount: float = Field(..., gt=0, description="Amount charged")
    currency: Optional[CurrencyCode] = Field(None, description="Defaults to GHS")
    payment_method: PaymentMethodName
    description: Optional[str] = Field(None, max_length=500)
    payment_details: Optional[PaymentDetails] = None


class MomoPaymentRequest(BaseSchema):
    """Mobile-money payment request."""

    order_id: Optional[str] = None
    amount: float = Field(..., gt=0)
    currency: Optional[CurrencyCode] = None
    phone_number: str = Field(
        ...,
        pattern=r"^\+?[0-9]{9,15}$",
        description="Wallet phone number",
    )
    description: Optional[str] = Field(None, max_length=500)


class CardPaymentRequest(BaseSchema):
    """Card payment request. Only the last four digits are stored."""

    order_id: Optional[str] = None
    amount: float = Field(..., gt=0)
    currency: Optional[CurrencyCode] = None
    card_number: str = Field(..., pattern=r"^[0-9]{12,19}$")
    expiry_month: int = Field(..., ge=1, le=12)
    expiry_year: int = Field(..., ge=2000, le=2100)
    cvv: str = Field(..., pattern=r"^[0-9]{3,4}$")
    card_type: Optional[str] = Field(None, max_length=30)
    description: Optional[str] = Field(None, max_length=500)

    @field_validator("card_number", mode="before")
    @classmethod
    def strip_spaces(cls, v):
        if isinstance(v, str):
            return v.replace(" ", "").replace("-", "")
        return v


class PaymentResponse(TimestampSchema):
    """Schema for payment response."""

    user_id: str
    order_id: Optional[str] = None
    amount: float
    currency: str
    payment_method: PaymentMethodName
    status: PaymentStatusName
    description: Optional[str] = None
    payment_details: PaymentDetails = Field(default_factory=PaymentDetails)


class MomoPaymentResponse(PaymentResponse):
    momo_reference: str
    instructions: str


class PaymentStatusUpdate(BaseSchema):
    status: str = Field(..., description="pending, completed, failed or refunded")


class WebhookPayload(BaseSchema):
    """Provider callback body."""

    reference: str = Field(..., min_length=1)
    status: str = Field(..., description="Provider status, e.g. successful or failed")
    transaction_id: Optional[str] = Field(None, alias="transactionId")


class WebhookResult(BaseSchema):
    success: bool
    message: str
    payment_id: Optional[str] = None
    status: Optional[str] = None
