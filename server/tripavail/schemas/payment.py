"""Payment reconciliation Pydantic schemas."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from ..models.booking import BookingType, HoldStatus
from .booking import Hold
from .common import Money


class ConfirmationOutcome(str, Enum):
    """Outcome of a confirmation attempt."""
    CONFIRMED = "confirmed"
    ALREADY_FINALIZED = "already_finalized"


class ValidatePaymentRequest(BaseModel):
    """Request schema for the pre-payment check."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    hold_id: str = Field(..., description="Hold about to be paid")


class PaymentEligibility(BaseModel):
    """Pre-payment check response schema."""

    hold_id: str = Field(..., description="Hold ID")
    payable: bool = Field(..., description="Hold is pending and unexpired")
    expires_at: datetime = Field(..., description="Hold deadline (ISO 8601)")
    seconds_remaining: int = Field(..., ge=0, description="Seconds left before the hold lapses")
    total_price: Money = Field(..., description="Amount to charge")


class StartPaymentRequest(BaseModel):
    """Request schema for linking a payment intent to a hold."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    hold_id: str = Field(..., description="Hold being paid")
    payment_intent_id: str = Field(..., min_length=1, max_length=255, description="Provider payment intent")


class ConfirmPaymentRequest(BaseModel):
    """Request schema for the browser-return confirmation path."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    payment_intent_id: str = Field(..., min_length=1, max_length=255, description="Provider payment intent")
    hold_id: str = Field(..., description="Hold the caller claims was paid")
    payment_method: str | None = Field(None, max_length=64, description="Payment method used")
    payment_metadata: dict[str, Any] | None = Field(None, description="Provider-specific detail")


class ConfirmationResponse(BaseModel):
    """Confirmation response schema."""

    outcome: ConfirmationOutcome = Field(..., description="Whether this call performed the transition")
    previous_status: HoldStatus = Field(..., description="Hold status observed before this call")
    hold: Hold = Field(..., description="Hold after the call")


class RecordPaymentFailureRequest(BaseModel):
    """Request schema for recording a failed payment attempt."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    payment_intent_id: str = Field(..., min_length=1, max_length=255, description="Provider payment intent")
    error: str = Field(..., min_length=1, max_length=1000, description="Provider failure message")


class RefundRequest(BaseModel):
    """Request schema for marking a confirmed hold refunded."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    payment_intent_id: str = Field(..., min_length=1, max_length=255, description="Provider payment intent")


class WebhookAck(BaseModel):
    """Webhook acknowledgement schema."""

    received: bool = Field(True, description="Delivery accepted")
    event_id: str = Field(..., description="Provider event ID")
    status: str = Field(..., description="processed, duplicate, ignored or failed")
