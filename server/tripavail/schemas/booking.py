"""Hold (booking) Pydantic schemas."""

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field

from ..models.booking import BookingType, HoldStatus, PaymentStatus
from .common import Money


class CreateTourHoldRequest(BaseModel):
    """Request schema for holding seats on a tour schedule."""

    schedule_id: str = Field(..., description="Tour schedule to hold seats on")
    traveler_id: str = Field(..., min_length=1, max_length=128, description="Traveler placing the hold")
    pax_count: int = Field(..., le=100, description="Number of seats to hold")
    metadata: dict[str, Any] | None = Field(None, description="Opaque booking context")


class CreatePackageHoldRequest(BaseModel):
    """Request schema for holding a package date range."""

    package_id: str = Field(..., description="Package to hold")
    traveler_id: str = Field(..., min_length=1, max_length=128, description="Traveler placing the hold")
    check_in_date: date = Field(..., description="First night")
    check_out_date: date = Field(..., description="Departure day")
    guest_count: int = Field(..., le=100, description="Number of guests")
    metadata: dict[str, Any] | None = Field(None, description="Opaque booking context")


class GetHoldRequest(BaseModel):
    """Request schema for reading a hold."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    hold_id: str = Field(..., description="Hold to retrieve")


class CancelHoldRequest(BaseModel):
    """Request schema for operator-initiated cancellation."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    hold_id: str = Field(..., description="Hold to cancel")
    reason: str | None = Field(None, max_length=500, description="Cancellation reason")


class Hold(BaseModel):
    """Hold response schema."""

    id: str = Field(..., description="Unique hold ID")
    booking_type: BookingType = Field(..., description="Kind of hold")
    inventory_unit_id: str = Field(..., description="Schedule or package the hold is admitted against")
    traveler_id: str = Field(..., description="Traveler holding the inventory")
    requested_units: int = Field(..., ge=1, description="Seats or guests held")
    status: HoldStatus = Field(..., description="Hold status")
    payment_status: PaymentStatus = Field(..., description="Payment progress")
    payment_intent_id: str | None = Field(None, description="Payment intent linked to the hold")
    total_price: Money = Field(..., description="Price frozen at hold creation")
    created_at: datetime = Field(..., description="Hold creation time (ISO 8601)")
    expires_at: datetime = Field(..., description="Hold deadline (ISO 8601)")
    confirmed_at: datetime | None = Field(None, description="Confirmation time (ISO 8601)")
    paid_at: datetime | None = Field(None, description="Payment time (ISO 8601)")
    check_in_date: date | None = Field(None, description="First night, package holds only")
    check_out_date: date | None = Field(None, description="Departure day, package holds only")
    number_of_nights: int | None = Field(None, description="Nights held, package holds only")
