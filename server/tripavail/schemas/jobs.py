"""Scheduled job Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from ..models.booking import BookingType, HoldStatus


class HoldTransition(BaseModel):
    """One state transition performed by a sweep."""

    booking_type: BookingType = Field(..., description="Kind of hold")
    hold_id: str = Field(..., description="Hold ID")
    old_status: HoldStatus = Field(..., description="Status before the sweep")
    new_status: HoldStatus = Field(..., description="Status after the sweep")
    reason: str = Field(..., description="Why the transition happened")


class SweepResultResponse(BaseModel):
    """Expiry sweep response schema."""

    success: bool = Field(..., description="False only when every booking type failed")
    expired_count: int = Field(..., ge=0, description="Holds expired by this sweep")
    expired_by_type: dict[str, int] = Field(..., description="Holds expired per booking type")
    failed_types: list[str] = Field(default_factory=list, description="Booking types that failed this sweep")
    errors: dict[str, str] = Field(default_factory=dict, description="Failure message per booking type")
    error: str | None = Field(None, description="Overall failure message")
    transitions: list[HoldTransition] = Field(default_factory=list, description="Transitions performed")
    timestamp: datetime = Field(..., description="Sweep reference time (ISO 8601)")
