"""Availability Pydantic schemas."""

from datetime import date

from pydantic import BaseModel, Field


class GetSeatAvailabilityRequest(BaseModel):
    """Request schema for reading seat availability of a schedule."""

    schedule_id: str = Field(..., description="Tour schedule to query")


class SeatAvailability(BaseModel):
    """Seat availability response schema."""

    schedule_id: str = Field(..., description="Tour schedule ID")
    capacity: int = Field(..., ge=1, description="Total seats")
    available: int = Field(..., ge=0, description="Seats not held by live pending or confirmed holds")


class CheckPackageAvailabilityRequest(BaseModel):
    """Request schema for checking a package date range."""

    package_id: str = Field(..., description="Package to query")
    check_in_date: date = Field(..., description="First night")
    check_out_date: date = Field(..., description="Departure day")


class PackageAvailability(BaseModel):
    """Package availability response schema."""

    package_id: str = Field(..., description="Package ID")
    check_in_date: date = Field(..., description="First night")
    check_out_date: date = Field(..., description="Departure day")
    available: bool = Field(..., description="Stay length within bounds and no live hold overlaps the range")
    nights: int = Field(..., description="Nights in the requested range")
    minimum_nights: int = Field(..., description="Shortest allowed stay")
    maximum_nights: int | None = Field(None, description="Longest allowed stay")
    max_guests: int | None = Field(None, description="Guest ceiling per stay")
    reason: str | None = Field(
        None, description="Why the range is unavailable: stay_too_short, stay_too_long or dates_unavailable"
    )
    message: str | None = Field(None, description="Message to show the traveler when unavailable")
