"""Catalog Pydantic schemas: tours, tour schedules and packages."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .common import Money


class CreateTourRequest(BaseModel):
    """Request schema for creating a tour."""

    operator_id: str = Field(..., min_length=1, max_length=128, description="Owning tour operator")
    title: str = Field(..., min_length=1, max_length=255, description="Tour title")
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9-]+$", description="URL-friendly slug")
    description: str | None = Field(None, description="Tour description")


class Tour(BaseModel):
    """Tour response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique tour ID")
    operator_id: str = Field(..., description="Owning tour operator")
    title: str = Field(..., description="Tour title")
    slug: str = Field(..., description="URL-friendly slug")
    description: str | None = Field(None, description="Tour description")


class CreateScheduleRequest(BaseModel):
    """Request schema for creating a tour schedule."""

    tour_id: str = Field(..., description="Associated tour ID")
    starts_at: datetime = Field(..., description="Departure start time (ISO 8601)")
    capacity: int = Field(..., ge=1, le=1000, description="Total seats")
    price: Money = Field(..., description="Price per seat")


class TourSchedule(BaseModel):
    """Tour schedule response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique schedule ID")
    tour_id: str = Field(..., description="Associated tour ID")
    starts_at: datetime = Field(..., description="Departure start time (ISO 8601)")
    capacity: int = Field(..., ge=1, description="Total seats")
    price: Money = Field(..., description="Current price per seat")


class UpdateSchedulePriceRequest(BaseModel):
    """Request schema for changing the seat price of a schedule."""

    schedule_id: str = Field(..., description="Schedule to reprice")
    price: Money = Field(..., description="New price per seat")


class CreatePackageRequest(BaseModel):
    """Request schema for creating a package."""

    owner_id: str = Field(..., min_length=1, max_length=128, description="Owning hotel manager")
    name: str = Field(..., min_length=1, max_length=255, description="Package name")
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9-]+$", description="URL-friendly slug")
    max_guests: int | None = Field(None, ge=1, description="Guest ceiling per stay")
    minimum_nights: int = Field(1, ge=1, description="Shortest allowed stay")
    maximum_nights: int | None = Field(None, ge=1, description="Longest allowed stay")
    price_per_night: Money = Field(..., description="Price per night")

    @model_validator(mode="after")
    def check_night_bounds(self) -> "CreatePackageRequest":
        if self.maximum_nights is not None and self.maximum_nights < self.minimum_nights:
            raise ValueError("maximum_nights must be greater than or equal to minimum_nights")
        return self


class TravelPackage(BaseModel):
    """Package response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique package ID")
    owner_id: str = Field(..., description="Owning hotel manager")
    name: str = Field(..., description="Package name")
    slug: str = Field(..., description="URL-friendly slug")
    max_guests: int | None = Field(None, description="Guest ceiling per stay")
    minimum_nights: int = Field(..., description="Shortest allowed stay")
    maximum_nights: int | None = Field(None, description="Longest allowed stay")
    price_per_night: Money = Field(..., description="Current price per night")


class UpdatePackagePriceRequest(BaseModel):
    """Request schema for changing the nightly price of a package."""

    package_id: str = Field(..., description="Package to reprice")
    price_per_night: Money = Field(..., description="New price per night")
