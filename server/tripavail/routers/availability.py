"""Availability router for live seat and date-range queries."""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..schemas.availability import (
    CheckPackageAvailabilityRequest,
    GetSeatAvailabilityRequest,
    PackageAvailability,
    SeatAvailability,
)
from ..services.availability_service import AvailabilityService
from .converters import parse_id

router = APIRouter(prefix="/v1/availability", tags=["availability"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


@router.post("/seats", response_model=SeatAvailability)
async def get_seat_availability(
    request: GetSeatAvailabilityRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Seats still available on a tour schedule.

    Computed from the store on every call; clients should treat the value
    as stale within seconds.
    """
    schedule_id = parse_id(request.schedule_id, "tour_schedule")
    service = AvailabilityService(db)
    schedule = await service.get_schedule_or_raise(schedule_id)
    available = await service.get_available_seats(schedule_id)

    response_data = SeatAvailability(
        schedule_id=str(schedule_id),
        capacity=schedule.capacity,
        available=available,
    )
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json"),
        headers={"Cache-Control": "no-store"}
    )


@router.post("/package", response_model=PackageAvailability)
async def check_package_availability(
    request: CheckPackageAvailabilityRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Whether a package date range can be booked, with its stay bounds."""
    package_id = parse_id(request.package_id, "package")
    result = await AvailabilityService(db).get_package_availability(
        package_id,
        request.check_in_date,
        request.check_out_date,
    )

    response_data = PackageAvailability(
        package_id=str(result.package_id),
        check_in_date=result.check_in_date,
        check_out_date=result.check_out_date,
        available=result.available,
        nights=result.nights,
        minimum_nights=result.minimum_nights,
        maximum_nights=result.maximum_nights,
        max_guests=result.max_guests,
        reason=result.reason,
        message=result.message,
    )
    return JSONResponse(
        status_code=200,
        content=response_data.model_dump(mode="json"),
        headers={"Cache-Control": "no-store"}
    )
