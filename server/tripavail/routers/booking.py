"""Booking router for hold admission, lookup and cancellation."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..schemas.booking import CancelHoldRequest, CreatePackageHoldRequest, CreateTourHoldRequest, GetHoldRequest, Hold
from ..schemas.common import problem_responses
from ..services.hold_service import HoldService
from .converters import hold_to_schema, parse_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/booking", tags=["booking"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


@router.post("/tour-hold", response_model=Hold, status_code=201, responses=problem_responses(400, 404, 409))
async def create_tour_hold(request: CreateTourHoldRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """
    Hold seats on a tour schedule.

    The hold reserves the seats until its expires_at deadline. A request
    that no longer fits fails with 409 and the current availability.
    """
    schedule_id = parse_id(request.schedule_id, "tour_schedule")
    hold = await HoldService(db).request_tour_hold(
        schedule_id=schedule_id,
        traveler_id=request.traveler_id,
        pax_count=request.pax_count,
        metadata=request.metadata,
    )
    return JSONResponse(status_code=201, content=hold_to_schema(hold).model_dump(mode="json"))


@router.post("/package-hold", response_model=Hold, status_code=201, responses=problem_responses(400, 404, 409))
async def create_package_hold(request: CreatePackageHoldRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Hold a package for a check-in/check-out date range."""
    package_id = parse_id(request.package_id, "package")
    hold = await HoldService(db).request_package_hold(
        package_id=package_id,
        traveler_id=request.traveler_id,
        check_in=request.check_in_date,
        check_out=request.check_out_date,
        guest_count=request.guest_count,
        metadata=request.metadata,
    )
    return JSONResponse(status_code=201, content=hold_to_schema(hold).model_dump(mode="json"))


@router.post("/get", response_model=Hold, responses=problem_responses(404))
async def get_hold(request: GetHoldRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Get a hold by ID."""
    hold_id = parse_id(request.hold_id, "booking")
    hold = await HoldService(db).get_hold(request.booking_type, hold_id)
    return JSONResponse(status_code=200, content=hold_to_schema(hold).model_dump(mode="json"))


@router.post("/cancel", response_model=Hold, responses=problem_responses(404, 409))
async def cancel_hold(request: CancelHoldRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """
    Operator-initiated cancellation.

    Only pending and confirmed holds can be cancelled; anything else is
    reported as already finalized.
    """
    hold_id = parse_id(request.hold_id, "booking")
    hold = await HoldService(db).cancel_hold(request.booking_type, hold_id, reason=request.reason)
    return JSONResponse(status_code=200, content=hold_to_schema(hold).model_dump(mode="json"))
