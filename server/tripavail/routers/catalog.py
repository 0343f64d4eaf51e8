"""Catalog router for tours, tour schedules and packages."""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import get_db
from ..schemas.catalog import (
    CreatePackageRequest,
    CreateScheduleRequest,
    CreateTourRequest,
    Tour,
    TourSchedule,
    TravelPackage,
    UpdatePackagePriceRequest,
    UpdateSchedulePriceRequest,
)
from ..services.catalog_service import CatalogService
from .converters import package_to_schema, parse_id, schedule_to_schema, tour_to_schema

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/catalog", tags=["catalog"])

# Define dependencies to avoid B008 linting errors
DB_DEPENDENCY = Depends(get_db)


@router.post("/tours/create", response_model=Tour, status_code=201)
async def create_tour(request: CreateTourRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Create a new tour."""
    tour = await CatalogService(db).create_tour(request)
    return JSONResponse(status_code=201, content=tour_to_schema(tour).model_dump(mode="json"))


@router.post("/schedules/create", response_model=TourSchedule, status_code=201)
async def create_schedule(request: CreateScheduleRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Create a tour schedule with a fixed seat capacity."""
    tour_id = parse_id(request.tour_id, "tour")
    schedule = await CatalogService(db).create_schedule(tour_id, request)
    return JSONResponse(status_code=201, content=schedule_to_schema(schedule).model_dump(mode="json"))


@router.post("/schedules/update-price", response_model=TourSchedule)
async def update_schedule_price(
    request: UpdateSchedulePriceRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """
    Change the seat price of a schedule.

    Existing holds keep the price they were admitted at.
    """
    schedule_id = parse_id(request.schedule_id, "tour_schedule")
    schedule = await CatalogService(db).update_schedule_price(schedule_id, request)
    return JSONResponse(status_code=200, content=schedule_to_schema(schedule).model_dump(mode="json"))


@router.post("/packages/create", response_model=TravelPackage, status_code=201)
async def create_package(request: CreatePackageRequest, db: AsyncSession = DB_DEPENDENCY) -> JSONResponse:
    """Create a date-ranged package."""
    package = await CatalogService(db).create_package(request)
    return JSONResponse(status_code=201, content=package_to_schema(package).model_dump(mode="json"))


@router.post("/packages/update-price", response_model=TravelPackage)
async def update_package_price(
    request: UpdatePackagePriceRequest,
    db: AsyncSession = DB_DEPENDENCY
) -> JSONResponse:
    """Change the nightly price of a package."""
    package_id = parse_id(request.package_id, "package")
    package = await CatalogService(db).update_package_price(package_id, request)
    return JSONResponse(status_code=200, content=package_to_schema(package).model_dump(mode="json"))
