"""Catalog service: tours, tour schedules and packages."""

import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import translate_store_errors
from ..core.exceptions import ConflictError, NotFoundError
from ..models.inventory import Tour, TourSchedule, TravelPackage
from ..schemas.catalog import (
    CreatePackageRequest,
    CreateScheduleRequest,
    CreateTourRequest,
    UpdatePackagePriceRequest,
    UpdateSchedulePriceRequest,
)

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


class CatalogService:
    """
    Service for creating and repricing inventory units.

    Capacity is fixed at creation. Price changes apply to new holds only;
    existing holds keep the total frozen when they were admitted.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_tour(self, request: CreateTourRequest) -> Tour:
        """
        Create a new tour.

        Raises:
            ConflictError: If a tour with the same slug already exists
        """
        async with translate_store_errors(self.db, "create_tour"):
            existing_tour = await self.get_tour_by_slug(request.slug)
            if existing_tour:
                # Read before rollback, which expires loaded instances
                conflicting = {"id": str(existing_tour.id), "slug": existing_tour.slug}
                await self.db.rollback()
                logger.warning(
                    "Tour creation failed - slug already exists",
                    extra={"slug": request.slug, "existing_tour_id": conflicting["id"]}
                )
                raise ConflictError(
                    detail=f"Tour with slug '{request.slug}' already exists",
                    conflicting_resource=conflicting
                )

            tour = Tour(
                operator_id=request.operator_id,
                title=request.title,
                slug=request.slug,
                description=request.description
            )
            self.db.add(tour)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                logger.error(
                    "Tour creation failed due to integrity constraint",
                    extra={"slug": request.slug, "error": str(e.orig)}
                )
                raise ConflictError(detail=f"Tour with slug '{request.slug}' already exists") from e

        logger.info(
            "Tour created successfully",
            extra={"tour_id": str(tour.id), "slug": tour.slug, "operator_id": tour.operator_id}
        )
        return tour

    async def get_tour_by_id(self, tour_id: UUID) -> Optional[Tour]:
        """Get tour by ID."""
        stmt = select(Tour).where(Tour.id == tour_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tour_by_slug(self, slug: str) -> Optional[Tour]:
        """Get tour by slug."""
        stmt = select(Tour).where(Tour.slug == slug)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_tour_by_id_or_raise(self, tour_id: UUID) -> Tour:
        """
        Get tour by ID or raise NotFoundError.

        Args:
            tour_id: Tour ID to search for

        Returns:
            Tour entity

        Raises:
            NotFoundError: If tour not found
        """
        tour = await self.get_tour_by_id(tour_id)
        if not tour:
            logger.warning("Tour not found", extra={"tour_id": str(tour_id)})
            raise NotFoundError(resource_type="tour", resource_id=str(tour_id))
        return tour

    async def create_schedule(self, tour_id: UUID, request: CreateScheduleRequest) -> TourSchedule:
        """
        Create a tour schedule with a fixed seat capacity.

        Raises:
            NotFoundError: If the tour does not exist
        """
        async with translate_store_errors(self.db, "create_schedule"):
            try:
                await self.get_tour_by_id_or_raise(tour_id)
            except NotFoundError:
                await self.db.rollback()
                raise

            schedule = TourSchedule(
                tour_id=tour_id,
                starts_at=_naive_utc(request.starts_at),
                capacity=request.capacity,
                price_amount=request.price.amount,
                price_currency=request.price.currency
            )
            self.db.add(schedule)
            await self.db.commit()

        logger.info(
            "Tour schedule created successfully",
            extra={
                "schedule_id": str(schedule.id),
                "tour_id": str(tour_id),
                "starts_at": schedule.starts_at.isoformat(),
                "capacity": schedule.capacity
            }
        )
        return schedule

    async def get_schedule_or_raise(self, schedule_id: UUID) -> TourSchedule:
        stmt = select(TourSchedule).where(TourSchedule.id == schedule_id)
        result = await self.db.execute(stmt)
        schedule = result.scalar_one_or_none()
        if not schedule:
            logger.warning("Tour schedule not found", extra={"schedule_id": str(schedule_id)})
            raise NotFoundError(resource_type="tour_schedule", resource_id=str(schedule_id))
        return schedule

    async def update_schedule_price(self, schedule_id: UUID, request: UpdateSchedulePriceRequest) -> TourSchedule:
        """Change the seat price for future holds on a schedule."""
        async with translate_store_errors(self.db, "update_schedule_price"):
            try:
                schedule = await self.get_schedule_or_raise(schedule_id)
            except NotFoundError:
                await self.db.rollback()
                raise

            old_amount = schedule.price_amount
            schedule.price_amount = request.price.amount
            schedule.price_currency = request.price.currency
            await self.db.commit()

        logger.info(
            "Tour schedule repriced",
            extra={
                "schedule_id": str(schedule_id),
                "old_amount": old_amount,
                "new_amount": schedule.price_amount,
                "currency": schedule.price_currency
            }
        )
        return schedule

    async def create_package(self, request: CreatePackageRequest) -> TravelPackage:
        """
        Create a package.

        Raises:
            ConflictError: If a package with the same slug already exists
        """
        async with translate_store_errors(self.db, "create_package"):
            package = TravelPackage(
                owner_id=request.owner_id,
                name=request.name,
                slug=request.slug,
                max_guests=request.max_guests,
                minimum_nights=request.minimum_nights,
                maximum_nights=request.maximum_nights,
                price_per_night_amount=request.price_per_night.amount,
                price_currency=request.price_per_night.currency
            )
            self.db.add(package)
            try:
                await self.db.commit()
            except IntegrityError as e:
                await self.db.rollback()
                logger.warning(
                    "Package creation failed due to integrity constraint",
                    extra={"slug": request.slug, "error": str(e.orig)}
                )
                raise ConflictError(detail=f"Package with slug '{request.slug}' already exists") from e

        logger.info(
            "Package created successfully",
            extra={
                "package_id": str(package.id),
                "slug": package.slug,
                "minimum_nights": package.minimum_nights,
                "maximum_nights": package.maximum_nights
            }
        )
        return package

    async def get_package_or_raise(self, package_id: UUID) -> TravelPackage:
        stmt = select(TravelPackage).where(TravelPackage.id == package_id)
        result = await self.db.execute(stmt)
        package = result.scalar_one_or_none()
        if not package:
            logger.warning("Package not found", extra={"package_id": str(package_id)})
            raise NotFoundError(resource_type="package", resource_id=str(package_id))
        return package

    async def update_package_price(self, package_id: UUID, request: UpdatePackagePriceRequest) -> TravelPackage:
        """Change the nightly price for future holds on a package."""
        async with translate_store_errors(self.db, "update_package_price"):
            try:
                package = await self.get_package_or_raise(package_id)
            except NotFoundError:
                await self.db.rollback()
                raise

            old_amount = package.price_per_night_amount
            package.price_per_night_amount = request.price_per_night.amount
            package.price_currency = request.price_per_night.currency
            await self.db.commit()

        logger.info(
            "Package repriced",
            extra={
                "package_id": str(package_id),
                "old_amount": old_amount,
                "new_amount": package.price_per_night_amount,
                "currency": package.price_currency
            }
        )
        return package
