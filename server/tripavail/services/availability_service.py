"""Inventory query service: live seat and date-range availability."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.database import translate_store_errors, utcnow
from ..core.exceptions import InvalidRequestError, NotFoundError
from ..models.booking import HoldStatus, PackageBooking, TourBooking
from ..models.inventory import TourSchedule, TravelPackage
from .validation import nights_between, validate_stay_length

logger = logging.getLogger(__name__)


@dataclass
class PackageAvailabilityResult:
    """
    Availability of a package date range, with the stay bounds for messaging.

    A range is available when its length is within the night bounds and
    no live hold overlaps it. reason names the check that failed.
    """

    package_id: UUID
    check_in_date: date
    check_out_date: date
    available: bool
    nights: int
    minimum_nights: int
    maximum_nights: int | None
    max_guests: int | None
    reason: str | None = None
    message: str | None = None


def _stay_length_problem(nights: int, package: TravelPackage) -> InvalidRequestError | None:
    try:
        validate_stay_length(nights, package.minimum_nights, package.maximum_nights)
    except InvalidRequestError as e:
        return e
    return None


def _holds_capacity(model, now: datetime):
    """Rows that count against capacity: confirmed, or pending and not yet past the deadline."""
    return or_(
        model.status == HoldStatus.CONFIRMED.value,
        and_(model.status == HoldStatus.PENDING.value, model.expires_at > now),
    )


class AvailabilityService:
    """
    Service for availability reads.

    Every figure is computed from the store at call time and nothing is
    cached. The lookup and counting helpers never end the transaction, so
    the admission path runs its pre-check and its guarded re-check inside
    one transaction. The public read operations end theirs on return.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_schedule_by_id(self, schedule_id: UUID) -> TourSchedule | None:
        """Get tour schedule by ID."""
        stmt = select(TourSchedule).where(TourSchedule.id == schedule_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_schedule_or_raise(self, schedule_id: UUID) -> TourSchedule:
        """Get tour schedule by ID or raise NotFoundError."""
        schedule = await self.get_schedule_by_id(schedule_id)
        if not schedule:
            logger.warning(
                "Tour schedule not found",
                extra={"schedule_id": str(schedule_id)}
            )
            raise NotFoundError(resource_type="tour_schedule", resource_id=str(schedule_id))
        return schedule

    async def get_package_by_id(self, package_id: UUID) -> TravelPackage | None:
        """Get package by ID."""
        stmt = select(TravelPackage).where(TravelPackage.id == package_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_package_or_raise(self, package_id: UUID) -> TravelPackage:
        """Get package by ID or raise NotFoundError."""
        package = await self.get_package_by_id(package_id)
        if not package:
            logger.warning(
                "Package not found",
                extra={"package_id": str(package_id)}
            )
            raise NotFoundError(resource_type="package", resource_id=str(package_id))
        return package

    async def lock_schedule(self, schedule_id: UUID) -> TourSchedule:
        """
        Take a row lock on a tour schedule for the rest of the transaction.

        Conflicting admissions for the same schedule queue here. On SQLite
        the clause is not rendered; BEGIN IMMEDIATE has already serialized
        the transaction.
        """
        stmt = select(TourSchedule).where(TourSchedule.id == schedule_id).with_for_update()
        result = await self.db.execute(stmt)
        schedule = result.scalar_one_or_none()
        if not schedule:
            raise NotFoundError(resource_type="tour_schedule", resource_id=str(schedule_id))

        logger.debug("Acquired row lock for tour schedule", extra={"schedule_id": str(schedule_id)})
        return schedule

    async def lock_package(self, package_id: UUID) -> TravelPackage:
        """Take a row lock on a package for the rest of the transaction."""
        stmt = select(TravelPackage).where(TravelPackage.id == package_id).with_for_update()
        result = await self.db.execute(stmt)
        package = result.scalar_one_or_none()
        if not package:
            raise NotFoundError(resource_type="package", resource_id=str(package_id))

        logger.debug("Acquired row lock for package", extra={"package_id": str(package_id)})
        return package

    async def count_held_seats(self, schedule_id: UUID, now: datetime) -> int:
        """Seats taken by confirmed and live pending holds on a schedule."""
        stmt = select(func.coalesce(func.sum(TourBooking.pax_count), 0)).where(
            TourBooking.schedule_id == schedule_id,
            _holds_capacity(TourBooking, now),
        )
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def seats_left(self, schedule: TourSchedule, now: datetime) -> int:
        held = await self.count_held_seats(schedule.id, now)
        return max(schedule.capacity - held, 0)

    async def get_available_seats(self, schedule_id: UUID, now: datetime | None = None) -> int:
        """
        Available seats on a tour schedule.

        Args:
            schedule_id: Tour schedule to query
            now: Reference time for deciding which pending holds are live

        Returns:
            capacity minus seats held by confirmed and live pending holds, floored at 0

        Raises:
            NotFoundError: If the schedule does not exist
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()
        async with translate_store_errors(self.db, "get_available_seats"):
            try:
                schedule = await self.get_schedule_or_raise(schedule_id)
            except NotFoundError:
                await self.db.rollback()
                raise
            available = await self.seats_left(schedule, now)
            await self.db.commit()

        logger.debug(
            "Seat availability computed",
            extra={
                "schedule_id": str(schedule_id),
                "capacity": schedule.capacity,
                "available": available
            }
        )
        return available

    async def count_overlapping_stays(
        self,
        package_id: UUID,
        check_in: date,
        check_out: date,
        now: datetime
    ) -> int:
        """Confirmed and live pending stays on a package overlapping [check_in, check_out)."""
        stmt = select(func.count(PackageBooking.id)).where(
            PackageBooking.package_id == package_id,
            PackageBooking.check_in_date < check_out,
            PackageBooking.check_out_date > check_in,
            _holds_capacity(PackageBooking, now),
        )
        result = await self.db.execute(stmt)
        return int(result.scalar_one())

    async def check_package_availability(
        self,
        package_id: UUID,
        check_in: date,
        check_out: date,
        now: datetime | None = None
    ) -> bool:
        """
        Whether a package date range can be booked.

        False when the stay length is outside the package's night bounds
        or a live hold overlaps the range.

        Raises:
            NotFoundError: If the package does not exist
            InvalidRequestError: If check-out is not after check-in
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()
        nights = nights_between(check_in, check_out)
        async with translate_store_errors(self.db, "check_package_availability"):
            try:
                package = await self.get_package_or_raise(package_id)
            except NotFoundError:
                await self.db.rollback()
                raise
            stay_problem = _stay_length_problem(nights, package)
            overlapping = await self.count_overlapping_stays(package_id, check_in, check_out, now)
            await self.db.commit()
        return stay_problem is None and overlapping == 0

    async def get_package_availability(
        self,
        package_id: UUID,
        check_in: date,
        check_out: date,
        now: datetime | None = None
    ) -> PackageAvailabilityResult:
        """Availability of a package date range with its stay bounds and the reason when unavailable."""
        now = now or utcnow()
        nights = nights_between(check_in, check_out)
        async with translate_store_errors(self.db, "get_package_availability"):
            try:
                package = await self.get_package_or_raise(package_id)
            except NotFoundError:
                await self.db.rollback()
                raise
            stay_problem = _stay_length_problem(nights, package)
            overlapping = await self.count_overlapping_stays(package_id, check_in, check_out, now)
            await self.db.commit()

        if stay_problem is not None:
            reason, message = stay_problem.reason, stay_problem.message
        elif overlapping:
            reason, message = "dates_unavailable", "These dates are not available"
        else:
            reason, message = None, None

        return PackageAvailabilityResult(
            package_id=package.id,
            check_in_date=check_in,
            check_out_date=check_out,
            available=reason is None,
            nights=nights,
            minimum_nights=package.minimum_nights,
            maximum_nights=package.maximum_nights,
            max_guests=package.max_guests,
            reason=reason,
            message=message,
        )
