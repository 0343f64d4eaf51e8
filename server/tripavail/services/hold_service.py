"""Hold admission service: capacity-safe creation of pending holds."""

import logging
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.config import settings
from ..core.database import translate_store_errors, utcnow
from ..core.exceptions import (
    AlreadyFinalizedError,
    CapacityExceededError,
    DatesUnavailableError,
    NotFoundError,
    ProblemDetailsException,
)
from ..core.observability import metrics_collector
from ..models.booking import (
    BookingType,
    Hold,
    HoldStatus,
    PackageBooking,
    PaymentStatus,
    TourBooking,
    hold_model_for,
)
from .availability_service import AvailabilityService
from .validation import nights_between, validate_guest_ceiling, validate_guest_or_seat_count, validate_stay_length

logger = logging.getLogger(__name__)

CANCELLABLE_STATUSES = (HoldStatus.PENDING.value, HoldStatus.CONFIRMED.value)


def _rejection_reason(error: ProblemDetailsException) -> str:
    return (error.code or "error").lower()


class HoldService:
    """
    Service for admitting, reading and cancelling holds.

    Admission is two-phase. The first availability read only rejects
    obviously oversubscribed requests early. The decision that counts is
    the re-check made after the inventory row is locked, in the same
    transaction as the insert.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.availability = AvailabilityService(db)

    def _expiry_for(self, now: datetime) -> datetime:
        return now + timedelta(minutes=settings.hold_ttl_minutes)

    async def request_tour_hold(
        self,
        schedule_id: UUID,
        traveler_id: str,
        pax_count: int,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None
    ) -> TourBooking:
        """
        Create a pending hold on seats of a tour schedule.

        Args:
            schedule_id: Tour schedule to hold seats on
            traveler_id: Traveler placing the hold
            pax_count: Seats requested
            metadata: Opaque booking context stored with the hold
            now: Reference time; expires_at is now plus the hold TTL

        Returns:
            Created pending hold

        Raises:
            NotFoundError: If the schedule does not exist
            InvalidRequestError: If fewer than one seat is requested
            CapacityExceededError: If the seats do not fit, carrying current availability
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()

        async with translate_store_errors(self.db, "request_tour_hold"):
            try:
                schedule = await self.availability.get_schedule_or_raise(schedule_id)
                validate_guest_or_seat_count(
                    pax_count,
                    await self.availability.seats_left(schedule, now),
                    str(schedule_id)
                )

                schedule = await self.availability.lock_schedule(schedule_id)
                available = await self.availability.seats_left(schedule, now)
                if pax_count > available:
                    logger.info(
                        "Tour hold lost the race at the guarded re-check",
                        extra={
                            "schedule_id": str(schedule_id),
                            "requested": pax_count,
                            "available": available
                        }
                    )
                    raise CapacityExceededError(
                        inventory_unit_id=str(schedule_id),
                        requested=pax_count,
                        available=available,
                    )

                hold = TourBooking(
                    schedule_id=schedule.id,
                    traveler_id=traveler_id,
                    pax_count=pax_count,
                    status=HoldStatus.PENDING.value,
                    payment_status=PaymentStatus.UNPAID.value,
                    total_price_amount=schedule.price_amount * pax_count,
                    price_currency=schedule.price_currency,
                    created_at=now,
                    expires_at=self._expiry_for(now),
                    booking_metadata=metadata,
                )
                self.db.add(hold)
                await self.db.commit()

            except ProblemDetailsException as e:
                await self.db.rollback()
                metrics_collector.record_hold_rejected(BookingType.TOUR.value, _rejection_reason(e))
                logger.warning(
                    "Tour hold rejected",
                    extra={
                        "schedule_id": str(schedule_id),
                        "traveler_id": traveler_id,
                        "requested": pax_count,
                        "code": e.code,
                        "detail": e.message
                    }
                )
                raise

            except IntegrityError as e:
                await self.db.rollback()
                available = await self._fresh_seat_count(schedule_id, now)
                metrics_collector.record_hold_rejected(BookingType.TOUR.value, "capacity_exceeded")
                logger.warning(
                    "Tour hold insert rejected by the store",
                    extra={
                        "schedule_id": str(schedule_id),
                        "requested": pax_count,
                        "available": available,
                        "error": str(e.orig)
                    }
                )
                raise CapacityExceededError(
                    inventory_unit_id=str(schedule_id),
                    requested=pax_count,
                    available=available,
                ) from e

        metrics_collector.record_hold_created(BookingType.TOUR.value)
        logger.info(
            "Tour hold created",
            extra={
                "hold_id": str(hold.id),
                "schedule_id": str(schedule_id),
                "traveler_id": traveler_id,
                "pax_count": pax_count,
                "total_price_amount": hold.total_price_amount,
                "expires_at": hold.expires_at.isoformat()
            }
        )
        return hold

    async def request_package_hold(
        self,
        package_id: UUID,
        traveler_id: str,
        check_in: date,
        check_out: date,
        guest_count: int,
        metadata: dict[str, Any] | None = None,
        now: datetime | None = None
    ) -> PackageBooking:
        """
        Create a pending hold on a package date range.

        Stay length and party size are validated before any availability
        read. The range is admitted only if no confirmed or live pending
        stay overlaps it.

        Raises:
            NotFoundError: If the package does not exist
            InvalidRequestError: If the dates, stay length or guest count are out of bounds
            DatesUnavailableError: If an overlapping stay exists
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()

        async with translate_store_errors(self.db, "request_package_hold"):
            try:
                nights = nights_between(check_in, check_out)
                package = await self.availability.get_package_or_raise(package_id)
                validate_stay_length(nights, package.minimum_nights, package.maximum_nights)
                validate_guest_ceiling(guest_count, package.max_guests)

                if await self.availability.count_overlapping_stays(package_id, check_in, check_out, now):
                    raise self._dates_unavailable(package_id, check_in, check_out, guest_count)

                package = await self.availability.lock_package(package_id)
                if await self.availability.count_overlapping_stays(package_id, check_in, check_out, now):
                    logger.info(
                        "Package hold lost the race at the guarded re-check",
                        extra={
                            "package_id": str(package_id),
                            "check_in_date": check_in.isoformat(),
                            "check_out_date": check_out.isoformat()
                        }
                    )
                    raise self._dates_unavailable(package_id, check_in, check_out, guest_count)

                hold = PackageBooking(
                    package_id=package.id,
                    traveler_id=traveler_id,
                    guest_count=guest_count,
                    check_in_date=check_in,
                    check_out_date=check_out,
                    number_of_nights=nights,
                    price_per_night_amount=package.price_per_night_amount,
                    total_price_amount=package.price_per_night_amount * nights,
                    price_currency=package.price_currency,
                    status=HoldStatus.PENDING.value,
                    payment_status=PaymentStatus.UNPAID.value,
                    created_at=now,
                    expires_at=self._expiry_for(now),
                    booking_metadata=metadata,
                )
                self.db.add(hold)
                await self.db.commit()

            except ProblemDetailsException as e:
                await self.db.rollback()
                metrics_collector.record_hold_rejected(BookingType.PACKAGE.value, _rejection_reason(e))
                logger.warning(
                    "Package hold rejected",
                    extra={
                        "package_id": str(package_id),
                        "traveler_id": traveler_id,
                        "check_in_date": check_in.isoformat(),
                        "check_out_date": check_out.isoformat(),
                        "code": e.code,
                        "detail": e.message
                    }
                )
                raise

            except IntegrityError as e:
                await self.db.rollback()
                metrics_collector.record_hold_rejected(BookingType.PACKAGE.value, "capacity_exceeded")
                logger.warning(
                    "Package hold insert rejected by the store",
                    extra={"package_id": str(package_id), "error": str(e.orig)}
                )
                raise self._dates_unavailable(package_id, check_in, check_out, guest_count) from e

        metrics_collector.record_hold_created(BookingType.PACKAGE.value)
        logger.info(
            "Package hold created",
            extra={
                "hold_id": str(hold.id),
                "package_id": str(package_id),
                "traveler_id": traveler_id,
                "nights": nights,
                "guest_count": guest_count,
                "total_price_amount": hold.total_price_amount,
                "expires_at": hold.expires_at.isoformat()
            }
        )
        return hold

    def _dates_unavailable(self, package_id: UUID, check_in: date, check_out: date, guest_count: int):
        return DatesUnavailableError(
            package_id=str(package_id),
            check_in=check_in.isoformat(),
            check_out=check_out.isoformat(),
            guest_count=guest_count,
        )

    async def _fresh_seat_count(self, schedule_id: UUID, now: datetime) -> int:
        """Re-query availability after a failed insert, in a short transaction of its own."""
        try:
            schedule = await self.availability.get_schedule_or_raise(schedule_id)
            return await self.availability.seats_left(schedule, now)
        finally:
            await self.db.rollback()

    async def get_hold_by_id(self, booking_type: BookingType, hold_id: UUID) -> Hold | None:
        """Get hold by ID."""
        model = hold_model_for(booking_type)
        stmt = select(model).where(model.id == hold_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_hold(self, booking_type: BookingType, hold_id: UUID) -> Hold:
        """
        Get hold by ID or raise NotFoundError.

        Raises:
            NotFoundError: If the hold does not exist
            TransientStoreError: If the store is unreachable
        """
        async with translate_store_errors(self.db, "get_hold"):
            hold = await self.get_hold_by_id(booking_type, hold_id)
            if hold:
                await self.db.commit()
            else:
                await self.db.rollback()
        if not hold:
            logger.warning(
                "Hold not found",
                extra={"booking_type": BookingType(booking_type).value, "hold_id": str(hold_id)}
            )
            raise NotFoundError(resource_type="booking", resource_id=str(hold_id))
        return hold

    async def cancel_hold(
        self,
        booking_type: BookingType,
        hold_id: UUID,
        reason: str | None = None,
        now: datetime | None = None
    ) -> Hold:
        """
        Operator-initiated cancellation of a pending or confirmed hold.

        Raises:
            NotFoundError: If the hold does not exist
            AlreadyFinalizedError: If the hold is already cancelled, expired or refunded
            TransientStoreError: If the store is unreachable
        """
        now = now or utcnow()
        model = hold_model_for(booking_type)

        async with translate_store_errors(self.db, "cancel_hold"):
            hold = await self.get_hold_by_id(booking_type, hold_id)
            if not hold:
                await self.db.rollback()
                raise NotFoundError(resource_type="booking", resource_id=str(hold_id))

            previous_status = hold.status
            stmt = (
                update(model)
                .where(model.id == hold_id, model.status.in_(CANCELLABLE_STATUSES))
                .values(status=HoldStatus.CANCELLED.value, cancelled_at=now)
                .execution_options(synchronize_session=False)
            )
            result = await self.db.execute(stmt)
            await self.db.refresh(hold)

            if result.rowcount == 0:
                status = hold.status
                await self.db.commit()
                raise AlreadyFinalizedError(hold_id=str(hold_id), status=status)

            await self.db.commit()

        logger.info(
            "Hold cancelled",
            extra={
                "booking_type": hold.booking_type.value,
                "hold_id": str(hold_id),
                "old_status": previous_status,
                "reason": reason
            }
        )
        return hold
