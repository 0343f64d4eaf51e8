"""Unit tests for hold admission, availability and cancellation."""

from datetime import date, timedelta
from uuid import uuid4

import pytest

from tripavail.core.config import settings
from tripavail.core.exceptions import (
    AlreadyFinalizedError,
    CapacityExceededError,
    DatesUnavailableError,
    InvalidRequestError,
    NotFoundError,
)
from tripavail.models.booking import BookingType, HoldMixin, HoldStatus, PaymentStatus
from tripavail.services.availability_service import AvailabilityService
from tripavail.services.hold_service import HoldService

SEAT_PRICE = 10000
NIGHT_PRICE = 15000
CHECK_IN = date(2026, 12, 10)


async def request_seats(session_factory, schedule_id, pax_count, now, traveler_id="traveler_1"):
    async with session_factory() as db:
        return await HoldService(db).request_tour_hold(schedule_id, traveler_id, pax_count, now=now)


async def seats_available(session_factory, schedule_id, now):
    async with session_factory() as db:
        return await AvailabilityService(db).get_available_seats(schedule_id, now=now)


class TestSeatAvailability:
    @pytest.mark.asyncio
    async def test_empty_schedule_has_full_capacity(self, session_factory, schedule, now):
        assert await seats_available(session_factory, schedule.id, now) == 3

    @pytest.mark.asyncio
    async def test_unknown_schedule(self, session_factory, now):
        with pytest.raises(NotFoundError):
            await seats_available(session_factory, uuid4(), now)

    @pytest.mark.asyncio
    async def test_live_pending_hold_reduces_availability(self, session_factory, schedule, now):
        await request_seats(session_factory, schedule.id, 2, now)

        assert await seats_available(session_factory, schedule.id, now) == 1

    @pytest.mark.asyncio
    async def test_lapsed_hold_is_excluded_before_sweep(self, session_factory, schedule, now):
        hold = await request_seats(session_factory, schedule.id, 2, now)

        assert await seats_available(session_factory, schedule.id, hold.expires_at) == 3
        assert await seats_available(session_factory, schedule.id, hold.expires_at - timedelta(seconds=1)) == 1

    @pytest.mark.asyncio
    async def test_cancelled_hold_releases_seats(self, session_factory, schedule, now):
        hold = await request_seats(session_factory, schedule.id, 3, now)

        async with session_factory() as db:
            await HoldService(db).cancel_hold(BookingType.TOUR, hold.id, reason="operator request", now=now)

        assert await seats_available(session_factory, schedule.id, now) == 3


class TestTourHoldAdmission:
    @pytest.mark.asyncio
    async def test_creates_pending_hold(self, session_factory, schedule, now):
        hold = await request_seats(session_factory, schedule.id, 2, now)

        assert hold.status == HoldStatus.PENDING.value
        assert hold.payment_status == PaymentStatus.UNPAID.value
        assert hold.pax_count == 2
        assert hold.total_price_amount == 2 * SEAT_PRICE
        assert hold.price_currency == "USD"
        assert hold.created_at == now
        assert hold.expires_at == now + timedelta(minutes=settings.hold_ttl_minutes)
        assert hold.booking_type == BookingType.TOUR
        assert hold.inventory_unit_id == schedule.id

    @pytest.mark.asyncio
    async def test_rejects_zero_seats(self, session_factory, schedule, now):
        with pytest.raises(InvalidRequestError) as exc_info:
            await request_seats(session_factory, schedule.id, 0, now)

        assert str(exc_info.value) == "At least 1 guest is required"

    @pytest.mark.asyncio
    async def test_rejects_oversubscription_with_current_availability(self, session_factory, schedule, now):
        await request_seats(session_factory, schedule.id, 2, now)

        with pytest.raises(CapacityExceededError) as exc_info:
            await request_seats(session_factory, schedule.id, 2, now, traveler_id="traveler_2")

        assert exc_info.value.available == 1
        assert exc_info.value.problem_details["available"] == 1
        assert await seats_available(session_factory, schedule.id, now) == 1

    @pytest.mark.asyncio
    async def test_fills_capacity_exactly(self, session_factory, schedule, now):
        for traveler in range(3):
            await request_seats(session_factory, schedule.id, 1, now, traveler_id=f"traveler_{traveler}")

        assert await seats_available(session_factory, schedule.id, now) == 0
        with pytest.raises(CapacityExceededError):
            await request_seats(session_factory, schedule.id, 1, now, traveler_id="traveler_late")

    @pytest.mark.asyncio
    async def test_lapsed_hold_frees_seats_for_new_admission(self, session_factory, schedule, now):
        first = await request_seats(session_factory, schedule.id, 3, now)

        second = await request_seats(session_factory, schedule.id, 3, first.expires_at, traveler_id="traveler_2")

        assert second.status == HoldStatus.PENDING.value

    @pytest.mark.asyncio
    async def test_unknown_schedule(self, session_factory, now):
        with pytest.raises(NotFoundError):
            await request_seats(session_factory, uuid4(), 1, now)


class TestPackageHoldAdmission:
    async def request_stay(self, session_factory, package_id, nights, now, check_in=CHECK_IN, guests=2):
        async with session_factory() as db:
            return await HoldService(db).request_package_hold(
                package_id,
                "traveler_1",
                check_in,
                check_in + timedelta(days=nights),
                guests,
                now=now,
            )

    @pytest.mark.asyncio
    async def test_creates_hold_with_frozen_nightly_total(self, session_factory, package, now):
        hold = await self.request_stay(session_factory, package.id, 3, now)

        assert hold.status == HoldStatus.PENDING.value
        assert hold.number_of_nights == 3
        assert hold.price_per_night_amount == NIGHT_PRICE
        assert hold.total_price_amount == 3 * NIGHT_PRICE
        assert hold.booking_type == BookingType.PACKAGE
        assert hold.inventory_unit_id == package.id
        assert hold.requested_units == 2

    @pytest.mark.asyncio
    async def test_minimum_stay(self, session_factory, package, now):
        with pytest.raises(InvalidRequestError) as exc_info:
            await self.request_stay(session_factory, package.id, 1, now)

        assert str(exc_info.value) == "Minimum stay is 2 nights"

    @pytest.mark.asyncio
    async def test_maximum_stay(self, session_factory, package, now):
        with pytest.raises(InvalidRequestError) as exc_info:
            await self.request_stay(session_factory, package.id, 8, now)

        assert str(exc_info.value) == "Maximum stay is 7 nights"

    @pytest.mark.asyncio
    async def test_guest_ceiling(self, session_factory, package, now):
        with pytest.raises(InvalidRequestError) as exc_info:
            await self.request_stay(session_factory, package.id, 3, now, guests=5)

        assert exc_info.value.reason == "too_many_guests"

    @pytest.mark.asyncio
    async def test_overlapping_range_is_unavailable(self, session_factory, package, now):
        await self.request_stay(session_factory, package.id, 3, now)

        with pytest.raises(DatesUnavailableError) as exc_info:
            await self.request_stay(session_factory, package.id, 3, now, check_in=CHECK_IN + timedelta(days=2))

        assert exc_info.value.status_code == 409
        assert exc_info.value.available == 0

    @pytest.mark.asyncio
    async def test_back_to_back_stays_do_not_overlap(self, session_factory, package, now):
        await self.request_stay(session_factory, package.id, 3, now)

        hold = await self.request_stay(session_factory, package.id, 2, now, check_in=CHECK_IN + timedelta(days=3))

        assert hold.check_in_date == CHECK_IN + timedelta(days=3)

    @pytest.mark.asyncio
    async def test_range_availability_query(self, session_factory, package, now):
        hold = await self.request_stay(session_factory, package.id, 3, now)

        async with session_factory() as db:
            service = AvailabilityService(db)
            taken = await service.get_package_availability(
                package.id, CHECK_IN + timedelta(days=1), CHECK_IN + timedelta(days=4), now=now
            )
            after_deadline = await service.check_package_availability(
                package.id, CHECK_IN, CHECK_IN + timedelta(days=3), now=hold.expires_at
            )

        assert taken.available is False
        assert taken.reason == "dates_unavailable"
        assert taken.nights == 3
        assert taken.minimum_nights == 2
        assert after_deadline is True

    @pytest.mark.asyncio
    async def test_range_outside_night_bounds_is_unavailable(self, session_factory, package, now):
        async with session_factory() as db:
            service = AvailabilityService(db)
            one_night = await service.check_package_availability(
                package.id, CHECK_IN, CHECK_IN + timedelta(days=1), now=now
            )
            short = await service.get_package_availability(
                package.id, CHECK_IN, CHECK_IN + timedelta(days=1), now=now
            )
            long = await service.get_package_availability(
                package.id, CHECK_IN, CHECK_IN + timedelta(days=8), now=now
            )
            within = await service.get_package_availability(
                package.id, CHECK_IN, CHECK_IN + timedelta(days=2), now=now
            )

        assert one_night is False
        assert short.available is False
        assert short.reason == "stay_too_short"
        assert short.message == "Minimum stay is 2 nights"
        assert long.available is False
        assert long.reason == "stay_too_long"
        assert within.available is True
        assert within.reason is None


class TestGetAndCancel:
    @pytest.mark.asyncio
    async def test_get_hold(self, session_factory, schedule, now):
        hold = await request_seats(session_factory, schedule.id, 1, now)

        async with session_factory() as db:
            fetched = await HoldService(db).get_hold(BookingType.TOUR, hold.id)

        assert fetched.id == hold.id
        assert fetched.traveler_id == "traveler_1"

    @pytest.mark.asyncio
    async def test_get_hold_wrong_type(self, session_factory, schedule, now):
        hold = await request_seats(session_factory, schedule.id, 1, now)

        async with session_factory() as db:
            with pytest.raises(NotFoundError):
                await HoldService(db).get_hold(BookingType.PACKAGE, hold.id)

    @pytest.mark.asyncio
    async def test_cancel_twice(self, session_factory, schedule, now):
        hold = await request_seats(session_factory, schedule.id, 1, now)

        async with session_factory() as db:
            cancelled = await HoldService(db).cancel_hold(BookingType.TOUR, hold.id, now=now)
        assert cancelled.status == HoldStatus.CANCELLED.value
        assert cancelled.cancelled_at == now

        async with session_factory() as db:
            with pytest.raises(AlreadyFinalizedError) as exc_info:
                await HoldService(db).cancel_hold(BookingType.TOUR, hold.id, now=now)
        assert exc_info.value.hold_status == HoldStatus.CANCELLED.value


def test_hold_tables_define_their_inventory_mapping():
    assert not hasattr(HoldMixin, "inventory_unit_id")
    assert not hasattr(HoldMixin, "requested_units")
