"""Concurrency tests for hold admission and confirmation."""

import asyncio
from datetime import date, timedelta

import pytest

from tripavail.core.exceptions import CapacityExceededError, DatesUnavailableError
from tripavail.models.booking import BookingType, HoldStatus
from tripavail.schemas.payment import ConfirmationOutcome
from tripavail.services.availability_service import AvailabilityService
from tripavail.services.expiry_service import ExpirySweeper
from tripavail.services.hold_service import HoldService
from tripavail.services.payment_service import PaymentService


async def attempt_tour_hold(session_factory, schedule_id, pax_count, traveler_id, now):
    """Each concurrent request gets its own session, as it would per HTTP request."""
    async with session_factory() as db:
        try:
            return await HoldService(db).request_tour_hold(schedule_id, traveler_id, pax_count, now=now)
        except CapacityExceededError as e:
            return e


@pytest.mark.asyncio
async def test_two_requests_for_the_last_seats(session_factory, schedule, now):
    """Capacity 3, two concurrent requests for 2 seats: exactly one is admitted."""
    results = await asyncio.gather(
        attempt_tour_hold(session_factory, schedule.id, 2, "traveler_a", now),
        attempt_tour_hold(session_factory, schedule.id, 2, "traveler_b", now),
    )

    admitted = [r for r in results if not isinstance(r, CapacityExceededError)]
    rejected = [r for r in results if isinstance(r, CapacityExceededError)]

    assert len(admitted) == 1
    assert len(rejected) == 1
    assert rejected[0].available == 1

    async with session_factory() as db:
        assert await AvailabilityService(db).get_available_seats(schedule.id, now=now) == 1


@pytest.mark.asyncio
async def test_concurrent_single_seat_requests_fill_capacity_exactly(session_factory, schedule, now):
    num_concurrent_requests = 10

    results = await asyncio.gather(*[
        attempt_tour_hold(session_factory, schedule.id, 1, f"traveler_{i}", now)
        for i in range(num_concurrent_requests)
    ])

    admitted = [r for r in results if not isinstance(r, CapacityExceededError)]
    assert len(admitted) == 3
    assert len({hold.traveler_id for hold in admitted}) == 3

    async with session_factory() as db:
        assert await AvailabilityService(db).get_available_seats(schedule.id, now=now) == 0


@pytest.mark.asyncio
async def test_concurrent_overlapping_stays(session_factory, package, now):
    async def attempt(check_in: date, traveler_id: str):
        async with session_factory() as db:
            try:
                return await HoldService(db).request_package_hold(
                    package.id, traveler_id, check_in, check_in + timedelta(days=3), 2, now=now
                )
            except DatesUnavailableError as e:
                return e

    results = await asyncio.gather(
        attempt(date(2026, 12, 10), "traveler_a"),
        attempt(date(2026, 12, 11), "traveler_b"),
        attempt(date(2026, 12, 12), "traveler_c"),
    )

    admitted = [r for r in results if not isinstance(r, DatesUnavailableError)]
    assert len(admitted) == 1


@pytest.mark.asyncio
async def test_concurrent_confirmations_transition_once(session_factory, schedule, now):
    async with session_factory() as db:
        hold = await HoldService(db).request_tour_hold(schedule.id, "traveler_1", 1, now=now)
    async with session_factory() as db:
        await PaymentService(db).start_payment(BookingType.TOUR, hold.id, "pi_race", now=now)

    async def confirm():
        async with session_factory() as db:
            return await PaymentService(db).confirm_on_payment_success(
                BookingType.TOUR, "pi_race", hold.id, now=now + timedelta(minutes=1)
            )

    results = await asyncio.gather(*[confirm() for _ in range(5)])

    outcomes = [r.outcome for r in results]
    assert outcomes.count(ConfirmationOutcome.CONFIRMED) == 1
    assert outcomes.count(ConfirmationOutcome.ALREADY_FINALIZED) == 4
    assert all(r.hold.status == HoldStatus.CONFIRMED.value for r in results)


@pytest.mark.asyncio
async def test_overlapping_sweeps_expire_each_hold_once(session_factory, schedule, now):
    for i in range(3):
        async with session_factory() as db:
            await HoldService(db).request_tour_hold(schedule.id, f"traveler_{i}", 1, now=now)

    later = now + timedelta(minutes=11)
    results = await asyncio.gather(*[
        ExpirySweeper(session_factory).expire_pending_holds(later) for _ in range(3)
    ])

    assert all(r.success for r in results)
    assert sum(r.expired_count for r in results) == 3


@pytest.mark.asyncio
async def test_confirmation_racing_sweep_at_deadline(session_factory, schedule, now):
    """Exactly one of confirm and sweep wins; the hold is never both confirmed and expired."""
    async with session_factory() as db:
        hold = await HoldService(db).request_tour_hold(schedule.id, "traveler_1", 1, now=now)
    async with session_factory() as db:
        await PaymentService(db).start_payment(BookingType.TOUR, hold.id, "pi_edge", now=now)

    async def confirm():
        async with session_factory() as db:
            try:
                return await PaymentService(db).confirm_on_payment_success(
                    BookingType.TOUR, "pi_edge", hold.id, now=hold.expires_at - timedelta(seconds=1)
                )
            except Exception as e:  # noqa: BLE001 - the race may resolve either way
                return e

    confirmation, sweep = await asyncio.gather(
        confirm(),
        ExpirySweeper(session_factory).expire_pending_holds(hold.expires_at),
    )

    async with session_factory() as db:
        final = await HoldService(db).get_hold(BookingType.TOUR, hold.id)

    if final.status == HoldStatus.CONFIRMED.value:
        assert sweep.expired_count == 0
    else:
        assert final.status == HoldStatus.EXPIRED.value
        assert sweep.expired_count == 1
