"""Property-based tests for booking-hold invariants."""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime, timedelta

from hypothesis import given, settings
from hypothesis import strategies as st
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from tripavail.core.database import Base
from tripavail.core.exceptions import CapacityExceededError, InvalidRequestError
from tripavail.models import *  # noqa: F403 - Import all models
from tripavail.models.booking import BookingType, HoldStatus
from tripavail.schemas.catalog import CreateScheduleRequest, CreateTourRequest
from tripavail.schemas.common import Money
from tripavail.schemas.payment import ConfirmationOutcome
from tripavail.services.availability_service import AvailabilityService
from tripavail.services.catalog_service import CatalogService
from tripavail.services.expiry_service import ExpirySweeper
from tripavail.services.hold_service import HoldService
from tripavail.services.payment_service import PaymentService
from tripavail.services.validation import is_hold_still_valid, validate_stay_length

NOW = datetime(2026, 11, 1, 12, 0, 0)

# Strategies for generating test data
capacity_values = st.integers(min_value=1, max_value=10)
seat_requests = st.lists(st.integers(min_value=1, max_value=5), min_size=1, max_size=12)
offsets_seconds = st.integers(min_value=-1200, max_value=1200)


@asynccontextmanager
async def fresh_store():
    """In-memory store with schema; each example starts empty."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    finally:
        await engine.dispose()


async def seed_schedule(session_factory, capacity: int):
    async with session_factory() as db:
        catalog = CatalogService(db)
        tour = await catalog.create_tour(
            CreateTourRequest(operator_id="operator_1", title="Property Tour", slug="property-tour")
        )
        return await catalog.create_schedule(
            tour.id,
            CreateScheduleRequest(
                tour_id=str(tour.id),
                starts_at=NOW + timedelta(days=30),
                capacity=capacity,
                price=Money(amount=10000, currency="USD"),
            ),
        )


@settings(max_examples=30, deadline=None)
@given(capacity=capacity_values, requests=seat_requests)
def test_admitted_seats_never_exceed_capacity(capacity, requests):
    """Sequential admissions: a request is admitted iff it fits, and rejections carry the true remainder."""

    async def scenario():
        async with fresh_store() as session_factory:
            schedule = await seed_schedule(session_factory, capacity)
            held = 0

            for i, pax in enumerate(requests):
                async with session_factory() as db:
                    try:
                        await HoldService(db).request_tour_hold(schedule.id, f"traveler_{i}", pax, now=NOW)
                    except CapacityExceededError as e:
                        assert pax > capacity - held
                        assert e.available == capacity - held
                    else:
                        assert pax <= capacity - held
                        held += pax

                assert 0 <= held <= capacity

            async with session_factory() as db:
                available = await AvailabilityService(db).get_available_seats(schedule.id, now=NOW)
            assert available == capacity - held

    asyncio.run(scenario())


@settings(max_examples=20, deadline=None)
@given(attempts=st.integers(min_value=1, max_value=6))
def test_confirmation_transitions_exactly_once(attempts):
    async def scenario():
        async with fresh_store() as session_factory:
            schedule = await seed_schedule(session_factory, 2)
            async with session_factory() as db:
                hold = await HoldService(db).request_tour_hold(schedule.id, "traveler_1", 1, now=NOW)
            async with session_factory() as db:
                await PaymentService(db).start_payment(BookingType.TOUR, hold.id, "pi_prop", now=NOW)

            outcomes = []
            for i in range(attempts):
                async with session_factory() as db:
                    result = await PaymentService(db).confirm_on_payment_success(
                        BookingType.TOUR, "pi_prop", hold.id, now=NOW + timedelta(seconds=i + 1)
                    )
                outcomes.append(result.outcome)
                assert result.hold.status == HoldStatus.CONFIRMED.value
                assert result.hold.paid_at == NOW + timedelta(seconds=1)

            assert outcomes[0] == ConfirmationOutcome.CONFIRMED
            assert outcomes.count(ConfirmationOutcome.CONFIRMED) == 1

    asyncio.run(scenario())


@settings(max_examples=30, deadline=None)
@given(offset=offsets_seconds)
def test_expiry_predicate_agrees_everywhere(offset):
    """Availability, the payable check and the sweep draw the deadline line in the same place."""

    async def scenario():
        async with fresh_store() as session_factory:
            schedule = await seed_schedule(session_factory, 3)
            async with session_factory() as db:
                hold = await HoldService(db).request_tour_hold(schedule.id, "traveler_1", 2, now=NOW)

            at = hold.expires_at + timedelta(seconds=offset)
            live = at < hold.expires_at

            assert is_hold_still_valid(hold, at) is live

            async with session_factory() as db:
                available = await AvailabilityService(db).get_available_seats(schedule.id, now=at)
            assert available == (1 if live else 3)

            result = await ExpirySweeper(session_factory).expire_pending_holds(at)
            assert result.expired_count == (0 if live else 1)

            async with session_factory() as db:
                assert await AvailabilityService(db).get_available_seats(schedule.id, now=at) == available

    asyncio.run(scenario())


@given(
    nights=st.integers(min_value=1, max_value=30),
    minimum=st.integers(min_value=1, max_value=10),
    extra=st.one_of(st.none(), st.integers(min_value=0, max_value=10)),
)
def test_stay_length_bounds_are_inclusive(nights, minimum, extra):
    maximum = None if extra is None else minimum + extra
    within = nights >= minimum and (maximum is None or nights <= maximum)

    try:
        validate_stay_length(nights, minimum, maximum)
    except InvalidRequestError as e:
        assert not within
        assert e.reason == ("stay_too_short" if nights < minimum else "stay_too_long")
    else:
        assert within
