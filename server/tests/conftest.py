"""Test configuration and fixtures."""

import os

# Must be set before the application settings are first imported
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["HOLD_SWEEP_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import timedelta  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from tripavail.core.database import (  # noqa: E402
    Base,
    enable_sqlite_immediate_transactions,
    get_db,
    get_session_factory,
    utcnow,
)
from tripavail.models import *  # noqa: E402,F403 - Import all models
from tripavail.schemas.catalog import (  # noqa: E402
    CreatePackageRequest,
    CreateScheduleRequest,
    CreateTourRequest,
)
from tripavail.schemas.common import Money  # noqa: E402
from tripavail.services.catalog_service import CatalogService  # noqa: E402


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """
    Create a file-backed SQLite engine.

    One connection per session and BEGIN IMMEDIATE transactions, the same
    setup the service uses for SQLite, so concurrent sessions really contend.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'tripavail.db'}",
        echo=False,
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )
    enable_sqlite_immediate_transactions(engine)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    """Session factory bound to the test engine."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture(scope="function")
async def test_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def now():
    """Fixed reference time for deadline arithmetic."""
    return utcnow().replace(microsecond=0)


@pytest_asyncio.fixture
async def tour(session_factory):
    async with session_factory() as db:
        return await CatalogService(db).create_tour(
            CreateTourRequest(
                operator_id="operator_1",
                title="Northern Lights Adventure",
                slug="northern-lights-adventure",
                description="Chase the Aurora Borealis across Iceland",
            )
        )


@pytest_asyncio.fixture
async def schedule(session_factory, tour):
    """Tour schedule with three seats at 100.00 USD each."""
    async with session_factory() as db:
        return await CatalogService(db).create_schedule(
            tour.id,
            CreateScheduleRequest(
                tour_id=str(tour.id),
                starts_at=utcnow() + timedelta(days=30),
                capacity=3,
                price=Money(amount=10000, currency="USD"),
            ),
        )


@pytest_asyncio.fixture
async def package(session_factory):
    """Package with a 2 to 7 night stay, up to 4 guests, 150.00 USD per night."""
    async with session_factory() as db:
        return await CatalogService(db).create_package(
            CreatePackageRequest(
                owner_id="hotel_1",
                name="Reykjavik Harbour Weekend",
                slug="reykjavik-harbour-weekend",
                max_guests=4,
                minimum_nights=2,
                maximum_nights=7,
                price_per_night=Money(amount=15000, currency="USD"),
            )
        )


@pytest_asyncio.fixture(scope="function")
async def test_app(session_factory):
    """Create the application with its data store pointed at the test engine."""
    from tripavail.main import create_app

    app = create_app()

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
