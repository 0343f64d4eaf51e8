#!/usr/bin/env python3
"""Setup script for the booking-hold service: migrate the schema and seed a sample catalog."""

import asyncio
import logging
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from tripavail.core.database import async_session_factory, close_db
from tripavail.models import Tour
from tripavail.schemas.catalog import CreatePackageRequest, CreateScheduleRequest, CreateTourRequest
from tripavail.schemas.common import Money
from tripavail.services.catalog_service import CatalogService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def setup_database():
    """Bring the schema up to the latest revision."""
    logger.info("Running database migrations...")
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data():
    """Create a tour with weekly schedules and one package."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing_tours = await db.execute(select(func.count(Tour.id)))
        if existing_tours.scalar_one() > 0:
            await db.rollback()
            logger.info("Sample data already exists, skipping...")
            return
        await db.rollback()

        catalog = CatalogService(db)
        tour = await catalog.create_tour(
            CreateTourRequest(
                operator_id="operator_demo",
                title="Northern Lights Adventure",
                slug="northern-lights-adventure",
                description="Chase the Aurora Borealis across Iceland with expert guides",
            )
        )

        base_date = datetime.now(timezone.utc) + timedelta(days=30)
        for i in range(5):
            await catalog.create_schedule(
                tour.id,
                CreateScheduleRequest(
                    tour_id=str(tour.id),
                    starts_at=base_date + timedelta(days=i * 7),
                    capacity=12,
                    price=Money(amount=29999, currency="USD"),
                ),
            )

        await catalog.create_package(
            CreatePackageRequest(
                owner_id="hotel_demo",
                name="Reykjavik Harbour Weekend",
                slug="reykjavik-harbour-weekend",
                max_guests=4,
                minimum_nights=2,
                maximum_nights=7,
                price_per_night=Money(amount=18900, currency="USD"),
            )
        )

    logger.info("Sample data created successfully!")


async def seed():
    try:
        await create_sample_data()
    finally:
        await close_db()


def main():
    """Main setup function."""
    logger.info("Starting booking-hold service setup...")

    setup_database()
    asyncio.run(seed())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn tripavail.main:app --reload")


if __name__ == "__main__":
    main()
