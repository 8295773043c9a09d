#!/usr/bin/env python3
"""Setup script for the VenueHub API."""

import asyncio
import logging
import sys
from decimal import Decimal
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from venuehub.core.config import get_settings
from venuehub.core.database import Database
from venuehub.models import Tenant, User, UserRole, Venue

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def setup_database(database_url: str) -> None:
    """Bring the database schema up to the latest migration."""
    logger.info("Setting up database...")

    alembic_cfg = Config()
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data(database_url: str) -> None:
    """Create a demo tenant with staff, a customer and two venues."""
    logger.info("Creating sample data...")

    database = Database(database_url)
    try:
        async with database.session_factory() as db:
            existing = await db.scalar(select(func.count()).select_from(Tenant))
            if existing:
                logger.info("Sample data already exists, skipping...")
                return

            tenant = Tenant(name="Harbour Events", slug="harbour-events")
            db.add(tenant)
            await db.flush()

            owner = User(
                tenant_id=tenant.id,
                email="owner@harbour-events.example",
                first_name="Olivia",
                last_name="Owner",
                role=UserRole.OWNER.value
            )
            db.add_all([
                owner,
                User(
                    tenant_id=tenant.id,
                    email="manager@harbour-events.example",
                    first_name="Morgan",
                    last_name="Manager",
                    role=UserRole.MANAGER.value
                ),
                User(
                    tenant_id=tenant.id,
                    email="customer@example.com",
                    first_name="Casey",
                    last_name="Customer",
                    role=UserRole.CUSTOMER.value
                ),
            ])
            await db.flush()

            db.add_all([
                Venue(
                    tenant_id=tenant.id,
                    name="Harbour Loft",
                    description="Open-plan loft overlooking the marina",
                    address={"street": "1 Quay Street", "city": "Bristol", "postcode": "BS1 4DJ", "country": "UK"},
                    capacity=80,
                    price_per_hour=Decimal("120.00"),
                    amenities=["wifi", "projector", "kitchen"],
                    created_by=owner.id
                ),
                Venue(
                    tenant_id=tenant.id,
                    name="Garden Room",
                    description="Small meeting room with garden access",
                    address={"street": "22 Park Row", "city": "Bath", "postcode": "BA1 1AA", "country": "UK"},
                    capacity=12,
                    price_per_hour=Decimal("45.50"),
                    amenities=["wifi", "whiteboard"],
                    created_by=owner.id
                ),
            ])

            await db.commit()
            logger.info("Sample data created successfully!")
    finally:
        await database.dispose()


def main() -> None:
    """Main setup function."""
    logger.info("Starting VenueHub API setup...")
    database_url = get_settings().database_url

    # Alembic's environment runs its own event loop
    setup_database(database_url)
    asyncio.run(create_sample_data(database_url))

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn venuehub.main:app --reload")


if __name__ == "__main__":
    main()
