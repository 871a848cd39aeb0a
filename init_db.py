"""
Database initialization script

Run this script to create all database tables.
Usage: python init_db.py [--drop | --seed]
"""
import asyncio
import logging
from permit_tracker.core.database import engine, async_session, init_models, Base
from permit_tracker.core.logging import configure_logging
from permit_tracker.models import County, ChecklistTemplateItem, PermitPackage, PackageChecklistItem, StatusLogEntry
from permit_tracker.services.seed import seed_reference_data

logger = logging.getLogger("permit_tracker.init_db")


async def init_database(seed: bool = False):
    """Create all database tables, optionally loading reference data"""
    logger.info("Creating database tables...")
    await init_models(engine)
    logger.info("Tables created: %s", ", ".join(sorted(Base.metadata.tables)))

    if seed:
        async with async_session() as db:
            counts = await seed_reference_data(db)
        logger.info("Seeded %(counties)d counties and %(templates)d checklist templates", counts)
    await engine.dispose()


async def drop_database():
    """Drop all database tables"""
    logger.info("Dropping all database tables...")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    logger.info("Database tables dropped")
    await engine.dispose()


if __name__ == "__main__":
    import sys

    configure_logging("INFO")
    if len(sys.argv) > 1 and sys.argv[1] == "--drop":
        asyncio.run(drop_database())
    else:
        asyncio.run(init_database(seed="--seed" in sys.argv[1:]))
