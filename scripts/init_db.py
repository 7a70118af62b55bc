"""Script to create all tables directly from the table metadata.

Intended for local development; deployed databases are managed with
``scripts/migrate.py``.
"""

import asyncio

import structlog

from doorstep.database import engine
from doorstep.middleware.logging import configure_logging
from doorstep.models import metadata

logger = structlog.get_logger(__name__)


async def init_db() -> None:
    """Create every table that does not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)
    await engine.dispose()

    logger.info("database_initialized", tables=sorted(metadata.tables))


if __name__ == "__main__":
    configure_logging()
    asyncio.run(init_db())
