"""Script to run database migrations."""

import sys

import structlog

from alembic import command
from alembic.config import Config
from doorstep.middleware.logging import configure_logging

logger = structlog.get_logger(__name__)


def run_migrations(revision: str = "head") -> None:
    """Upgrade the database to ``revision``."""
    alembic_cfg = Config("alembic.ini")

    try:
        command.upgrade(alembic_cfg, revision)
    except Exception as e:
        logger.error("migration_failed", revision=revision, error=str(e))
        sys.exit(1)
    logger.info("migrations_applied", revision=revision)


def create_migration(message: str) -> None:
    """Autogenerate a migration from the table metadata."""
    alembic_cfg = Config("alembic.ini")

    try:
        command.revision(alembic_cfg, message=message, autogenerate=True)
    except Exception as e:
        logger.error("migration_creation_failed", message=message, error=str(e))
        sys.exit(1)
    logger.info("migration_created", message=message)


if __name__ == "__main__":
    configure_logging()
    if len(sys.argv) > 2 and sys.argv[1] == "create":
        create_migration(" ".join(sys.argv[2:]))
    elif len(sys.argv) > 1:
        print("Usage: python scripts/migrate.py [create <message>]")
        sys.exit(2)
    else:
        run_migrations()
