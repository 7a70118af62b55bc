"""Shared metadata and column helpers for SQLAlchemy Core tables."""

from datetime import UTC, datetime

from sqlalchemy import MetaData

# Metadata for all tables
metadata = MetaData()


def utcnow() -> datetime:
    """Timezone-aware current time, used as the Python-side column default."""
    return datetime.now(UTC)


def empty_list() -> list:
    """Default for JSON list columns."""
    return []
