"""User roles table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import CheckConstraint, Column, DateTime, Table, Text, Uuid

from doorstep.models.base import metadata, utcnow

user_roles = Table(
    "user_roles",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Identity provider user id
    Column("user_id", Uuid, nullable=False, unique=True, index=True),
    Column("role", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    CheckConstraint("role IN ('patient', 'doctor', 'admin')", name="user_roles_role_check"),
)
