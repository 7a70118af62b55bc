"""Doctor subscriptions table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Table,
    Text,
    UniqueConstraint,
    Uuid,
)

from doorstep.models.base import metadata, utcnow

subscriptions = Table(
    "subscriptions",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("doctor_id", Uuid, nullable=False, index=True),
    Column("plan_type", Text, nullable=False),
    # Whole KES per month
    Column("amount", Integer, nullable=False),
    Column("status", Text, nullable=False, default="pending"),
    # Payment correlation
    Column("payment_reference", Uuid, nullable=False, unique=True, default=uuid4),
    Column("tracking_id", Text, nullable=True, unique=True),
    Column("checkout_id", Text, nullable=True),
    # Subscription window, set on activation
    Column("starts_at", DateTime(timezone=True), nullable=True),
    Column("ends_at", DateTime(timezone=True), nullable=True),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    ),
    UniqueConstraint("doctor_id", "tracking_id", name="subscriptions_doctor_tracking_key"),
    CheckConstraint(
        "plan_type IN ('basic', 'premium', 'enterprise')",
        name="subscriptions_plan_type_check",
    ),
    CheckConstraint(
        "status IN ('pending', 'active', 'failed')",
        name="subscriptions_status_check",
    ),
    Index("ix_subscriptions_doctor_window", "doctor_id", "ends_at"),
)
