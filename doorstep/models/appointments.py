"""Appointments table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    Index,
    Integer,
    Table,
    Text,
    Uuid,
)

from doorstep.models.base import metadata, utcnow

appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    # Participants
    Column("doctor_id", Uuid, nullable=False, index=True),
    Column("patient_id", Uuid, nullable=False, index=True),
    # Booking details (set by the patient at creation)
    Column("appointment_date", DateTime(timezone=True), nullable=False),
    Column("consultation_type", Text, nullable=False, default="home_visit"),
    Column("address", Text, nullable=True),
    Column("notes", Text, nullable=True),
    # Whole KES
    Column("amount", Integer, nullable=False),
    # Lifecycle
    Column("status", Text, nullable=False, default="pending"),
    Column("payment_status", Text, nullable=False, default="pending"),
    # Payment correlation
    Column("payment_reference", Uuid, nullable=False, unique=True, default=uuid4),
    Column("tracking_id", Text, nullable=True, unique=True),
    Column("checkout_id", Text, nullable=True),
    # Set while a prompt is being sent; cleared if the provider call fails
    Column("payment_initiated_at", DateTime(timezone=True), nullable=True),
    # Audit fields
    Column("paid_at", DateTime(timezone=True), nullable=True),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    ),
    # Constraints
    CheckConstraint(
        "status IN ('pending', 'confirmed', 'completed', 'cancelled')",
        name="appointments_status_check",
    ),
    CheckConstraint(
        "payment_status IN ('pending', 'completed', 'failed')",
        name="appointments_payment_status_check",
    ),
    CheckConstraint(
        "consultation_type IN ('home_visit', 'clinic', 'teleconsultation')",
        name="appointments_consultation_type_check",
    ),
    CheckConstraint("amount > 0", name="appointments_amount_positive"),
    CheckConstraint(
        "NOT (payment_status = 'completed' AND status = 'cancelled')",
        name="appointments_paid_not_cancelled",
    ),
    Index("ix_appointments_doctor_date", "doctor_id", "appointment_date"),
)
