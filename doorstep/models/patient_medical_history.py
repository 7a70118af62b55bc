"""Patient medical history table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import JSON, Column, DateTime, String, Table, Text, Uuid

from doorstep.models.base import empty_list, metadata, utcnow

patient_medical_history = Table(
    "patient_medical_history",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("patient_id", Uuid, nullable=False, unique=True, index=True),
    # Medical information
    Column("allergies", JSON, nullable=False, default=empty_list),
    Column("medications", JSON, nullable=False, default=empty_list),
    Column("medical_conditions", JSON, nullable=False, default=empty_list),
    Column("blood_type", String(10)),
    # Emergency contact
    Column("emergency_contact_name", Text),
    Column("emergency_contact_phone", String(20)),
    # Insurance information
    Column("insurance_provider", Text),
    Column("insurance_policy_number", String(100)),
    Column("notes", Text),
    # Metadata
    Column("created_at", DateTime(timezone=True), nullable=False, default=utcnow),
    Column(
        "updated_at",
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    ),
)
