"""Doctor medical credentials table model using SQLAlchemy Core."""

from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Integer,
    String,
    Table,
    Text,
    Uuid,
    false,
)

from doorstep.models.base import empty_list, metadata, utcnow

medical_credentials = Table(
    "medical_credentials",
    metadata,
    Column("id", Uuid, primary_key=True, default=uuid4),
    Column("doctor_id", Uuid, nullable=False, unique=True, index=True),
    # Licensing
    Column("license_number", String(100), nullable=False, default=""),
    Column("license_state", String(100), nullable=False, default=""),
    # Education and experience
    Column("medical_school", Text),
    Column("graduation_year", Integer),
    Column("years_experience", Integer),
    # Ordered lists
    Column("specialties", JSON, nullable=False, default=empty_list),
    Column("board_certifications", JSON, nullable=False, default=empty_list),
    Column("bio", Text),
    # Verification (admin only)
    Column("verified", Boolean, nullable=False, default=False, server_default=false()),
    Column("verified_at", DateTime(timezone=True)),
    Column("verified_by", Uuid),
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
