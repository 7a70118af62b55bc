"""Create medical_credentials and patient_medical_history tables.

Revision ID: 003
Revises: 002
Create Date: 2026-10-05 00:20:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
    ]


def upgrade() -> None:
    """Create doctor credential and patient history tables."""

    # Doctor credentials, one row per doctor
    op.create_table(
        "medical_credentials",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("license_number", sa.String(100), server_default="", nullable=False),
        sa.Column("license_state", sa.String(100), server_default="", nullable=False),
        sa.Column("medical_school", sa.Text(), nullable=True),
        sa.Column("graduation_year", sa.Integer(), nullable=True),
        sa.Column("years_experience", sa.Integer(), nullable=True),
        sa.Column(
            "specialties", sa.JSON(), server_default=sa.text("'[]'"), nullable=False
        ),
        sa.Column(
            "board_certifications", sa.JSON(), server_default=sa.text("'[]'"), nullable=False
        ),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("verified", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("verified_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("verified_by", postgresql.UUID(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_medical_credentials_doctor_id", "medical_credentials", ["doctor_id"], unique=True
    )

    # Patient medical history, one row per patient
    op.create_table(
        "patient_medical_history",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("allergies", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column("medications", sa.JSON(), server_default=sa.text("'[]'"), nullable=False),
        sa.Column(
            "medical_conditions", sa.JSON(), server_default=sa.text("'[]'"), nullable=False
        ),
        sa.Column("blood_type", sa.String(10), nullable=True),
        sa.Column("emergency_contact_name", sa.Text(), nullable=True),
        sa.Column("emergency_contact_phone", sa.String(20), nullable=True),
        sa.Column("insurance_provider", sa.Text(), nullable=True),
        sa.Column("insurance_policy_number", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_patient_medical_history_patient_id",
        "patient_medical_history",
        ["patient_id"],
        unique=True,
    )


def downgrade() -> None:
    """Drop doctor credential and patient history tables."""
    op.drop_index(
        "ix_patient_medical_history_patient_id", table_name="patient_medical_history"
    )
    op.drop_table("patient_medical_history")
    op.drop_index("ix_medical_credentials_doctor_id", table_name="medical_credentials")
    op.drop_table("medical_credentials")
