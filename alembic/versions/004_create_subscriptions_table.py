"""Create subscriptions table.

Revision ID: 004
Revises: 003
Create Date: 2026-10-05 00:30:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade database schema."""
    op.create_table(
        "subscriptions",
        sa.Column(
            "id", postgresql.UUID(), server_default=sa.text("gen_random_uuid()"), nullable=False
        ),
        sa.Column("doctor_id", postgresql.UUID(), nullable=False),
        sa.Column("plan_type", sa.Text(), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("status", sa.Text(), server_default="pending", nullable=False),
        sa.Column(
            "payment_reference",
            postgresql.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("tracking_id", sa.Text(), nullable=True),
        sa.Column("checkout_id", sa.Text(), nullable=True),
        sa.Column("starts_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.Column("ends_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
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
        sa.CheckConstraint(
            "plan_type IN ('basic', 'premium', 'enterprise')",
            name="subscriptions_plan_type_check",
        ),
        sa.CheckConstraint(
            "status IN ('pending', 'active', 'failed')",
            name="subscriptions_status_check",
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("payment_reference", name="subscriptions_payment_reference_key"),
        sa.UniqueConstraint("tracking_id", name="subscriptions_tracking_id_key"),
        sa.UniqueConstraint(
            "doctor_id", "tracking_id", name="subscriptions_doctor_tracking_key"
        ),
    )

    op.create_index("ix_subscriptions_doctor_id", "subscriptions", ["doctor_id"])
    op.create_index("ix_subscriptions_doctor_window", "subscriptions", ["doctor_id", "ends_at"])


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index("ix_subscriptions_doctor_window", table_name="subscriptions")
    op.drop_index("ix_subscriptions_doctor_id", table_name="subscriptions")
    op.drop_table("subscriptions")
