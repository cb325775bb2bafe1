"""create customers and charges tables

Revision ID: 5c1e8a9d2b40
Revises: 
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "5c1e8a9d2b40"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "customers",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("billing_profile_id", sa.String(length=100), unique=True),
        sa.Column("first_name", sa.String(length=100)),
        sa.Column("last_name", sa.String(length=100)),
        sa.Column("email", sa.String(length=255)),
        sa.Column("phone", sa.String(length=50)),
        sa.Column("nationality", sa.String(length=100)),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_customers_email", "customers", ["email"])

    op.create_table(
        "charges",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("customer_id", sa.String(length=36), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=10), nullable=False, server_default="eur"),
        sa.Column("description", sa.Text()),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("payment_method", sa.String(length=30), nullable=False),
        sa.Column("external_reference", sa.String(length=255)),
        sa.Column("payment_url", sa.Text()),
        sa.Column("gatekeeper_url", sa.Text()),
        sa.Column("refund_reference", sa.String(length=255)),
        sa.Column("idempotency_key", sa.String(length=255)),
        sa.Column("created_by", sa.String(length=36), nullable=False),
        sa.Column("admin_notes", sa.Text()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True)),
        sa.Column("refunded_at", sa.DateTime(timezone=True)),
        sa.UniqueConstraint("external_reference", name="uq_charges_external_reference"),
        sa.UniqueConstraint("idempotency_key", name="uq_charges_idempotency_key"),
    )
    op.create_index("ix_charges_customer_id", "charges", ["customer_id"])
    op.create_index("ix_charges_status", "charges", ["status"])


def downgrade() -> None:
    op.drop_index("ix_charges_status", table_name="charges")
    op.drop_index("ix_charges_customer_id", table_name="charges")
    op.drop_table("charges")
    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_table("customers")
