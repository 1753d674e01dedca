"""
001: Initial schema: stored_valuation table

Revision ID: 001
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSON

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "stored_valuation",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("tier", sa.String(10), nullable=False),

        sa.Column("attributes_json", JSON, nullable=False),
        sa.Column("result_json", JSON, nullable=True),
        sa.Column("refinement_history_json", JSON, nullable=False),

        sa.Column("transaction_id", sa.String(100), nullable=True),
        sa.Column("amount_paid", sa.Float, nullable=True),
        sa.Column("payment_method", sa.String(20), nullable=True),

        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("last_updated", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="1"),
    )

    op.create_index("ix_stored_valuation_status", "stored_valuation", ["status"])
    op.create_index("ix_stored_valuation_transaction_id", "stored_valuation", ["transaction_id"])
    op.create_index("ix_stored_valuation_last_updated", "stored_valuation", ["last_updated"])


def downgrade() -> None:
    op.drop_table("stored_valuation")
