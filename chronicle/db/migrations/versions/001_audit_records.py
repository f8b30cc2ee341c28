"""Create audit_records table.

Revision ID: 001
Revises:
Create Date: 2026-10-18

Tables: audit_records
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create the hash-chained audit_records table."""
    op.create_table(
        "audit_records",
        # sequence is assigned by the writer, never by a database sequence
        sa.Column("sequence", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("timestamp", sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("event_type", sa.String(50), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("user_id", sa.Text),
        sa.Column("resource", sa.Text, nullable=False),
        sa.Column("action", sa.Text, nullable=False),
        sa.Column("details", JSONB, nullable=False, server_default="{}"),
        sa.Column("ip_address", sa.Text),
        sa.Column("user_agent", sa.Text),
        sa.Column("correlation_id", sa.Text),
        sa.Column("source", sa.Text, nullable=False, server_default="system"),
        sa.Column("metadata", JSONB, nullable=False, server_default="{}"),
        sa.Column("previous_hash", sa.CHAR(64), nullable=False),
        sa.Column("hash", sa.CHAR(64), nullable=False),
        sa.CheckConstraint("sequence >= 0", name="ck_audit_records_sequence"),
    )
    op.create_index("idx_audit_records_timestamp", "audit_records", [sa.text("timestamp DESC")])
    op.create_index("idx_audit_records_type", "audit_records", ["event_type"])
    op.create_index("idx_audit_records_severity", "audit_records", ["severity"])
    op.create_index("idx_audit_records_resource", "audit_records", ["resource"])
    op.create_index(
        "idx_audit_records_user",
        "audit_records",
        ["user_id", "event_type"],
        postgresql_where=sa.text("user_id IS NOT NULL"),
    )
    op.create_index(
        "idx_audit_records_correlation",
        "audit_records",
        ["correlation_id"],
        postgresql_where=sa.text("correlation_id IS NOT NULL"),
    )
    # One successor per predecessor: a forked chain cannot be stored
    op.create_index(
        "uq_audit_records_previous_hash",
        "audit_records",
        ["previous_hash"],
        unique=True,
    )


def downgrade() -> None:
    """Drop audit_records table."""
    op.drop_table("audit_records")
