"""Audit schema — audit_logs and data_retention_policies.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    op.create_table(
        "audit_logs",
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("clinic_id", sa.String(100)),
        sa.Column("action", sa.String(50), nullable=False, comment="AuditAction enum value"),
        sa.Column("entity_type", sa.String(100), nullable=False, comment="appointment, call_log, patient_data, ..."),
        sa.Column("entity_id", sa.String(100)),
        sa.Column("details", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("ip_address", sa.String(100)),
        sa.Column("user_agent", sa.Text()),
        sa.Column("successful", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("error_message", sa.Text()),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("retention_date", sa.DateTime(timezone=True), comment="Earliest date this record may be purged"),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_clinic_id", "audit_logs", ["clinic_id"])
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])
    op.create_index("ix_audit_logs_retention_date", "audit_logs", ["retention_date"])

    op.create_table(
        "data_retention_policies",
        sa.Column("data_type", sa.String(100), nullable=False),
        sa.Column("retention_period_days", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("legal_basis", sa.String(50), comment="HIPAA, GDPR, business_requirement"),
        sa.Column("last_processed", sa.DateTime(timezone=True)),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("data_type"),
    )


def downgrade() -> None:
    op.drop_table("data_retention_policies")
    op.drop_index("ix_audit_logs_retention_date", table_name="audit_logs")
    op.drop_index("ix_audit_logs_timestamp", table_name="audit_logs")
    op.drop_index("ix_audit_logs_clinic_id", table_name="audit_logs")
    op.drop_index("ix_audit_logs_user_id", table_name="audit_logs")
    op.drop_table("audit_logs")
