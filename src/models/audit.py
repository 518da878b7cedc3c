"""AuditLog model — HIPAA audit trail for every access to PHI.

Every access to protected health information is persisted here.
This table is append-only — no updates. Rows are deleted only after
their retention_date has passed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, UUIDPrimaryKeyMixin


class AuditLog(UUIDPrimaryKeyMixin, Base):
    """Immutable audit trail entry."""

    __tablename__ = "audit_logs"

    # Who
    user_id: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    clinic_id: Mapped[str | None] = mapped_column(String(100), index=True)

    # What
    action: Mapped[str] = mapped_column(String(50), nullable=False, comment="AuditAction enum value")
    entity_type: Mapped[str] = mapped_column(
        String(100), nullable=False, comment="appointment, call_log, patient_data, ..."
    )
    entity_id: Mapped[str | None] = mapped_column(String(100))
    details: Mapped[dict[str, Any] | None] = mapped_column(JSONB)

    # Where from
    ip_address: Mapped[str | None] = mapped_column(String(100))
    user_agent: Mapped[str | None] = mapped_column(Text)

    # Outcome
    successful: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    error_message: Mapped[str | None] = mapped_column(Text)

    # When, and until when it must be kept
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    retention_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        index=True,
        comment="Earliest date this record may be purged",
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id} user={self.user_id}>"
