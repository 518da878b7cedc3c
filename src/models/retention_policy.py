"""DataRetentionPolicy model — how long each kind of record is kept, and why."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base, TimestampMixin


class DataRetentionPolicy(TimestampMixin, Base):
    """Retention period for one data type (call_logs, audit_logs, ...)."""

    __tablename__ = "data_retention_policies"

    data_type: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)
    retention_period_days: Mapped[int] = mapped_column(Integer, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    description: Mapped[str | None] = mapped_column(Text)
    legal_basis: Mapped[str | None] = mapped_column(
        String(50), comment="HIPAA, GDPR, business_requirement"
    )
    last_processed: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<DataRetentionPolicy {self.data_type} days={self.retention_period_days}>"
