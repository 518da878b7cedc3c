"""SQLAlchemy ORM models for the clinic dashboard backend.

Import all models here so Alembic and Base.metadata.create_all() discover them.
"""

from __future__ import annotations

from src.models.audit import AuditLog
from src.models.base import Base
from src.models.enums import AuditAction, LegalBasis, UserRole
from src.models.retention_policy import DataRetentionPolicy

__all__ = [
    # Base
    "Base",
    # Models
    "AuditLog",
    "DataRetentionPolicy",
    # Enums
    "AuditAction",
    "LegalBasis",
    "UserRole",
]
