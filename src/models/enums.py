"""Domain enums used across SQLAlchemy models and Pydantic schemas.

All enums use str mixin for JSON serialization.
"""

from __future__ import annotations

from enum import Enum


class AuditAction(str, Enum):
    """What was done to a piece of protected data."""

    CREATE = "CREATE"
    READ = "READ"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    EXPORT = "EXPORT"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"


class UserRole(str, Enum):
    """Dashboard principal role — admin unlocks the compliance endpoints."""

    STAFF = "staff"
    ADMIN = "admin"


class LegalBasis(str, Enum):
    """Regulation a retention policy answers to."""

    HIPAA = "HIPAA"
    GDPR = "GDPR"
    BUSINESS = "business_requirement"
