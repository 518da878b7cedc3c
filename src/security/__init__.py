"""Security & compliance module — HIPAA audit trail and retention."""

from src.security.audit import audit_recorder
from src.security.middleware import AuditMiddleware, audited_route

__all__ = ["AuditMiddleware", "audit_recorder", "audited_route"]
