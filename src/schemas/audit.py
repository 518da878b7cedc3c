"""Audit trail schemas — recorder input, request snapshot, and API output.

AuditLogData is what a caller knows about an access event. RequestContext
is what the HTTP layer knows. The recorder combines both into one row.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field

from src.models.enums import AuditAction

if TYPE_CHECKING:
    from starlette.requests import Request


class AuditLogData(BaseModel):
    """Caller-supplied part of an audit record.

    user_id is required: an event without an acting user is not audited,
    and callers skip the recorder instead of passing an empty id.
    """

    user_id: str = Field(min_length=1)
    action: AuditAction
    entity_type: str
    clinic_id: str | None = None
    entity_id: str | None = None
    details: dict[str, Any] | None = None
    successful: bool = True
    error_message: str | None = None

    model_config = ConfigDict(frozen=True)


@dataclass(frozen=True)
class RequestContext:
    """Snapshot of the request metadata an audit record needs.

    Taken when the response is emitted, so the background write never
    touches the live request object.
    """

    headers: dict[str, str] = field(default_factory=dict)
    client_host: str | None = None

    @classmethod
    def from_request(cls, request: Request) -> RequestContext:
        return cls(
            headers={key.lower(): value for key, value in request.headers.items()},
            client_host=request.client.host if request.client else None,
        )

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


# ── API output ───────────────────────────────────────────────────────


class AuditLogOut(BaseModel):
    """One audit record as returned by the compliance endpoints."""

    id: uuid.UUID
    user_id: str
    clinic_id: str | None = None
    action: str
    entity_type: str
    entity_id: str | None = None
    details: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
    successful: bool
    error_message: str | None = None
    timestamp: datetime
    retention_date: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AuditStats(BaseModel):
    total_logs: int = 0
    successful_actions: int = 0
    failed_actions: int = 0
    unique_users: int = 0
    recent_logins: int = 0


class RetentionPolicyOut(BaseModel):
    data_type: str
    retention_period_days: int
    is_active: bool
    description: str | None = None
    legal_basis: str | None = None
    last_processed: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ComplianceStatus(BaseModel):
    data_retention_configured: bool
    audit_logging_active: bool


class ComplianceOverview(BaseModel):
    """Payload of GET /api/admin/compliance."""

    audit_stats: AuditStats
    retention_policies: list[RetentionPolicyOut]
    recent_activity: list[AuditLogOut]
    compliance_status: ComplianceStatus


class CleanupResult(BaseModel):
    message: str
    deleted_count: int
