"""Compliance API — audit overview, per-entity trail, manual cleanup.

All routes require an admin session via the require_admin dependency.
Reading an audit trail is itself PHI access, so the trail route lives on
an audited router.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.admin.auth import require_admin
from src.admin.queries import (
    get_active_retention_policies,
    get_audit_stats,
    get_audit_trail,
    get_recent_audit_activity,
)
from src.db.engine import get_session
from src.schemas.audit import (
    AuditLogOut,
    AuditStats,
    CleanupResult,
    ComplianceOverview,
    ComplianceStatus,
    RetentionPolicyOut,
)
from src.security.middleware import audited_route
from src.security.retention import enforce_audit_retention

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["compliance"])
trail_router = APIRouter(
    prefix="/api/admin",
    tags=["compliance"],
    route_class=audited_route("audit_log"),
)


@router.get("/compliance", response_model=ComplianceOverview)
async def compliance_overview(
    db: AsyncSession = Depends(get_session),
    admin: dict[str, Any] = Depends(require_admin),
) -> ComplianceOverview:
    """Audit stats, active retention policies, and the latest 100 records."""
    try:
        stats = AuditStats(**await get_audit_stats(db))
        policies = await get_active_retention_policies(db)
        recent = await get_recent_audit_activity(db, limit=100)
    except Exception:
        logger.exception("Error fetching compliance data")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch compliance data",
        ) from None

    return ComplianceOverview(
        audit_stats=stats,
        retention_policies=[RetentionPolicyOut.model_validate(p) for p in policies],
        recent_activity=[AuditLogOut.model_validate(r) for r in recent],
        compliance_status=ComplianceStatus(
            data_retention_configured=len(policies) > 0,
            audit_logging_active=stats.total_logs > 0,
        ),
    )


@trail_router.get("/audit-trail/{entity_type}/{entity_id}", response_model=list[AuditLogOut])
async def audit_trail(
    entity_type: str,
    entity_id: str,
    db: AsyncSession = Depends(get_session),
    admin: dict[str, Any] = Depends(require_admin),
) -> list[AuditLogOut]:
    """Every recorded access to one entity, newest first."""
    try:
        records = await get_audit_trail(db, entity_type, entity_id)
    except Exception:
        logger.exception("Error fetching audit trail for %s:%s", entity_type, entity_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch audit trail",
        ) from None
    return [AuditLogOut.model_validate(r) for r in records]


@router.post("/cleanup-audit-logs", response_model=CleanupResult)
async def cleanup_audit_logs(
    admin: dict[str, Any] = Depends(require_admin),
) -> CleanupResult:
    """Purge audit records past their retention date and stamp the policy."""
    try:
        deleted = await enforce_audit_retention()
    except Exception:
        logger.exception("Error cleaning up audit logs")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to cleanup audit logs",
        ) from None

    logger.info("Audit cleanup by %s: %d records", admin["sub"], deleted)
    return CleanupResult(
        message=f"Cleaned up {deleted} expired audit logs",
        deleted_count=deleted,
    )
