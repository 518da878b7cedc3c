"""Read-only queries for the compliance endpoints.

Pure query helpers: take an AsyncSession, return models or plain dicts.
Nothing here writes to the audit trail.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.audit import AuditLog
from src.models.enums import AuditAction
from src.models.retention_policy import DataRetentionPolicy

logger = logging.getLogger(__name__)


async def get_audit_stats(db: AsyncSession) -> dict[str, Any]:
    """Aggregate counts over the whole audit trail.

    Returns dict with: total_logs, successful_actions, failed_actions,
    unique_users, recent_logins (last 24 hours).
    """
    since = datetime.now(UTC) - timedelta(hours=24)
    result = await db.execute(
        select(
            func.count(AuditLog.id),
            func.count(AuditLog.id).filter(AuditLog.successful.is_(True)),
            func.count(AuditLog.id).filter(AuditLog.successful.is_(False)),
            func.count(func.distinct(AuditLog.user_id)),
            func.count(AuditLog.id).filter(
                AuditLog.action == AuditAction.LOGIN.value,
                AuditLog.timestamp > since,
            ),
        )
    )
    total, successful, failed, unique_users, recent_logins = result.one()
    return {
        "total_logs": total or 0,
        "successful_actions": successful or 0,
        "failed_actions": failed or 0,
        "unique_users": unique_users or 0,
        "recent_logins": recent_logins or 0,
    }


async def get_active_retention_policies(db: AsyncSession) -> list[DataRetentionPolicy]:
    result = await db.execute(
        select(DataRetentionPolicy)
        .where(DataRetentionPolicy.is_active.is_(True))
        .order_by(DataRetentionPolicy.data_type)
    )
    return list(result.scalars().all())


async def get_recent_audit_activity(db: AsyncSession, limit: int = 100) -> list[AuditLog]:
    """Most recent audit records, newest first."""
    result = await db.execute(
        select(AuditLog).order_by(AuditLog.timestamp.desc()).limit(limit)
    )
    return list(result.scalars().all())


async def get_audit_trail(
    db: AsyncSession,
    entity_type: str,
    entity_id: str,
    limit: int = 500,
) -> list[AuditLog]:
    """Every recorded access to one entity, newest first."""
    result = await db.execute(
        select(AuditLog)
        .where(
            AuditLog.entity_type == entity_type,
            AuditLog.entity_id == entity_id,
        )
        .order_by(AuditLog.timestamp.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
