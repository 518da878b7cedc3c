"""Audit retention enforcement — HIPAA seven-year minimum.

Audit records carry their own retention_date (set at write time). This
module removes only rows whose deadline has passed and keeps the
data_retention_policies table seeded with the clinic's defaults.

Records with no retention_date are never purged.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import delete, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import async_session_factory
from src.models.audit import AuditLog
from src.models.enums import LegalBasis
from src.models.retention_policy import DataRetentionPolicy

logger = logging.getLogger(__name__)

AUDIT_LOGS_POLICY = "audit_logs"

DEFAULT_POLICIES: list[dict[str, object]] = [
    {
        "data_type": AUDIT_LOGS_POLICY,
        "retention_period_days": 2557,  # 7 years
        "legal_basis": LegalBasis.HIPAA.value,
        "description": "PHI access audit trail, kept for the HIPAA retention period",
    },
    {
        "data_type": "call_logs",
        "retention_period_days": 2190,  # 6 years
        "legal_basis": LegalBasis.HIPAA.value,
        "description": "Call recordings metadata and transcripts",
    },
    {
        "data_type": "appointments",
        "retention_period_days": 2190,
        "legal_basis": LegalBasis.HIPAA.value,
        "description": "Appointment history booked by the receptionist",
    },
    {
        "data_type": "consent_records",
        "retention_period_days": 1825,  # 5 years
        "legal_basis": LegalBasis.GDPR.value,
        "description": "Patient consent grants and revocations",
    },
]


async def cleanup_expired_audit_logs(db: AsyncSession) -> int:
    """Delete audit logs whose retention_date has passed. Returns the row count."""
    now = datetime.now(UTC)
    del_result = await db.execute(
        delete(AuditLog).where(
            AuditLog.retention_date.isnot(None),
            AuditLog.retention_date < now,
        )
    )
    count = del_result.rowcount  # type: ignore[attr-defined]
    if count > 0:
        logger.info("Deleted %d expired audit log entries (now=%s)", count, now.date())
    return count


async def enforce_audit_retention() -> int:
    """Run the purge in its own transaction and stamp the policy.

    Idempotent: running twice is harmless.
    """
    async with async_session_factory() as db:
        count = await cleanup_expired_audit_logs(db)
        await db.execute(
            update(DataRetentionPolicy)
            .where(DataRetentionPolicy.data_type == AUDIT_LOGS_POLICY)
            .values(last_processed=datetime.now(UTC))
        )
        await db.commit()
    return count


async def initialize_default_policies() -> None:
    """Seed missing default retention policies at startup.

    Existing rows are left untouched. Failures are logged, never raised:
    a missing policy row must not keep the API from starting.
    """
    try:
        async with async_session_factory() as db:
            stmt = (
                insert(DataRetentionPolicy)
                .values([{**policy, "is_active": True} for policy in DEFAULT_POLICIES])
                .on_conflict_do_nothing(index_elements=["data_type"])
            )
            await db.execute(stmt)
            await db.commit()
    except Exception:
        logger.exception("Failed to initialize default retention policies")
        return

    logger.info("Default retention policies ensured (%d types)", len(DEFAULT_POLICIES))
