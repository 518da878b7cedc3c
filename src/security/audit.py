"""HIPAA audit recorder — persists one immutable AuditLog row per PHI access.

Every access to protected health information is trailed here with the
acting user, the resource, the client address, and a retention deadline
seven years out.

Never raises — failures are logged but never propagate to the request
being audited.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.config import settings
from src.db.engine import async_session_factory
from src.models.audit import AuditLog
from src.schemas.audit import AuditLogData, RequestContext

logger = logging.getLogger(__name__)


def extract_client_ip(context: RequestContext) -> str | None:
    """Resolve the originating client address behind proxies.

    Order: first X-Forwarded-For hop, X-Real-IP, direct connection.
    Empty values fall through to the next source.
    """
    forwarded = context.header("x-forwarded-for")
    if forwarded:
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = context.header("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return context.client_host or None


def add_years(moment: datetime, years: int) -> datetime:
    """Advance a timestamp by whole calendar years.

    Feb 29 lands on Mar 1 when the target year has no leap day, so the
    result is never earlier than the full period.
    """
    try:
        return moment.replace(year=moment.year + years)
    except ValueError:
        return moment.replace(year=moment.year + years, month=3, day=1)


class AuditRecorder:
    """Writes audit records, each in its own session and transaction."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        retention_years: int | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._retention_years = retention_years

    @property
    def retention_years(self) -> int:
        if self._retention_years is not None:
            return self._retention_years
        return settings.audit.audit_retention_years

    async def record(self, context: RequestContext, data: AuditLogData) -> None:
        """Persist one audit record for an access event.

        Failures (connectivity, constraint, serialization) are logged and
        swallowed. A failed commit leaves nothing behind: the session
        context rolls the transaction back.
        """
        try:
            now = datetime.now(UTC)
            entry = AuditLog(
                user_id=data.user_id,
                clinic_id=data.clinic_id,
                action=data.action.value,
                entity_type=data.entity_type,
                entity_id=data.entity_id,
                details=data.details,
                ip_address=extract_client_ip(context),
                user_agent=context.header("user-agent"),
                successful=data.successful,
                error_message=data.error_message,
                timestamp=now,
                retention_date=add_years(now, self.retention_years),
            )
            async with self._session_factory() as db:
                db.add(entry)
                await db.commit()
        except Exception:
            logger.exception(
                "Audit logging failed: %s %s:%s (user=%s)",
                data.action.value,
                data.entity_type,
                data.entity_id,
                data.user_id,
            )


# Module-level singleton
audit_recorder = AuditRecorder(async_session_factory)
