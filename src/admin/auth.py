"""Dashboard authentication — shared-password login with Redis sessions.

Single shared password from DASHBOARD_PASSWORD env var. Usernames listed in
ADMIN_USERNAMES get the admin role. Every login attempt and logout is
written to the HIPAA audit trail.
"""
# ruff: noqa: B008  — Depends() in function defaults is standard FastAPI

from __future__ import annotations

import logging
import secrets
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, Field

from src.admin.sessions import session_store
from src.config import settings
from src.models.enums import AuditAction, UserRole
from src.schemas.audit import AuditLogData, RequestContext
from src.security.audit import audit_recorder
from src.security.middleware import spawn_audit_write

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


class LoginRequest(BaseModel):
    # audit_logs.user_id is String(100)
    username: str = Field(min_length=1, max_length=100)
    password: str


class LoginResponse(BaseModel):
    user: str
    role: UserRole


def _audit_session_event(
    request: Request,
    user_id: str,
    action: AuditAction,
    successful: bool = True,
    error_message: str | None = None,
) -> None:
    spawn_audit_write(
        audit_recorder.record(
            RequestContext.from_request(request),
            AuditLogData(
                user_id=user_id,
                action=action,
                entity_type="user",
                entity_id=user_id,
                details={"path": request.url.path, "method": request.method},
                successful=successful,
                error_message=error_message,
            ),
        ),
        name=f"audit-user-{action.value}",
    )


# ── Dependencies ─────────────────────────────────────────────────────


async def require_user(request: Request) -> dict[str, Any]:
    """FastAPI dependency — the current session's claims, or 401."""
    user = getattr(request.state, "user", None)
    claims = (user or {}).get("claims")
    if not claims or not claims.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return claims


async def require_admin(claims: dict[str, Any] = Depends(require_user)) -> dict[str, Any]:
    """FastAPI dependency — like require_user, plus 403 unless role is admin."""
    if claims.get("role") != UserRole.ADMIN.value:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return claims


# ── Routes ───────────────────────────────────────────────────────────


@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, request: Request, response: Response) -> LoginResponse:
    """Verify the shared password, open a session, and set the cookie."""
    expected = settings.security.dashboard_password
    if not expected:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="DASHBOARD_PASSWORD not configured",
        )

    password_ok = secrets.compare_digest(
        body.password.encode("utf-8"),
        expected.encode("utf-8"),
    )
    if not password_ok:
        _audit_session_event(
            request,
            body.username,
            AuditAction.LOGIN,
            successful=False,
            error_message="Invalid credentials",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    role = UserRole.ADMIN if body.username in settings.security.admin_names else UserRole.STAFF
    session_id = await session_store.create({"sub": body.username, "role": role.value})
    response.set_cookie(
        settings.security.session_cookie_name,
        session_id,
        max_age=settings.security.session_ttl_seconds,
        httponly=True,
        secure=settings.security.session_cookie_secure,
        samesite="lax",
    )
    _audit_session_event(request, body.username, AuditAction.LOGIN)
    logger.info("Dashboard login: %s (role=%s)", body.username, role.value)
    return LoginResponse(user=body.username, role=role)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    claims: dict[str, Any] = Depends(require_user),
) -> Response:
    """Close the current session."""
    session_id = request.cookies.get(settings.security.session_cookie_name)
    if session_id:
        await session_store.destroy(session_id)
    _audit_session_event(request, claims["sub"], AuditAction.LOGOUT)

    response = Response(status_code=status.HTTP_204_NO_CONTENT)
    response.delete_cookie(settings.security.session_cookie_name)
    return response
