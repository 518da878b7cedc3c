"""Automatic audit logging for routes that serve PHI.

Wraps a route handler so every successful (2xx) response for an
authenticated user triggers an audit write. The write runs as a
background task: the response is never delayed or altered by it.

Usage:
    # Audit every route on a router:
    router = APIRouter(route_class=audited_route("appointment"))

    # Or wrap a single Starlette handler:
    audited = AuditMiddleware("call_log")(handler)
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable, Coroutine, Mapping
from typing import Any

from fastapi.routing import APIRoute
from starlette.datastructures import QueryParams
from starlette.requests import Request
from starlette.responses import Response

from src.config import settings
from src.models.enums import AuditAction
from src.schemas.audit import AuditLogData, RequestContext
from src.security.audit import AuditRecorder, audit_recorder

logger = logging.getLogger(__name__)

RequestHandler = Callable[[Request], Awaitable[Response]]
PrincipalAccessor = Callable[[Request], str | None]

REDACTED = "[REDACTED]"

_ACTIONS_BY_METHOD: dict[str, AuditAction] = {
    "GET": AuditAction.READ,
    "POST": AuditAction.CREATE,
    "PUT": AuditAction.UPDATE,
    "PATCH": AuditAction.UPDATE,
    "DELETE": AuditAction.DELETE,
}

# First non-empty wins
_ENTITY_ID_PARAMS = ("id", "clinicId", "clinic_id", "appointmentId", "appointment_id")
_CLINIC_ID_PARAMS = ("clinicId", "clinic_id")

# Strong references to in-flight writes until they finish
_pending_writes: set[asyncio.Task[None]] = set()


# ── Derivation helpers ───────────────────────────────────────────────


def get_action_from_method(method: str) -> AuditAction:
    """Map an HTTP verb to an audit action. Unknown verbs count as reads."""
    return _ACTIONS_BY_METHOD.get(method.upper(), AuditAction.READ)


def _first_param(params: Mapping[str, Any], names: tuple[str, ...]) -> str | None:
    for name in names:
        value = params.get(name)
        if value is not None and str(value) != "":
            return str(value)
    return None


def resolve_entity_id(path_params: Mapping[str, Any]) -> str | None:
    """Pick the accessed entity's id from route parameters."""
    return _first_param(path_params, _ENTITY_ID_PARAMS)


def redact_query(query: QueryParams, redacted_keys: frozenset[str]) -> dict[str, Any]:
    """Flatten query parameters for the audit details, masking secrets."""
    flattened: dict[str, Any] = {}
    for key in query.keys():
        if key.lower() in redacted_keys:
            flattened[key] = REDACTED
            continue
        values = query.getlist(key)
        flattened[key] = values[0] if len(values) == 1 else values
    return flattened


def claims_subject(request: Request) -> str | None:
    """Default principal accessor — the `sub` claim set by SessionAuthMiddleware."""
    user = getattr(request.state, "user", None)
    if not user:
        return None
    sub = (user.get("claims") or {}).get("sub")
    return str(sub) if sub else None


# ── Fire-and-forget task handoff ─────────────────────────────────────


def _on_write_done(task: asyncio.Task[None]) -> None:
    _pending_writes.discard(task)
    if task.cancelled():
        logger.warning("Audit write cancelled: %s", task.get_name())
        return
    exc = task.exception()
    if exc is not None:
        logger.error("Audit log error in %s", task.get_name(), exc_info=exc)


def spawn_audit_write(write: Coroutine[Any, Any, None], name: str = "audit-write") -> asyncio.Task[None]:
    """Run an audit write in the background with its own error handler.

    The caller never awaits the returned task. Exceptions are logged by
    the done-callback and never re-raised.
    """
    task = asyncio.create_task(write, name=name)
    _pending_writes.add(task)
    task.add_done_callback(_on_write_done)
    return task


def pending_audit_writes() -> int:
    return len(_pending_writes)


async def drain_audit_writes() -> None:
    """Wait for all in-flight audit writes. Call during shutdown.

    Writes spawned while draining are awaited too.
    """
    while _pending_writes:
        logger.info("Waiting for %d pending audit writes", len(_pending_writes))
        await asyncio.gather(*list(_pending_writes), return_exceptions=True)
        # let done-callbacks release the finished tasks
        await asyncio.sleep(0)


# ── Middleware ───────────────────────────────────────────────────────


class AuditMiddleware:
    """Per-route audit wrapper for one entity type.

    Args:
        entity_type: Category of resource the wrapped route serves.
        principal: Returns the authenticated user id for a request, or None.
        recorder: Audit recorder; defaults to the module singleton.
    """

    def __init__(
        self,
        entity_type: str,
        *,
        principal: PrincipalAccessor = claims_subject,
        recorder: AuditRecorder | None = None,
    ) -> None:
        self.entity_type = entity_type
        self._principal = principal
        self._recorder = recorder

    @property
    def recorder(self) -> AuditRecorder:
        return self._recorder if self._recorder is not None else audit_recorder

    def __call__(self, handler: RequestHandler) -> RequestHandler:
        @functools.wraps(handler)
        async def audited_handler(request: Request) -> Response:
            response = await handler(request)
            try:
                self.inspect(request, response.status_code)
            except Exception:
                logger.exception("Audit scheduling failed for %s %s", request.method, request.url.path)
            return response

        return audited_handler

    def inspect(self, request: Request, status_code: int) -> asyncio.Task[None] | None:
        """Schedule an audit write if this response qualifies.

        Returns the spawned task, or None when the response is skipped
        (non-2xx status or no authenticated user).
        """
        if not 200 <= status_code <= 299:
            return None

        user_id = self._principal(request)
        if not user_id:
            return None
        if not isinstance(user_id, str):
            user_id = str(user_id)

        path_params = request.path_params
        data = AuditLogData(
            user_id=user_id,
            action=get_action_from_method(request.method),
            entity_type=self.entity_type,
            clinic_id=_first_param(path_params, _CLINIC_ID_PARAMS),
            entity_id=resolve_entity_id(path_params),
            details={
                "path": request.url.path,
                "method": request.method,
                "query": redact_query(request.query_params, settings.audit.redacted_keys),
            },
            successful=True,
        )
        context = RequestContext.from_request(request)
        return spawn_audit_write(
            self.recorder.record(context, data),
            name=f"audit-{self.entity_type}-{data.action.value}",
        )


def audited_route(
    entity_type: str,
    *,
    principal: PrincipalAccessor = claims_subject,
    recorder: AuditRecorder | None = None,
) -> type[APIRoute]:
    """Build an APIRoute class that audits every route declared with it.

    Usage:
        router = APIRouter(route_class=audited_route("appointment"))
    """
    middleware = AuditMiddleware(entity_type, principal=principal, recorder=recorder)

    class AuditedRoute(APIRoute):
        def get_route_handler(self) -> RequestHandler:
            return middleware(super().get_route_handler())

    AuditedRoute.__name__ = f"AuditedRoute[{entity_type}]"
    AuditedRoute.__qualname__ = AuditedRoute.__name__
    return AuditedRoute
