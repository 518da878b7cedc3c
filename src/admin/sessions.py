"""Redis-backed dashboard sessions.

A login creates a random session id mapped to the principal's claims
(`sub`, `role`). SessionAuthMiddleware resolves the cookie on every
request and exposes the claims as `request.state.user`.

Redis failures fail closed: the request is treated as anonymous.
"""

from __future__ import annotations

import json
import logging
import secrets
from typing import Any

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from src.config import settings
from src.db.engine import redis_client

logger = logging.getLogger(__name__)


class SessionStore:
    """Session id → claims mapping with a sliding TTL."""

    def __init__(self, redis: Any, ttl_seconds: int | None = None) -> None:
        self._redis = redis
        self._ttl_seconds = ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        if self._ttl_seconds is not None:
            return self._ttl_seconds
        return settings.security.session_ttl_seconds

    @staticmethod
    def _key(session_id: str) -> str:
        return f"session:{session_id}"

    async def create(self, claims: dict[str, Any]) -> str:
        """Store claims under a fresh session id and return the id."""
        session_id = secrets.token_urlsafe(32)
        await self._redis.set(self._key(session_id), json.dumps(claims), ex=self.ttl_seconds)
        return session_id

    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Return the claims for a session, refreshing its TTL. None if unknown."""
        try:
            raw = await self._redis.get(self._key(session_id))
            if raw is None:
                return None
            await self._redis.expire(self._key(session_id), self.ttl_seconds)
            return json.loads(raw)
        except Exception:
            logger.exception("Session lookup failed")
            return None

    async def destroy(self, session_id: str) -> None:
        try:
            await self._redis.delete(self._key(session_id))
        except Exception:
            logger.exception("Session delete failed")


class SessionAuthMiddleware(BaseHTTPMiddleware):
    """Attach `{"claims": {...}}` (or None) to request.state.user."""

    def __init__(self, app: Any, store: SessionStore | None = None) -> None:
        super().__init__(app)
        self._store = store

    @property
    def store(self) -> SessionStore:
        return self._store if self._store is not None else session_store

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.user = None
        session_id = request.cookies.get(settings.security.session_cookie_name)
        if session_id:
            claims = await self.store.get(session_id)
            if claims:
                request.state.user = {"claims": claims}
        return await call_next(request)


# Module-level singleton
session_store = SessionStore(redis_client)
