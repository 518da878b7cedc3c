"""Tests for src/admin/sessions.py — Redis session store and cookie middleware."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient
from starlette.applications import Starlette
from starlette.middleware import Middleware
from starlette.responses import JSONResponse
from starlette.routing import Route

from src.admin.sessions import SessionAuthMiddleware, SessionStore


@pytest.fixture
def mock_redis():
    redis = AsyncMock()
    redis.get.return_value = None
    return redis


class TestSessionStore:
    @pytest.mark.asyncio
    async def test_create_stores_claims_with_ttl(self, mock_redis):
        store = SessionStore(mock_redis, ttl_seconds=600)

        session_id = await store.create({"sub": "alice", "role": "admin"})

        assert len(session_id) >= 32
        key, value = mock_redis.set.call_args.args
        assert key == f"session:{session_id}"
        assert json.loads(value) == {"sub": "alice", "role": "admin"}
        assert mock_redis.set.call_args.kwargs["ex"] == 600

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, mock_redis):
        store = SessionStore(mock_redis, ttl_seconds=600)
        assert await store.create({"sub": "a"}) != await store.create({"sub": "a"})

    @pytest.mark.asyncio
    async def test_get_unknown_session(self, mock_redis):
        store = SessionStore(mock_redis, ttl_seconds=600)
        assert await store.get("nope") is None
        mock_redis.expire.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_get_refreshes_ttl(self, mock_redis):
        mock_redis.get.return_value = json.dumps({"sub": "bob", "role": "staff"})
        store = SessionStore(mock_redis, ttl_seconds=600)

        claims = await store.get("sid")

        assert claims == {"sub": "bob", "role": "staff"}
        mock_redis.expire.assert_awaited_once_with("session:sid", 600)

    @pytest.mark.asyncio
    async def test_redis_error_fails_closed(self, mock_redis):
        mock_redis.get.side_effect = ConnectionError("redis down")
        store = SessionStore(mock_redis, ttl_seconds=600)
        assert await store.get("sid") is None

    @pytest.mark.asyncio
    async def test_destroy(self, mock_redis):
        store = SessionStore(mock_redis, ttl_seconds=600)
        await store.destroy("sid")
        mock_redis.delete.assert_awaited_once_with("session:sid")


class TestSessionAuthMiddleware:
    @staticmethod
    def _client(store) -> TestClient:
        async def whoami(request):
            return JSONResponse({"user": request.state.user})

        app = Starlette(
            routes=[Route("/whoami", whoami)],
            middleware=[Middleware(SessionAuthMiddleware, store=store)],
        )
        return TestClient(app)

    def test_no_cookie_is_anonymous(self):
        store = AsyncMock()
        resp = self._client(store).get("/whoami")
        assert resp.json() == {"user": None}
        store.get.assert_not_awaited()

    def test_valid_cookie_sets_claims(self):
        store = AsyncMock()
        store.get.return_value = {"sub": "alice", "role": "admin"}
        client = self._client(store)
        client.cookies.set("clinic_session", "sid-1")

        resp = client.get("/whoami")

        assert resp.json() == {"user": {"claims": {"sub": "alice", "role": "admin"}}}
        store.get.assert_awaited_once_with("sid-1")

    def test_expired_session_is_anonymous(self):
        store = AsyncMock()
        store.get.return_value = None
        client = self._client(store)
        client.cookies.set("clinic_session", "old")

        assert client.get("/whoami").json() == {"user": None}
