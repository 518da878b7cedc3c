"""Tests for src/db/engine.py — startup connectivity check and session dependency."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.db.engine import get_session, init_db


def _mock_engine(conn):
    engine = MagicMock()
    engine.begin.return_value.__aenter__ = AsyncMock(return_value=conn)
    engine.begin.return_value.__aexit__ = AsyncMock(return_value=False)
    return engine


class TestInitDb:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(("production", "creates_tables"), [(False, True), (True, False)])
    async def test_pings_and_creates_tables_outside_production(self, production, creates_tables):
        conn = AsyncMock()
        with (
            patch("src.db.engine.engine", _mock_engine(conn)),
            patch("src.db.engine.settings") as mock_settings,
        ):
            mock_settings.is_production = production
            mock_settings.db.db_pool_size = 5
            await init_db()

        assert str(conn.execute.call_args.args[0]) == "SELECT 1"
        assert conn.run_sync.await_count == (1 if creates_tables else 0)


class TestGetSession:
    @staticmethod
    def _factory(session):
        factory = MagicMock()
        factory.return_value.__aenter__ = AsyncMock(return_value=session)
        factory.return_value.__aexit__ = AsyncMock(return_value=False)
        return factory

    @pytest.mark.asyncio
    async def test_commits_after_route(self):
        session = AsyncMock()
        with patch("src.db.engine.async_session_factory", self._factory(session)):
            gen = get_session()
            assert await gen.__anext__() is session
            with pytest.raises(StopAsyncIteration):
                await gen.__anext__()

        session.commit.assert_awaited_once()
        session.rollback.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self):
        session = AsyncMock()
        with patch("src.db.engine.async_session_factory", self._factory(session)):
            gen = get_session()
            await gen.__anext__()
            with pytest.raises(RuntimeError):
                await gen.athrow(RuntimeError("route failed"))

        session.rollback.assert_awaited_once()
        session.commit.assert_not_awaited()
