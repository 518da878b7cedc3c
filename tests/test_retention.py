"""Tests for src/security/retention.py — audit purge and default policies."""

from __future__ import annotations

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.security.retention import (
    AUDIT_LOGS_POLICY,
    DEFAULT_POLICIES,
    cleanup_expired_audit_logs,
    enforce_audit_retention,
    initialize_default_policies,
)


@pytest.fixture
def mock_db():
    """Create a mock async DB session."""
    db = AsyncMock()
    db.execute = AsyncMock()
    db.commit = AsyncMock()
    return db


def _patch_factory(db):
    factory = patch("src.security.retention.async_session_factory")
    mock_factory = factory.start()
    mock_factory.return_value.__aenter__ = AsyncMock(return_value=db)
    mock_factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


class TestCleanupExpiredAuditLogs:
    """Tests for cleanup_expired_audit_logs."""

    @pytest.mark.asyncio
    async def test_deletes_expired_logs(self, mock_db):
        """Returns the number of purged rows."""
        delete_result = MagicMock()
        delete_result.rowcount = 12
        mock_db.execute.return_value = delete_result

        count = await cleanup_expired_audit_logs(mock_db)
        assert count == 12

    @pytest.mark.asyncio
    async def test_no_expired_logs(self, mock_db):
        delete_result = MagicMock()
        delete_result.rowcount = 0
        mock_db.execute.return_value = delete_result

        count = await cleanup_expired_audit_logs(mock_db)
        assert count == 0

    @pytest.mark.asyncio
    async def test_filters_on_retention_date_only(self, mock_db):
        """Rows are selected by their own deadline, never by age."""
        delete_result = MagicMock()
        delete_result.rowcount = 0
        mock_db.execute.return_value = delete_result

        await cleanup_expired_audit_logs(mock_db)

        stmt = mock_db.execute.call_args.args[0]
        sql = str(stmt)
        assert sql.startswith("DELETE FROM audit_logs")
        assert "audit_logs.retention_date IS NOT NULL" in sql
        assert "audit_logs.retention_date <" in sql
        assert "timestamp" not in sql


class TestEnforceAuditRetention:
    @pytest.mark.asyncio
    async def test_purges_and_stamps_policy(self, mock_db):
        delete_result = MagicMock()
        delete_result.rowcount = 3
        mock_db.execute.side_effect = [delete_result, MagicMock()]

        factory = _patch_factory(mock_db)
        try:
            count = await enforce_audit_retention()
        finally:
            factory.stop()

        assert count == 3
        assert mock_db.execute.await_count == 2
        update_sql = str(mock_db.execute.call_args_list[1].args[0])
        assert update_sql.startswith("UPDATE data_retention_policies")
        mock_db.commit.assert_awaited_once()


class TestInitializeDefaultPolicies:
    def test_audit_policy_is_seven_years_hipaa(self):
        policy = next(p for p in DEFAULT_POLICIES if p["data_type"] == AUDIT_LOGS_POLICY)
        assert policy["retention_period_days"] == 7 * 365 + 2
        assert policy["legal_basis"] == "HIPAA"

    def test_data_types_are_unique(self):
        data_types = [p["data_type"] for p in DEFAULT_POLICIES]
        assert len(data_types) == len(set(data_types))

    @pytest.mark.asyncio
    async def test_inserts_with_on_conflict(self, mock_db):
        factory = _patch_factory(mock_db)
        try:
            await initialize_default_policies()
        finally:
            factory.stop()

        mock_db.execute.assert_awaited_once()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, mock_db, caplog):
        mock_db.execute.side_effect = RuntimeError("relation does not exist")

        factory = _patch_factory(mock_db)
        try:
            with caplog.at_level(logging.ERROR, logger="src.security.retention"):
                await initialize_default_policies()
        finally:
            factory.stop()

        assert "Failed to initialize default retention policies" in caplog.text
        mock_db.commit.assert_not_awaited()
