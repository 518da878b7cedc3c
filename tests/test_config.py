"""Tests for src/config.py — parsed settings properties and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from src.config import AuditSettings, DatabaseSettings, SecuritySettings, Settings


class TestSettings:
    def test_log_level_is_uppercased(self):
        assert Settings(log_level="info").log_level == "INFO"

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="chatty")

    def test_is_production(self):
        assert Settings(environment="production").is_production is True
        assert Settings(environment="development").is_production is False


class TestSecuritySettings:
    def test_admin_names_parsed(self):
        security = SecuritySettings(admin_usernames=" alice, bob ,,")
        assert security.admin_names == {"alice", "bob"}

    def test_no_admins(self):
        assert SecuritySettings(admin_usernames="").admin_names == set()


class TestAuditSettings:
    def test_defaults(self):
        audit = AuditSettings()
        assert audit.audit_retention_years == 7
        assert {"password", "token", "secret", "api_key"} <= audit.redacted_keys

    def test_redacted_keys_lowercased(self):
        audit = AuditSettings(audit_redacted_keys="SSN, Token")
        assert audit.redacted_keys == frozenset({"ssn", "token"})


class TestDatabaseSettings:
    def test_sync_url_drops_driver(self):
        db = DatabaseSettings(database_url="postgresql+asyncpg://u:p@h:5432/d")
        assert db.database_url_sync == "postgresql://u:p@h:5432/d"

    def test_pool_sizing_defaults(self):
        db = DatabaseSettings()
        assert (db.db_pool_size, db.db_max_overflow) == (5, 10)
