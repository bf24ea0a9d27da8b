"""Tests for settings loading and validation."""

import dataclasses
from decimal import Decimal

import pytest

from farm_ops.config import Settings


class TestSettings:
    """Test configuration validation."""

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///farm.db")
        monkeypatch.setenv("MISSING_RATE_POLICY", "ZERO")
        monkeypatch.setenv("MIN_RATE_AMOUNT", "5000")
        monkeypatch.setenv("DASHBOARD_WINDOW_DAYS", "14")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.database_url == "sqlite+aiosqlite:///farm.db"
        assert settings.missing_rate_policy == "zero"
        assert settings.min_rate_amount == Decimal("5000")
        assert settings.max_rate_amount == Decimal("50000")
        assert settings.dashboard_window_days == 14
        assert settings.log_level == "DEBUG"

    def test_unknown_missing_rate_policy(self, settings):
        with pytest.raises(ValueError, match="missing_rate_policy"):
            dataclasses.replace(settings, missing_rate_policy="skip")

    def test_rate_bounds_order(self, settings):
        with pytest.raises(ValueError, match="min_rate_amount"):
            dataclasses.replace(settings, min_rate_amount=Decimal("60000"))

    def test_dashboard_limits(self, settings):
        with pytest.raises(ValueError):
            dataclasses.replace(settings, dashboard_list_limit=0)
        with pytest.raises(ValueError):
            dataclasses.replace(settings, dashboard_window_days=-1)
