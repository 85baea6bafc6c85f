"""Tests for core.config settings validation."""

import pytest
from pydantic import ValidationError

from core.config import Settings, clear_settings_cache, get_settings


class TestSettingsValidation:
    def test_database_url_is_required(self):
        with pytest.raises(ValidationError, match="DATABASE_URL"):
            Settings(database_url="", debug=True, _env_file=None)

    def test_production_requires_push_credentials(self):
        with pytest.raises(ValidationError, match="PUSH_APP_ID"):
            Settings(
                database_url="postgresql+asyncpg://db/booking",
                debug=False,
                push_app_id="",
                push_api_key="",
                _env_file=None,
            )

    def test_production_requires_sms_credentials(self):
        with pytest.raises(ValidationError, match="SMS_API_URL"):
            Settings(
                database_url="postgresql+asyncpg://db/booking",
                debug=False,
                push_app_id="app",
                push_api_key="key",
                sms_api_url="",
                sms_api_key="",
                _env_file=None,
            )

    def test_debug_allows_missing_providers(self):
        settings = Settings(
            database_url="sqlite+aiosqlite:///x.db", debug=True, _env_file=None
        )

        assert settings.push_enabled is False
        assert settings.sms_enabled is False
        assert settings.mail_enabled is False
        assert settings.uses_sqlite is True


class TestSettingsCache:
    def test_clear_picks_up_new_environment(self, monkeypatch):
        monkeypatch.setenv("IMMEDIATE_BOOKING_MINUTES", "10")
        clear_settings_cache()
        assert get_settings().immediate_booking_minutes == 10

        monkeypatch.setenv("IMMEDIATE_BOOKING_MINUTES", "15")
        assert get_settings().immediate_booking_minutes == 10

        clear_settings_cache()
        assert get_settings().immediate_booking_minutes == 15
