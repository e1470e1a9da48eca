#!/usr/bin/env python3
"""
Unit Tests for Configuration Management
Tests for sharegate/core/config.py
"""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from sharegate.core.config import Settings, settings

SECRET = "x" * 32


class TestSettingsDefaults:
    """Test default settings values"""

    def test_app_defaults(self):
        assert settings.APP_NAME == "Sharegate Document Access Service"
        assert settings.APP_VERSION == "1.0.0"
        assert settings.DEBUG is False
        assert settings.PORT == 8000

    def test_environment_is_test(self):
        assert settings.ENVIRONMENT == "test"

    def test_signed_url_defaults(self):
        assert settings.SIGNED_URL_TTL_SECONDS == 300
        assert settings.SIGNED_URL_REFRESH_MARGIN_SECONDS == 30

    def test_share_link_limits(self):
        assert settings.SHARE_LINK_MIN_MINUTES == 5
        assert settings.SHARE_LINK_MAX_MINUTES == 525600
        assert settings.SHARE_LINK_MAX_USES_LIMIT == 1000
        assert settings.SHARE_RECIPIENT_DEFAULT_MAX_USES == 1

    def test_restricted_defaults(self):
        assert settings.RESTRICTED_PASSWORD_LENGTH == 16
        assert settings.RESTRICTED_VERIFY_MAX_ATTEMPTS == 5

    def test_file_upload_defaults(self):
        assert settings.MAX_UPLOAD_SIZE_MB == 50
        assert settings.ALLOWED_CONTENT_TYPES == ["application/pdf"]

    def test_db_url_defaults_to_postgres(self):
        with patch.dict(os.environ, {"SECRET_KEY": SECRET}, clear=True):
            s = Settings()
        assert s.DB_URL.startswith("postgresql+asyncpg://")

    def test_database_url_overrides(self):
        with patch.dict(os.environ, {"SECRET_KEY": SECRET, "DATABASE_URL": "sqlite+aiosqlite:///x.db"}, clear=True):
            s = Settings()
        assert s.DB_URL == "sqlite+aiosqlite:///x.db"


class TestSettingsValidation:
    """Test settings validators"""

    def test_secret_key_required(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValidationError):
                Settings()

    def test_short_secret_key_rejected(self):
        with patch.dict(os.environ, {"SECRET_KEY": "short"}, clear=True):
            with pytest.raises(ValidationError):
                Settings()

    def test_invalid_environment(self):
        with patch.dict(os.environ, {"SECRET_KEY": SECRET, "ENVIRONMENT": "qa"}, clear=True):
            with pytest.raises(ValidationError):
                Settings()

    def test_log_level_uppercased(self):
        with patch.dict(os.environ, {"SECRET_KEY": SECRET, "LOG_LEVEL": "debug"}, clear=True):
            assert Settings().LOG_LEVEL == "DEBUG"

    def test_invalid_log_level(self):
        with patch.dict(os.environ, {"SECRET_KEY": SECRET, "LOG_LEVEL": "LOUD"}, clear=True):
            with pytest.raises(ValidationError):
                Settings()

    def test_restricted_password_length_floor(self):
        with patch.dict(os.environ, {"SECRET_KEY": SECRET, "RESTRICTED_PASSWORD_LENGTH": "6"}, clear=True):
            with pytest.raises(ValidationError):
                Settings()
