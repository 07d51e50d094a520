"""Unit tests for environment-driven configuration."""

import logging
import os
from unittest.mock import patch

import pytest

from localbiz.config import DEFAULT_DATABASE_URL, Config, ConfigError


class TestConfigDefaults:
    """Tests for defaults with an empty environment."""

    @pytest.mark.unit
    def test_defaults(self):
        """Test that every setting has a usable default."""
        with patch.dict(os.environ, {}, clear=True):
            config = Config()

        assert config.APP_ENV == "dev"
        assert config.DATABASE_URL == DEFAULT_DATABASE_URL
        assert config.AI_PROVIDER == "anthropic"
        assert config.PLACES_REQUESTS_PER_SECOND == 5.0
        assert config.AI_REQUESTS_PER_SECOND == 1.0
        assert config.VERCEL_REQUESTS_PER_SECOND == 5.0
        assert config.RETRY_MAX_ATTEMPTS == 3
        assert config.DEPLOY_TIMEOUT_SECONDS == 120.0

    @pytest.mark.unit
    def test_everything_mock_without_credentials(self):
        """Test that missing credentials mean mock mode for every service."""
        with patch.dict(os.environ, {}, clear=True):
            config = Config()

        assert config.is_mock_mode("places")
        assert config.is_mock_mode("ai")
        assert config.is_mock_mode("deployment")

    @pytest.mark.unit
    def test_unknown_service(self):
        """Test that an unknown service name is a configuration error."""
        with patch.dict(os.environ, {}, clear=True):
            config = Config()

        with pytest.raises(ConfigError):
            config.is_mock_mode("email")


class TestConfigFromEnvironment:
    """Tests for values read from the environment."""

    @pytest.mark.unit
    def test_google_maps_key_fallback(self):
        """Test that GOOGLE_MAPS_API_KEY is accepted for Places."""
        with patch.dict(os.environ, {"GOOGLE_MAPS_API_KEY": "maps-key"}, clear=True):
            config = Config()

        assert config.GOOGLE_PLACES_API_KEY == "maps-key"
        assert not config.is_mock_mode("places")

    @pytest.mark.unit
    def test_ai_key_follows_provider(self):
        """Test that the AI key is taken from the selected provider."""
        env = {
            "AI_PROVIDER": "OpenAI",
            "ANTHROPIC_API_KEY": "anthropic-key",
            "OPENAI_API_KEY": "openai-key",
        }
        with patch.dict(os.environ, env, clear=True):
            config = Config()

        assert config.AI_PROVIDER == "openai"
        assert config.ai_api_key == "openai-key"

    @pytest.mark.unit
    def test_debug_forces_debug_level(self):
        """Test that DEBUG=true overrides LOG_LEVEL."""
        with patch.dict(os.environ, {"DEBUG": "true", "LOG_LEVEL": "ERROR"}, clear=True):
            config = Config()

        assert config.get_log_level() == logging.DEBUG

    @pytest.mark.unit
    def test_log_level_name(self):
        """Test LOG_LEVEL parsing."""
        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}, clear=True):
            config = Config()

        assert config.get_log_level() == logging.WARNING

    @pytest.mark.unit
    def test_is_production(self):
        """Test production detection."""
        with patch.dict(os.environ, {"APP_ENV": "production"}, clear=True):
            assert Config().is_production()


class TestConfigValidation:
    """Tests for validation helpers."""

    @pytest.mark.unit
    def test_unknown_provider_rejected(self):
        """Test that an unsupported AI provider fails validation."""
        with patch.dict(os.environ, {"AI_PROVIDER": "gemini"}, clear=True):
            config = Config()

        with pytest.raises(ConfigError, match="AI_PROVIDER"):
            config.validate_for_generation()

    @pytest.mark.unit
    def test_unsupported_database_rejected(self):
        """Test that only SQLite and PostgreSQL URLs are accepted."""
        with patch.dict(os.environ, {"DATABASE_URL": "mysql://localhost/db"}, clear=True):
            config = Config()

        with pytest.raises(ConfigError):
            config.validate_all()

    @pytest.mark.unit
    def test_defaults_validate(self):
        """Test that the default configuration is valid."""
        with patch.dict(os.environ, {}, clear=True):
            Config().validate_all()
