"""Pipeline configuration module.

Settings are loaded from:
1. .env file (if present)
2. Environment variables

Every external credential is optional. A missing credential switches the
matching adapter to mock mode instead of failing, so the pipeline always runs
offline against a local SQLite database.

Usage:
    >>> from localbiz.config import config
    >>> config.DATABASE_URL
    'sqlite+aiosqlite:///./data/local-biz.db'
"""

import logging
import os

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./data/local-biz.db"
AI_PROVIDERS = ("anthropic", "openai")


class ConfigError(Exception):
    """Raised when configuration validation fails."""

    pass


class Config:
    """Application configuration loaded from environment variables.

    Attributes:
        GOOGLE_PLACES_API_KEY: Google Places key for discovery and enrichment.
        AI_PROVIDER: Which AI provider generates websites ("anthropic" or "openai").
        ANTHROPIC_API_KEY: Anthropic key for the Messages API.
        OPENAI_API_KEY: OpenAI key for chat completions.
        VERCEL_TOKEN: Vercel API token for preview deployments.
        DATABASE_URL: SQLAlchemy async URL (SQLite or PostgreSQL).

    Example:
        >>> config = Config()
        >>> config.is_mock_mode("places")
        True
    """

    def __init__(self) -> None:
        """Initialize configuration by loading from environment variables."""
        self.logger = logging.getLogger(__name__)

        # Application environment
        self.APP_ENV = self._get_optional("APP_ENV", "dev")
        self.DEBUG = self._get_bool("DEBUG")
        self.LOG_LEVEL = self._get_optional("LOG_LEVEL", "INFO")

        # Database Configuration
        self.DATABASE_URL = self._get_optional("DATABASE_URL", DEFAULT_DATABASE_URL)
        self.DATABASE_ECHO = self._get_bool("DATABASE_ECHO")

        # Google Places Configuration
        self.GOOGLE_PLACES_API_KEY = self._get_optional(
            "GOOGLE_PLACES_API_KEY", self._get_optional("GOOGLE_MAPS_API_KEY")
        )
        self.PLACES_REQUESTS_PER_SECOND = float(
            self._get_optional("PLACES_REQUESTS_PER_SECOND", "5")
        )

        # AI Generation Configuration
        self.AI_PROVIDER = self._get_optional("AI_PROVIDER", "anthropic").lower()
        self.ANTHROPIC_API_KEY = self._get_optional("ANTHROPIC_API_KEY")
        self.ANTHROPIC_MODEL = self._get_optional("ANTHROPIC_MODEL", "claude-sonnet-4-6")
        self.OPENAI_API_KEY = self._get_optional("OPENAI_API_KEY")
        self.OPENAI_MODEL = self._get_optional("OPENAI_MODEL", "gpt-4o")
        self.AI_REQUESTS_PER_SECOND = float(self._get_optional("AI_REQUESTS_PER_SECOND", "1"))

        # Vercel Configuration
        self.VERCEL_TOKEN = self._get_optional("VERCEL_TOKEN")
        self.VERCEL_TEAM_ID = self._get_optional("VERCEL_TEAM_ID")
        self.DEPLOY_POLL_INTERVAL_SECONDS = float(
            self._get_optional("DEPLOY_POLL_INTERVAL_SECONDS", "3")
        )
        self.DEPLOY_TIMEOUT_SECONDS = float(
            self._get_optional("DEPLOY_TIMEOUT_SECONDS", "120")
        )
        self.VERCEL_REQUESTS_PER_SECOND = float(
            self._get_optional("VERCEL_REQUESTS_PER_SECOND", "5")
        )

        # Retry Configuration
        self.RETRY_MAX_ATTEMPTS = int(self._get_optional("RETRY_MAX_ATTEMPTS", "3"))
        self.RETRY_DELAY_SECONDS = float(
            self._get_optional("RETRY_DELAY_SECONDS", "2.0")
        )

    def _get_optional(self, name: str, default: str = "") -> str:
        """Get an optional configuration value, falling back to ``default``."""
        if name in os.environ:
            return os.environ[name]
        return default

    def _get_bool(self, name: str) -> bool:
        """True if the variable is set to 'true' or '1'."""
        return name in os.environ and os.environ[name].lower() in ["true", "1"]

    @property
    def ai_api_key(self) -> str:
        """API key for the configured AI provider (empty means mock mode)."""
        if self.AI_PROVIDER == "openai":
            return self.OPENAI_API_KEY
        return self.ANTHROPIC_API_KEY

    def is_mock_mode(self, service: str) -> bool:
        """Report whether a service will run without credentials.

        Args:
            service: One of "places", "ai" or "deployment".

        Returns:
            True if the service credential is unset.

        Raises:
            ConfigError: If the service name is unknown.
        """
        keys = {
            "places": self.GOOGLE_PLACES_API_KEY,
            "ai": self.ai_api_key,
            "deployment": self.VERCEL_TOKEN,
        }
        if service not in keys:
            raise ConfigError(f"Unknown service: {service}")
        return not keys[service]

    def validate_for_generation(self) -> None:
        """Validate the AI provider selection.

        Raises:
            ConfigError: If AI_PROVIDER names an unsupported provider.
        """
        if self.AI_PROVIDER not in AI_PROVIDERS:
            raise ConfigError(
                f"AI_PROVIDER must be one of {', '.join(AI_PROVIDERS)}, got {self.AI_PROVIDER!r}"
            )

    def validate_for_database(self) -> None:
        """Validate the database URL scheme.

        Raises:
            ConfigError: If DATABASE_URL is empty or uses an unsupported driver.
        """
        if not self.DATABASE_URL:
            raise ConfigError("DATABASE_URL must not be empty")
        if not self.DATABASE_URL.startswith(("sqlite", "postgresql")):
            raise ConfigError(
                "DATABASE_URL must be a sqlite:// or postgresql:// URL"
            )

    def validate_all(self) -> None:
        """Validate all configuration used by the full pipeline.

        Raises:
            ConfigError: If any setting is invalid.
        """
        self.validate_for_generation()
        self.validate_for_database()

    def is_production(self) -> bool:
        """True if APP_ENV is 'prod' or 'production'."""
        return self.APP_ENV.lower() in ["prod", "production"]

    def get_log_level(self) -> int:
        """Get logging level as integer.

        Returns:
            Logging level constant (e.g., logging.INFO).
        """
        level_map = {
            "DEBUG": logging.DEBUG,
            "INFO": logging.INFO,
            "WARNING": logging.WARNING,
            "ERROR": logging.ERROR,
            "CRITICAL": logging.CRITICAL,
        }
        if self.DEBUG:
            return logging.DEBUG
        return level_map.get(self.LOG_LEVEL.upper(), logging.INFO)


# Create global default instance, read by the CLI entry point
config = Config()
