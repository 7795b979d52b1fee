"""Environment variable loading and validation."""

import os
from typing import Optional

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/signal_intake.db"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Secrets and deployment settings read from the process environment."""

    def __init__(
        self,
        openrouter_api_key: Optional[str] = None,
        openai_api_key: Optional[str] = None,
        apify_api_key: Optional[str] = None,
        database_url: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        self.openrouter_api_key = openrouter_api_key
        self.openai_api_key = openai_api_key
        self.apify_api_key = apify_api_key
        self.database_url = database_url or DEFAULT_DATABASE_URL
        self.log_level = log_level

    @property
    def uses_openrouter(self) -> bool:
        """OpenRouter is preferred whenever its key is present."""
        return bool(self.openrouter_api_key)

    @property
    def ai_api_key(self) -> Optional[str]:
        return self.openrouter_api_key or self.openai_api_key


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Required (at least one):
    - OPENROUTER_API_KEY: key for the OpenRouter gateway (primary + fallback models)
    - OPENAI_API_KEY: key for the OpenAI API (used when OpenRouter is not configured)

    Optional:
    - APIFY_API_KEY: token for Apify-backed sources (indeed, linkedin, google_maps)
    - DATABASE_URL: SQLAlchemy URL (default: sqlite:///./data/signal_intake.db)
    - LOG_LEVEL: Override log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        EnvironmentConfig object with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors = []

    openrouter_api_key = _read("OPENROUTER_API_KEY")
    openai_api_key = _read("OPENAI_API_KEY")
    apify_api_key = _read("APIFY_API_KEY")
    database_url = _read("DATABASE_URL")
    log_level = _read("LOG_LEVEL")

    if not openrouter_api_key and not openai_api_key:
        errors.append("Missing AI credentials: set OPENROUTER_API_KEY or OPENAI_API_KEY")

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if database_url and "://" not in database_url:
        errors.append(f"Invalid DATABASE_URL: '{database_url}'. Expected a SQLAlchemy URL")

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your credentials",
                "Ensure all required environment variables are set",
            ],
        )

    return EnvironmentConfig(
        openrouter_api_key=openrouter_api_key,
        openai_api_key=openai_api_key,
        apify_api_key=apify_api_key,
        database_url=database_url,
        log_level=log_level.upper() if log_level else None,
    )


def _read(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None
