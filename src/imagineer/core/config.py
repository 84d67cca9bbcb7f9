"""Configuration management for the Imagineer campaign backend.

This module provides centralized configuration management using pydantic-settings,
supporting environment variables, .env files, and runtime configuration overrides.
All sensitive values (signing secrets, OAuth secrets, encryption keys) are handled
using SecretStr.

Example:
    >>> from imagineer.core.config import get_settings
    >>> settings = get_settings()
    >>> print(settings.app_name)
    'Imagineer'

Environment Variables:
    IMAGINEER_DATABASE_PATH: Path to the SQLite database file
    IMAGINEER_JWT_SECRET: Secret used to sign access tokens
    IMAGINEER_GOOGLE_CLIENT_ID: Google OAuth client id
    IMAGINEER_GOOGLE_CLIENT_SECRET: Google OAuth client secret
    IMAGINEER_ENCRYPTION_KEY: Fernet key for API keys at rest
    IMAGINEER_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from imagineer.core.exceptions import ConfigurationError


class DatabaseSettings(BaseSettings):
    """Configuration for the SQLite store.

    Attributes:
        database_path: Path to the SQLite database file.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGINEER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    database_path: Path = Field(
        default=Path("data/imagineer.db"),
        description="Path to SQLite database",
    )


class AuthSettings(BaseSettings):
    """Configuration for authentication and secrets at rest.

    Attributes:
        jwt_secret: HMAC secret used to sign access tokens.
        jwt_expiry_hours: Access token lifetime in hours.
        google_client_id: Google OAuth client id.
        google_client_secret: Google OAuth client secret.
        google_redirect_url: Callback URL registered with Google.
        frontend_url: Base URL of the web client that receives the token.
        encryption_key: Fernet key for encrypting stored API keys.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGINEER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    jwt_secret: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        description="Access token signing secret",
    )
    jwt_expiry_hours: int = Field(
        default=24,
        description="Access token lifetime in hours",
    )
    google_client_id: str = Field(
        default="",
        description="Google OAuth client id",
    )
    google_client_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Google OAuth client secret",
    )
    google_redirect_url: str = Field(
        default="http://localhost:8080/api/auth/google/callback",
        description="OAuth callback URL",
    )
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Web client base URL",
    )
    encryption_key: SecretStr | None = Field(
        default=None,
        description="Fernet key for API keys at rest",
    )

    @field_validator("jwt_expiry_hours", mode="after")
    @classmethod
    def validate_expiry(cls, value: int) -> int:
        """Keep token lifetimes between one hour and thirty days.

        Args:
            value: Configured lifetime in hours.

        Returns:
            The validated lifetime.

        Raises:
            ConfigurationError: If the lifetime is out of range.
        """
        if not 1 <= value <= 720:
            raise ConfigurationError(
                f"jwt_expiry_hours must be between 1 and 720, got {value}",
                config_key="jwt_expiry_hours",
            )
        return value

    @field_validator("frontend_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Normalize the frontend URL so redirect paths join cleanly."""
        return value.rstrip("/")


class LLMSettings(BaseSettings):
    """Configuration for LLM service connections.

    Users bring their own API keys; these settings only describe where each
    service lives and which model it defaults to.

    Attributes:
        anthropic_base_url: OpenAI-compatible endpoint for Anthropic.
        anthropic_model: Default Anthropic model identifier.
        openai_base_url: OpenAI endpoint, None for the SDK default.
        openai_model: Default OpenAI model identifier.
        ollama_host: Base URL of the local Ollama server.
        ollama_model: Default Ollama model identifier.
        max_retries: Maximum number of retry attempts on transient errors.
        timeout_seconds: Request timeout in seconds.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGINEER_LLM_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1/",
        description="Anthropic OpenAI-compatible endpoint",
    )
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514",
        description="Default Anthropic model",
    )
    openai_base_url: str | None = Field(
        default=None,
        description="OpenAI endpoint override",
    )
    openai_model: str = Field(
        default="gpt-4o",
        description="Default OpenAI model",
    )
    ollama_host: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL",
    )
    ollama_model: str = Field(
        default="llama3.2",
        description="Default Ollama model",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Maximum retry attempts",
    )
    timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=600,
        description="Request timeout",
    )


class ServerSettings(BaseSettings):
    """Configuration for the HTTP server.

    Attributes:
        host: Interface to bind.
        port: Port to listen on.
        cors_origins: Comma-separated list of allowed CORS origins.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGINEER_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    host: str = Field(
        default="0.0.0.0",
        description="Bind address",
    )
    port: int = Field(
        default=8080,
        ge=1,
        le=65535,
        description="Listen port",
    )
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated allowed origins",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Split the configured origins into a list.

        Returns:
            Non-empty, stripped origin strings.
        """
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


class Settings(BaseSettings):
    """Main application settings aggregating all configuration domains.

    Attributes:
        app_name: Application name.
        app_version: Application version string.
        debug: Enable debug mode.
        log_level: Application logging level.
        log_json: Emit JSON log lines instead of console output.
        database: Database settings.
        auth: Authentication settings.
        llm: LLM service settings.
        server: HTTP server settings.
    """

    model_config = SettingsConfigDict(
        env_prefix="IMAGINEER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        env_nested_delimiter="__",
    )

    # Application metadata
    app_name: str = Field(
        default="Imagineer",
        description="Application name",
    )
    app_version: str = Field(
        default="0.1.0",
        description="Application version",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON logs",
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)

    @property
    def is_production(self) -> bool:
        """Check if running in production mode.

        Returns:
            True if not in debug mode.
        """
        return not self.debug


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The application Settings instance.

    Raises:
        ConfigurationError: If required configuration is missing or invalid.
    """
    try:
        return Settings()
    except Exception as exc:
        raise ConfigurationError(
            f"Failed to load application settings: {exc}",
            details={"original_error": str(exc)},
        ) from exc


def clear_settings_cache() -> None:
    """Clear the settings cache, forcing a reload on next access.

    Example:
        >>> clear_settings_cache()
        >>> settings = get_settings()  # Reloads from environment
    """
    get_settings.cache_clear()


__all__ = [
    "DatabaseSettings",
    "AuthSettings",
    "LLMSettings",
    "ServerSettings",
    "Settings",
    "get_settings",
    "clear_settings_cache",
]
