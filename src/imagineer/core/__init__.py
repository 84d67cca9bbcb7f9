"""Core module providing configuration, logging, and base exceptions.

Exports:
    Exceptions:
        ImagineerError: Base exception for all application errors.
        NotFoundError, ConflictError: Storage outcomes mapped to HTTP codes.
        ConfigurationError: Configuration-related errors.
        ValidationError: Data validation errors.

    Configuration:
        Settings: Main application settings class.
        get_settings: Get the settings singleton.
        clear_settings_cache: Force settings reload.

    Logging:
        configure_logging: Set up application logging.
        get_logger: Get a configured logger instance.
        bind_context: Add context to log entries.
        clear_context: Clear logging context.
        log_context: Bind context for the duration of a block.
"""

from __future__ import annotations

from imagineer.core.config import (
    AuthSettings,
    DatabaseSettings,
    LLMSettings,
    ServerSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)
from imagineer.core.exceptions import (
    AnalysisError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    ImagineerError,
    LLMConfigurationError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    NotFoundError,
    QuotaExceededError,
    StaleOffsetError,
    StorageError,
    UnsupportedSourceError,
    ValidationError,
)
from imagineer.core.logging import (
    bind_context,
    clear_context,
    configure_logging,
    get_logger,
    log_context,
)


__all__ = [
    # Base exception
    "ImagineerError",
    # Configuration exceptions
    "ConfigurationError",
    "ValidationError",
    # Storage exceptions
    "StorageError",
    "NotFoundError",
    "ConflictError",
    # Auth exceptions
    "AuthenticationError",
    "AuthorizationError",
    # Analysis exceptions
    "AnalysisError",
    "UnsupportedSourceError",
    "StaleOffsetError",
    # LLM exceptions
    "LLMError",
    "LLMConfigurationError",
    "QuotaExceededError",
    "LLMRateLimitError",
    "LLMResponseError",
    # Configuration
    "Settings",
    "DatabaseSettings",
    "AuthSettings",
    "LLMSettings",
    "ServerSettings",
    "get_settings",
    "clear_settings_cache",
    # Logging
    "configure_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "log_context",
]
