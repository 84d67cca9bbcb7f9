"""Custom exception hierarchy for the Imagineer campaign backend.

This module defines the exception hierarchy used across storage, content
analysis, enrichment and the HTTP layer. All exceptions inherit from
ImagineerError, so the API boundary can translate any domain failure into
a single JSON error shape while preserving domain-specific context.

Example:
    >>> from imagineer.core.exceptions import NotFoundError
    >>> raise NotFoundError("Entity not found", resource="entity", resource_id=42)
"""

from __future__ import annotations

from typing import Any


class ImagineerError(Exception):
    """Base exception for all Imagineer errors.

    All custom exceptions in this application inherit from this class,
    enabling unified error handling at the application boundary.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary containing additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        """Initialize the base exception.

        Args:
            message: Human-readable error description.
            details: Optional dictionary containing additional error context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the exception message with optional details.

        Returns:
            Formatted error message including any provided details.
        """
        if self.details:
            detail_str = ", ".join(f"{k}={v!r}" for k, v in self.details.items())
            return f"{self.message} [{detail_str}]"
        return self.message

    def __repr__(self) -> str:
        """Return a detailed string representation of the exception.

        Returns:
            String representation suitable for debugging.
        """
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


# =============================================================================
# Storage Domain Exceptions
# =============================================================================


class StorageError(ImagineerError):
    """Base exception for persistence failures.

    Raised when a database operation fails for reasons other than a
    missing record or a constraint conflict.
    """


class NotFoundError(StorageError):
    """Raised when a requested record does not exist.

    Ownership failures are also reported as NotFoundError so that the
    existence of another user's data is never revealed.
    """

    def __init__(
        self,
        message: str,
        *,
        resource: str | None = None,
        resource_id: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize not-found error with resource context.

        Args:
            message: Human-readable error description.
            resource: Kind of record that was looked up (e.g., 'entity').
            resource_id: Identifier that was not found.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if resource:
            combined_details["resource"] = resource
        if resource_id is not None:
            combined_details["resource_id"] = resource_id
        super().__init__(message, details=combined_details)


class ConflictError(StorageError):
    """Raised when a write violates a uniqueness constraint.

    Examples are duplicate relationship types, duplicate relationships
    and duplicate session numbers within a campaign.
    """


# =============================================================================
# Auth Domain Exceptions
# =============================================================================


class AuthenticationError(ImagineerError):
    """Raised when a request cannot be tied to a known user.

    This covers missing or malformed bearer tokens, expired tokens,
    bad signatures and OAuth exchange failures.
    """


class AuthorizationError(ImagineerError):
    """Raised when an authenticated user touches data they do not own."""


# =============================================================================
# Content Analysis Domain Exceptions
# =============================================================================


class AnalysisError(ImagineerError):
    """Base exception for content analysis failures."""


class UnsupportedSourceError(AnalysisError):
    """Raised when a source table/field pair cannot be analysed.

    Only a fixed set of text columns can be scanned, fixed up and
    reverted; anything else is rejected before touching the database.
    """

    def __init__(
        self,
        message: str,
        *,
        source_table: str | None = None,
        source_field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize unsupported source error with source context.

        Args:
            message: Human-readable error description.
            source_table: Table that was requested.
            source_field: Field that was requested.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if source_table:
            combined_details["source_table"] = source_table
        if source_field:
            combined_details["source_field"] = source_field
        super().__init__(message, details=combined_details)


class StaleOffsetError(AnalysisError):
    """Raised when stored item offsets no longer point at the matched text.

    This happens when the source text was edited after the analysis job
    was created. The content fix is skipped rather than corrupting text.
    """

    def __init__(
        self,
        message: str,
        *,
        expected: str | None = None,
        actual: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize stale offset error with text context.

        Args:
            message: Human-readable error description.
            expected: The matched text recorded on the item.
            actual: The text currently found at the stored offsets.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if expected is not None:
            combined_details["expected"] = expected
        if actual is not None:
            combined_details["actual"] = actual
        super().__init__(message, details=combined_details)


# =============================================================================
# LLM Domain Exceptions
# =============================================================================


class LLMError(ImagineerError):
    """Base exception for all LLM provider errors.

    Raised when there are issues with completion calls, including
    connection failures, unexpected status codes and parse failures.
    """

    def __init__(
        self,
        message: str,
        *,
        provider: str | None = None,
        model: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize LLM error with provider context.

        Args:
            message: Human-readable error description.
            provider: Name of the LLM service (e.g., 'anthropic', 'openai').
            model: Name of the model involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if provider:
            combined_details["provider"] = provider
        if model:
            combined_details["model"] = model
        super().__init__(message, details=combined_details)


class LLMConfigurationError(LLMError):
    """Raised when no usable LLM service is configured for the user."""


class QuotaExceededError(LLMError):
    """Raised when the provider reports an exhausted quota or billing issue.

    Quota errors are never retried.
    """


class LLMRateLimitError(LLMError):
    """Raised when rate limiting persists after all retries.

    This exception includes retry timing information when available.
    """

    def __init__(
        self,
        message: str,
        *,
        retry_after_seconds: float | None = None,
        provider: str | None = None,
        model: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize rate limit error with retry context.

        Args:
            message: Human-readable error description.
            retry_after_seconds: Seconds to wait before retrying.
            provider: Name of the LLM service.
            model: Name of the model involved.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if retry_after_seconds is not None:
            combined_details["retry_after_seconds"] = retry_after_seconds
        super().__init__(message, provider=provider, model=model, details=combined_details)


class LLMResponseError(LLMError):
    """Raised when a completion response cannot be used at all."""


# =============================================================================
# Configuration & Validation Exceptions
# =============================================================================


class ConfigurationError(ImagineerError):
    """Raised when application configuration is invalid.

    This includes missing required settings, invalid values, or
    incompatible configuration combinations.
    """

    def __init__(
        self,
        message: str,
        *,
        config_key: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize configuration error with config key context.

        Args:
            message: Human-readable error description.
            config_key: The configuration key that caused the error.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if config_key:
            combined_details["config_key"] = config_key
        super().__init__(message, details=combined_details)


class ValidationError(ImagineerError):
    """Raised when data validation fails.

    This includes constraint violations and type mismatches in user
    input that pydantic cannot express on its own.
    """

    def __init__(
        self,
        message: str,
        *,
        field_name: str | None = None,
        invalid_value: Any | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize validation error with field context.

        Args:
            message: Human-readable error description.
            field_name: Name of the field that failed validation.
            invalid_value: The value that failed validation.
            details: Optional dictionary containing additional error context.
        """
        combined_details = details or {}
        if field_name:
            combined_details["field_name"] = field_name
        if invalid_value is not None:
            combined_details["invalid_value"] = invalid_value
        super().__init__(message, details=combined_details)


__all__ = [
    "ImagineerError",
    "StorageError",
    "NotFoundError",
    "ConflictError",
    "AuthenticationError",
    "AuthorizationError",
    "AnalysisError",
    "UnsupportedSourceError",
    "StaleOffsetError",
    "LLMError",
    "LLMConfigurationError",
    "QuotaExceededError",
    "LLMRateLimitError",
    "LLMResponseError",
    "ConfigurationError",
    "ValidationError",
]
