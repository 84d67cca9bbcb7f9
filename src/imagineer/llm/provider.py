"""Chat-completion providers for the user's configured LLM service.

Anthropic, OpenAI and Ollama all expose an OpenAI-compatible
chat-completions endpoint, so one client class drives all three; only
the base URL, default model and key requirement differ.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from openai import APIConnectionError, APIStatusError, OpenAI
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_exponential

from imagineer.core.config import LLMSettings, get_settings
from imagineer.core.exceptions import (
    LLMConfigurationError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    QuotaExceededError,
)
from imagineer.core.logging import get_logger
from imagineer.models.enums import LLMService

logger = get_logger(__name__)

_RETRYABLE_STATUS = frozenset({429, 503})
_QUOTA_MARKERS = ("quota", "billing")


# =============================================================================
# Requests and responses
# =============================================================================


@dataclass
class CompletionRequest:
    """A single system + user prompt completion.

    Attributes:
        system_prompt: Instructions for the model.
        user_prompt: The content to work on.
        max_tokens: Upper bound on generated tokens.
        temperature: Sampling temperature.
    """

    system_prompt: str
    user_prompt: str
    max_tokens: int = 2048
    temperature: float = 0.3


@dataclass
class CompletionResponse:
    """Text produced by a provider."""

    content: str
    tokens_used: int = 0


class LLMProvider(ABC):
    """Anything that can answer a CompletionRequest."""

    name: str = "unknown"
    model: str = ""

    @abstractmethod
    def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one completion.

        Raises:
            QuotaExceededError: If the account is out of quota or credit.
            LLMRateLimitError: If rate limiting outlasted every retry.
            LLMError: For any other provider failure.
        """


# =============================================================================
# Error classification
# =============================================================================


def is_quota_error(exc: BaseException) -> bool:
    """Whether a provider error means the account is out of quota.

    That is HTTP 402, or HTTP 429 whose message mentions quota or billing.
    """
    if not isinstance(exc, APIStatusError):
        return False
    if exc.status_code == 402:
        return True
    if exc.status_code == 429:
        message = str(exc).lower()
        return any(marker in message for marker in _QUOTA_MARKERS)
    return False


def is_retryable(exc: BaseException) -> bool:
    """Whether a provider error is transient: HTTP 429 or 503, not quota."""
    return (
        isinstance(exc, APIStatusError)
        and exc.status_code in _RETRYABLE_STATUS
        and not is_quota_error(exc)
    )


# =============================================================================
# OpenAI-compatible provider
# =============================================================================


class ChatCompletionsProvider(LLMProvider):
    """Provider backed by an OpenAI-compatible chat-completions endpoint.

    Transient failures (HTTP 429 and 503) are retried with exponential
    backoff of 1, 2 and 4 seconds. Quota errors fail immediately.

    Attributes:
        name: LLM service name used in errors and logs.
        model: Model identifier sent with each request.
        max_retries: Retries after the first attempt.
    """

    def __init__(
        self,
        *,
        name: str,
        model: str,
        api_key: str,
        base_url: str | None = None,
        max_retries: int = 3,
        timeout_seconds: float = 120,
        client: Any | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            name: LLM service name.
            model: Model identifier.
            api_key: Key sent as the bearer token.
            base_url: Endpoint root, None for the OpenAI default.
            max_retries: Retries after the first attempt.
            timeout_seconds: Per-request timeout.
            client: Prebuilt client, mainly for tests.
        """
        self.name = name
        self.model = model
        self.max_retries = max_retries
        # SDK retries are disabled so the backoff policy below is the only one.
        self._client = client or OpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds,
            max_retries=0,
        )
        self._retrying = Retrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=4),
            reraise=True,
        )

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run one completion, retrying transient failures.

        Raises:
            QuotaExceededError: If the account is out of quota or credit.
            LLMRateLimitError: If HTTP 429 persisted through every retry.
            LLMResponseError: If the response carries no choices.
            LLMError: For connection failures and other status codes.
        """
        logger.debug(
            "Requesting completion",
            provider=self.name,
            model=self.model,
            max_tokens=request.max_tokens,
        )
        try:
            response = self._retrying(self._create, request)
        except APIStatusError as exc:
            raise self._translate_status_error(exc) from exc
        except APIConnectionError as exc:
            raise LLMError(
                f"Failed to connect to {self.name}: {exc}",
                provider=self.name,
                model=self.model,
            ) from exc

        if not response.choices:
            raise LLMResponseError("Completion returned no choices", provider=self.name, model=self.model)

        content = response.choices[0].message.content or ""
        tokens = response.usage.total_tokens if response.usage else 0
        logger.debug("Completion received", provider=self.name, model=self.model, tokens_used=tokens)
        return CompletionResponse(content=content, tokens_used=tokens)

    def _create(self, request: CompletionRequest) -> Any:
        return self._client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            max_tokens=request.max_tokens,
            temperature=request.temperature,
        )

    def _translate_status_error(self, exc: APIStatusError) -> LLMError:
        if is_quota_error(exc):
            logger.warning("LLM quota exceeded", provider=self.name, status_code=exc.status_code)
            return QuotaExceededError(
                f"{self.name} quota exceeded: {exc.message}",
                provider=self.name,
                model=self.model,
                details={"status_code": exc.status_code},
            )
        if exc.status_code == 429:
            retry_after = exc.response.headers.get("retry-after") if exc.response is not None else None
            return LLMRateLimitError(
                f"Rate limit exceeded after {self.max_retries} retries",
                retry_after_seconds=float(retry_after) if retry_after and retry_after.isdigit() else None,
                provider=self.name,
                model=self.model,
            )
        return LLMError(
            f"{self.name} API error: {exc.message}",
            provider=self.name,
            model=self.model,
            details={"status_code": exc.status_code},
        )


# =============================================================================
# Factory
# =============================================================================


def create_provider(
    service: str | None,
    api_key: str | None,
    settings: LLMSettings | None = None,
) -> LLMProvider:
    """Build the provider for a user's configured service.

    Args:
        service: LLMService value.
        api_key: The user's key; ignored for Ollama.
        settings: LLM settings, defaults to the application settings.

    Raises:
        LLMConfigurationError: If the service is unknown or a required key
            is missing.
    """
    try:
        llm_service = LLMService(service or "")
    except ValueError as exc:
        raise LLMConfigurationError(
            f"Unknown LLM service: {service!r}", provider=service
        ) from exc
    if llm_service.requires_api_key and not api_key:
        raise LLMConfigurationError(
            f"An API key is required for {llm_service.value}", provider=llm_service.value
        )

    settings = settings or get_settings().llm
    common = {"max_retries": settings.max_retries, "timeout_seconds": settings.timeout_seconds}

    if llm_service is LLMService.ANTHROPIC:
        return ChatCompletionsProvider(
            name=llm_service.value,
            model=settings.anthropic_model,
            api_key=api_key,
            base_url=settings.anthropic_base_url,
            **common,
        )
    if llm_service is LLMService.OPENAI:
        return ChatCompletionsProvider(
            name=llm_service.value,
            model=settings.openai_model,
            api_key=api_key,
            base_url=settings.openai_base_url,
            **common,
        )
    # Ollama ignores the key but the client insists on one.
    return ChatCompletionsProvider(
        name=llm_service.value,
        model=settings.ollama_model,
        api_key="ollama",
        base_url=settings.ollama_host.rstrip("/") + "/v1",
        **common,
    )


__all__ = [
    "CompletionRequest",
    "CompletionResponse",
    "LLMProvider",
    "ChatCompletionsProvider",
    "is_quota_error",
    "is_retryable",
    "create_provider",
]
