"""Tests for the chat-completions provider and its factory."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import pytest
from openai import APIConnectionError, APIStatusError
from tenacity import wait_none

from imagineer.core.config import LLMSettings
from imagineer.core.exceptions import (
    LLMConfigurationError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    QuotaExceededError,
)
from imagineer.llm.provider import (
    ChatCompletionsProvider,
    CompletionRequest,
    create_provider,
    is_quota_error,
    is_retryable,
)

_REQUEST = httpx.Request("POST", "https://llm.test/v1/chat/completions")


def status_error(status: int, message: str = "error", headers: dict[str, str] | None = None) -> APIStatusError:
    """Build an SDK status error as the client would raise it."""
    response = httpx.Response(status, request=_REQUEST, headers=headers or {})
    return APIStatusError(message, response=response, body=None)


def completion(content: str | None = "Hello", tokens: int = 12) -> SimpleNamespace:
    """Build a chat-completions response."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=tokens),
    )


def make_provider(client: MagicMock, max_retries: int = 3) -> ChatCompletionsProvider:
    """Provider over a mocked client, with backoff disabled."""
    provider = ChatCompletionsProvider(
        name="openai",
        model="gpt-test",
        api_key="sk-test",
        max_retries=max_retries,
        client=client,
    )
    provider._retrying = provider._retrying.copy(wait=wait_none())
    return provider


REQUEST = CompletionRequest(system_prompt="You are terse.", user_prompt="Say hello.")


# =============================================================================
# Error classification
# =============================================================================


class TestErrorClassification:
    """Tests for quota and retry classification."""

    @pytest.mark.parametrize(
        ("status", "message", "quota", "retryable"),
        [
            (402, "Payment required", True, False),
            (429, "You exceeded your current quota", True, False),
            (429, "Billing hard limit reached", True, False),
            (429, "Too many requests", False, True),
            (503, "Overloaded", False, True),
            (500, "Server error", False, False),
        ],
    )
    def test_status_codes(self, status: int, message: str, quota: bool, retryable: bool) -> None:
        """Test each status code is classified correctly."""
        exc = status_error(status, message)

        assert is_quota_error(exc) is quota
        assert is_retryable(exc) is retryable

    def test_other_exceptions(self) -> None:
        """Test non-SDK errors are neither quota nor retryable."""
        assert is_quota_error(ValueError("quota")) is False
        assert is_retryable(ValueError("429")) is False


# =============================================================================
# Completions
# =============================================================================


class TestChatCompletionsProvider:
    """Tests for ChatCompletionsProvider.complete."""

    def test_success(self) -> None:
        """Test the content and token usage are returned."""
        client = MagicMock()
        client.chat.completions.create.return_value = completion("Hello", tokens=12)

        response = make_provider(client).complete(REQUEST)

        assert response.content == "Hello"
        assert response.tokens_used == 12
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["messages"] == [
            {"role": "system", "content": "You are terse."},
            {"role": "user", "content": "Say hello."},
        ]

    def test_empty_content_and_usage(self) -> None:
        """Test missing content and usage are tolerated."""
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=None))],
            usage=None,
        )

        response = make_provider(client).complete(REQUEST)

        assert response.content == ""
        assert response.tokens_used == 0

    def test_no_choices(self) -> None:
        """Test a response without choices raises LLMResponseError."""
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(choices=[], usage=None)

        with pytest.raises(LLMResponseError):
            make_provider(client).complete(REQUEST)

    def test_retries_transient_errors(self) -> None:
        """Test 429 and 503 are retried until a success."""
        client = MagicMock()
        client.chat.completions.create.side_effect = [
            status_error(429, "Too many requests"),
            status_error(503, "Overloaded"),
            completion("Finally"),
        ]

        response = make_provider(client).complete(REQUEST)

        assert response.content == "Finally"
        assert client.chat.completions.create.call_count == 3

    def test_rate_limit_after_retries(self) -> None:
        """Test a persistent 429 becomes LLMRateLimitError after every retry."""
        client = MagicMock()
        client.chat.completions.create.side_effect = status_error(
            429, "Too many requests", headers={"retry-after": "7"}
        )

        with pytest.raises(LLMRateLimitError) as exc_info:
            make_provider(client, max_retries=2).complete(REQUEST)

        assert client.chat.completions.create.call_count == 3
        assert exc_info.value.details["retry_after_seconds"] == 7.0

    def test_quota_is_not_retried(self) -> None:
        """Test a quota error fails on the first attempt."""
        client = MagicMock()
        client.chat.completions.create.side_effect = status_error(402, "Payment required")

        with pytest.raises(QuotaExceededError) as exc_info:
            make_provider(client).complete(REQUEST)

        assert client.chat.completions.create.call_count == 1
        assert exc_info.value.details["status_code"] == 402
        assert exc_info.value.details["provider"] == "openai"

    def test_other_status_is_not_retried(self) -> None:
        """Test other status codes become LLMError immediately."""
        client = MagicMock()
        client.chat.completions.create.side_effect = status_error(500, "Server error")

        with pytest.raises(LLMError) as exc_info:
            make_provider(client).complete(REQUEST)

        assert not isinstance(exc_info.value, QuotaExceededError)
        assert client.chat.completions.create.call_count == 1

    def test_connection_error(self) -> None:
        """Test connection failures become LLMError."""
        client = MagicMock()
        client.chat.completions.create.side_effect = APIConnectionError(request=_REQUEST)

        with pytest.raises(LLMError, match="Failed to connect"):
            make_provider(client).complete(REQUEST)


# =============================================================================
# Factory
# =============================================================================


class TestCreateProvider:
    """Tests for create_provider."""

    def test_anthropic(self) -> None:
        """Test Anthropic uses its compatible endpoint and default model."""
        provider = create_provider("anthropic", "sk-ant-test", LLMSettings())

        assert isinstance(provider, ChatCompletionsProvider)
        assert provider.name == "anthropic"
        assert provider.model == LLMSettings().anthropic_model
        assert str(provider._client.base_url) == "https://api.anthropic.com/v1/"

    def test_openai(self) -> None:
        """Test OpenAI uses its configured model."""
        provider = create_provider("openai", "sk-test", LLMSettings(openai_model="gpt-custom"))

        assert provider.name == "openai"
        assert provider.model == "gpt-custom"

    def test_ollama_needs_no_key(self) -> None:
        """Test Ollama works without a key and targets the local host."""
        provider = create_provider("ollama", None, LLMSettings(ollama_host="http://gpu-box:11434/"))

        assert provider.name == "ollama"
        assert str(provider._client.base_url).startswith("http://gpu-box:11434/v1")

    def test_retry_settings_are_passed(self) -> None:
        """Test the configured retry count reaches the provider."""
        provider = create_provider("openai", "sk-test", LLMSettings(max_retries=1))

        assert provider.max_retries == 1

    @pytest.mark.parametrize("service", ["anthropic", "openai"])
    def test_missing_key(self, service: str) -> None:
        """Test hosted services require a key."""
        with pytest.raises(LLMConfigurationError):
            create_provider(service, None, LLMSettings())

    @pytest.mark.parametrize("service", [None, "", "gemini"])
    def test_unknown_service(self, service: str | None) -> None:
        """Test an unknown or missing service is a configuration error."""
        with pytest.raises(LLMConfigurationError):
            create_provider(service, "key", LLMSettings())
