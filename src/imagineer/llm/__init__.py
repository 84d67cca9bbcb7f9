"""LLM access for content enrichment.

Exports:
    CompletionRequest, CompletionResponse: Provider input and output.
    LLMProvider: Abstract provider interface.
    ChatCompletionsProvider: OpenAI-compatible implementation.
    create_provider: Build a provider for a user's configured service.
"""

from imagineer.llm.provider import (
    ChatCompletionsProvider,
    CompletionRequest,
    CompletionResponse,
    LLMProvider,
    create_provider,
    is_quota_error,
    is_retryable,
)

__all__ = [
    "ChatCompletionsProvider",
    "CompletionRequest",
    "CompletionResponse",
    "LLMProvider",
    "create_provider",
    "is_quota_error",
    "is_retryable",
]
