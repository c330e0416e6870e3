"""Completion service abstraction layer.

This module provides a vendor-neutral interface for sending role-tagged
messages to a completion service (OpenAI, Anthropic) and getting text back.
"""

from .errors import (
    NON_RETRYABLE_ERRORS,
    RETRYABLE_ERRORS,
    AuthenticationError,
    ContentFilterError,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TimeoutError,
)
from .models import ChatMessage, LLMRequest, LLMResponse, Usage
from .providers import AnthropicProvider, LLMProvider, OpenAIProvider, create_provider

__all__ = [
    "LLMProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "create_provider",
    "LLMRequest",
    "LLMResponse",
    "ChatMessage",
    "Usage",
    "LLMError",
    "AuthenticationError",
    "RateLimitError",
    "TimeoutError",
    "InvalidRequestError",
    "ContentFilterError",
    "ModelNotFoundError",
    "ProviderError",
    "RETRYABLE_ERRORS",
    "NON_RETRYABLE_ERRORS",
]
