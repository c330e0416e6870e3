"""Abstract base class for completion service providers.

Defines the interface that all providers must implement.
"""

from abc import ABC, abstractmethod
from typing import Any

from ..models import LLMRequest, LLMResponse


class LLMProvider(ABC):
    """Base interface for completion service providers.

    All providers (OpenAI, Anthropic, etc.) must implement this interface
    so the solver can treat them as one text-in/text-out service.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier: 'openai', 'anthropic', etc."""
        ...

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Human readable provider name used in error payloads."""
        ...

    @abstractmethod
    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Send a completion request and return the response.

        Args:
            request: Vendor-neutral completion request.

        Returns:
            Vendor-neutral completion response.

        Raises:
            AuthenticationError: Invalid or missing API key.
            RateLimitError: Rate limit exceeded or service overloaded (retryable).
            TimeoutError: Request timed out.
            InvalidRequestError: Malformed request.
            ContentFilterError: Response blocked by safety filters.
            ModelNotFoundError: Unknown model.
            ProviderError: Provider-side or connection failure.
        """
        ...


def retry_after_seconds(error: Any) -> float | None:
    """Seconds from the ``retry-after`` header of a failed SDK call, if any."""
    response = getattr(error, "response", None)
    if response is None:
        return None
    value = response.headers.get("retry-after")
    try:
        return float(value) if value else None
    except ValueError:
        return None
