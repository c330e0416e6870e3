"""Anthropic provider implementation.

Implements the LLMProvider interface for Anthropic's Messages API.
"""

import os
import time
from typing import Any

from anthropic import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncAnthropic,
)
from pydantic import ValidationError

from ..errors import (
    AuthenticationError,
    ContentFilterError,
    InvalidRequestError,
    LLMError,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
    TimeoutError,
)
from ..models import LLMRequest, LLMResponse, Usage
from .base import LLMProvider, retry_after_seconds

# Anthropic-specific "overloaded" status, treated like a rate limit
OVERLOADED_STATUS_CODE = 529


class AnthropicProvider(LLMProvider):
    """Anthropic Messages API provider.

    System messages are folded into the top-level ``system`` parameter since
    the Messages API has no system role.
    """

    DEFAULT_MAX_TOKENS = 4096

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        default_model: str = "claude-3-5-haiku-latest",
    ):
        """Initialize Anthropic provider.

        Args:
            api_key: Anthropic API key. Defaults to ANTHROPIC_API_KEY env var.
            timeout: Request timeout in seconds.
            default_model: Default model to use if not specified in request.
        """
        self._api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self._timeout = timeout
        self._default_model = default_model
        self._client: AsyncAnthropic | None = None

    @property
    def name(self) -> str:
        """Provider identifier."""
        return "anthropic"

    @property
    def display_name(self) -> str:
        return "Anthropic"

    @property
    def client(self) -> AsyncAnthropic:
        """Lazy-initialized Anthropic client."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "Anthropic API key not configured. Set ANTHROPIC_API_KEY environment variable.",
                    provider=self.name,
                )
            self._client = AsyncAnthropic(
                api_key=self._api_key, timeout=self._timeout, max_retries=0
            )
        return self._client

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Send a completion request to Anthropic.

        Raises:
            Various LLMError subclasses based on the error type.
        """
        start_time = time.perf_counter()

        anthropic_request = self._build_request(request)

        try:
            response = await self.client.messages.create(**anthropic_request)

        except APITimeoutError as e:
            raise TimeoutError(
                f"Anthropic request timed out after {self._timeout}s",
                provider=self.name,
            ) from e

        except APIConnectionError as e:
            raise ProviderError(
                f"Failed to connect to Anthropic: {e}",
                provider=self.name,
            ) from e

        except APIStatusError as e:
            self._handle_api_error(e)

        except APIError as e:
            raise ProviderError(f"Anthropic API error: {e}", provider=self.name) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        try:
            return self._parse_response(response, latency_ms)
        except (AttributeError, KeyError, TypeError, ValidationError) as e:
            raise ProviderError(f"Malformed Anthropic response: {e}", provider=self.name) from e

    def _build_request(self, request: LLMRequest) -> dict[str, Any]:
        """Convert LLMRequest to Anthropic API format."""
        system_parts: list[str] = []
        messages: list[dict[str, Any]] = []

        for msg in request.messages:
            if msg.role == "system":
                system_parts.append(msg.content)
            else:
                messages.append({"role": msg.role, "content": msg.content})

        # The Messages API requires at least one user turn
        if not messages:
            messages.append({"role": "user", "content": "\n\n".join(system_parts)})
            system_parts = []

        anthropic_request: dict[str, Any] = {
            "model": request.model or self._default_model,
            "messages": messages,
            "max_tokens": request.max_tokens or self.DEFAULT_MAX_TOKENS,
            # Anthropic uses a 0-1 temperature range
            "temperature": min(request.temperature, 1.0),
        }

        if system_parts:
            anthropic_request["system"] = "\n\n".join(system_parts)

        anthropic_request.update(request.extra_params)

        return anthropic_request

    def _parse_response(self, response: Any, latency_ms: int) -> LLMResponse:
        """Convert Anthropic response to LLMResponse."""
        text_parts = [block.text for block in response.content if block.type == "text"]

        finish_reason_map = {
            "end_turn": "stop",
            "max_tokens": "length",
            "stop_sequence": "stop",
        }

        return LLMResponse(
            text="\n".join(text_parts) if text_parts else None,
            finish_reason=finish_reason_map.get(response.stop_reason, response.stop_reason or "stop"),
            usage=Usage(
                prompt_tokens=response.usage.input_tokens,
                completion_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
            ),
            model=response.model,
            provider=self.name,
            latency_ms=latency_ms,
            request_id=response.id,
        )

    def _handle_api_error(self, error: APIStatusError) -> None:
        """Convert Anthropic API errors to LLMError types."""
        status_code = error.status_code
        message = str(error.message) if hasattr(error, "message") else str(error)
        request_id = getattr(error, "request_id", None)

        if status_code in (401, 403):
            raise AuthenticationError(
                message,
                provider=self.name,
                request_id=request_id,
                status_code=status_code,
            ) from error

        if status_code == 404:
            raise ModelNotFoundError(
                message,
                provider=self.name,
                request_id=request_id,
            ) from error

        if status_code in (429, OVERLOADED_STATUS_CODE):
            raise RateLimitError(
                message,
                retry_after=retry_after_seconds(error),
                provider=self.name,
                request_id=request_id,
                status_code=status_code,
            ) from error

        if status_code == 400:
            if "safety" in message.lower() or "harmful" in message.lower():
                raise ContentFilterError(
                    message,
                    provider=self.name,
                    request_id=request_id,
                ) from error

            raise InvalidRequestError(
                message,
                provider=self.name,
                request_id=request_id,
            ) from error

        if status_code >= 500:
            raise ProviderError(
                message,
                provider=self.name,
                request_id=request_id,
                status_code=status_code,
            ) from error

        raise LLMError(
            message,
            provider=self.name,
            request_id=request_id,
            status_code=status_code,
        ) from error
