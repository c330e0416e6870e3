"""OpenAI provider implementation.

Implements the LLMProvider interface for OpenAI's Chat Completions API.
"""

import os
import time
from typing import Any

from openai import (
    APIConnectionError,
    APIError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
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


class OpenAIProvider(LLMProvider):
    """OpenAI Chat Completions API provider."""

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 60.0,
        default_model: str = "gpt-3.5-turbo",
    ):
        """Initialize OpenAI provider.

        Args:
            api_key: OpenAI API key. Defaults to OPENAI_API_KEY env var.
            timeout: Request timeout in seconds.
            default_model: Default model to use if not specified in request.
        """
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self._timeout = timeout
        self._default_model = default_model
        self._client: AsyncOpenAI | None = None

    @property
    def name(self) -> str:
        """Provider identifier."""
        return "openai"

    @property
    def display_name(self) -> str:
        return "OpenAI"

    @property
    def client(self) -> AsyncOpenAI:
        """Lazy-initialized OpenAI client."""
        if self._client is None:
            if not self._api_key:
                raise AuthenticationError(
                    "OpenAI API key not configured. Set OPENAI_API_KEY environment variable.",
                    provider=self.name,
                )
            # Retries are owned by the solver, not the SDK
            self._client = AsyncOpenAI(
                api_key=self._api_key, timeout=self._timeout, max_retries=0
            )
        return self._client

    async def generate(self, request: LLMRequest) -> LLMResponse:
        """Send a completion request to OpenAI.

        Raises:
            Various LLMError subclasses based on the error type.
        """
        start_time = time.perf_counter()

        openai_request = self._build_request(request)

        try:
            response = await self.client.chat.completions.create(**openai_request)

        except APITimeoutError as e:
            raise TimeoutError(
                f"OpenAI request timed out after {self._timeout}s",
                provider=self.name,
            ) from e

        except APIConnectionError as e:
            raise ProviderError(
                f"Failed to connect to OpenAI: {e}",
                provider=self.name,
            ) from e

        except APIStatusError as e:
            self._handle_api_error(e)

        except APIError as e:
            # Anything else the SDK raises, e.g. APIResponseValidationError
            raise ProviderError(f"OpenAI API error: {e}", provider=self.name) from e

        latency_ms = int((time.perf_counter() - start_time) * 1000)
        try:
            return self._parse_response(response, latency_ms)
        except (AttributeError, IndexError, KeyError, TypeError, ValidationError) as e:
            raise ProviderError(
                f"Malformed OpenAI response: {e}",
                provider=self.name,
                request_id=getattr(response, "id", None),
            ) from e

    def _build_request(self, request: LLMRequest) -> dict[str, Any]:
        """Convert LLMRequest to OpenAI API format."""
        openai_request: dict[str, Any] = {
            "model": request.model or self._default_model,
            "messages": [
                {"role": msg.role, "content": msg.content} for msg in request.messages
            ],
            "temperature": request.temperature,
        }

        if request.max_tokens:
            openai_request["max_tokens"] = request.max_tokens

        # Pass-through parameters (top_p, presence_penalty, ...) go in as-is
        openai_request.update(request.extra_params)

        return openai_request

    def _parse_response(self, response: Any, latency_ms: int) -> LLMResponse:
        """Convert OpenAI response to LLMResponse."""
        choice = response.choices[0]
        usage = response.usage

        return LLMResponse(
            text=choice.message.content,
            finish_reason=choice.finish_reason or "stop",
            usage=Usage(
                prompt_tokens=usage.prompt_tokens if usage else 0,
                completion_tokens=usage.completion_tokens if usage else 0,
                total_tokens=usage.total_tokens if usage else 0,
            ),
            model=response.model,
            provider=self.name,
            latency_ms=latency_ms,
            request_id=response.id,
        )

    def _handle_api_error(self, error: APIStatusError) -> None:
        """Convert OpenAI API errors to LLMError types."""
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

        if status_code == 429:
            raise RateLimitError(
                message,
                retry_after=retry_after_seconds(error),
                provider=self.name,
                request_id=request_id,
            ) from error

        if status_code == 400:
            if "content_filter" in message.lower() or "safety" in message.lower():
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
