"""Completion service error hierarchy.

Every provider failure is raised as one of these exceptions. Each carries an
HTTP-like ``status_code`` so the solver can surface it unchanged in the
``{status, data}`` result shape.
"""


class LLMError(Exception):
    """Base exception for completion service operations."""

    default_status_code = 500

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.request_id = request_id
        self.correlation_id = correlation_id
        self.status_code = status_code if status_code is not None else self.default_status_code

    def __str__(self) -> str:
        parts = [super().__str__()]
        if self.provider:
            parts.append(f"provider={self.provider}")
        if self.request_id:
            parts.append(f"request_id={self.request_id}")
        return " ".join(parts)


class AuthenticationError(LLMError):
    """401/403 - Invalid or missing API key.

    Non-retryable. Check API key configuration.
    """

    default_status_code = 401


class RateLimitError(LLMError):
    """429 - Rate limit exceeded, or the service is overloaded.

    Retryable with exponential backoff.
    """

    default_status_code = 429

    def __init__(
        self,
        message: str,
        retry_after: float | None = None,
        provider: str | None = None,
        request_id: str | None = None,
        correlation_id: str | None = None,
        status_code: int | None = None,
    ):
        super().__init__(message, provider, request_id, correlation_id, status_code)
        self.retry_after = retry_after


class TimeoutError(LLMError):
    """Request exceeded the client timeout."""

    default_status_code = 408


class InvalidRequestError(LLMError):
    """400 - Malformed request.

    Non-retryable. Examples: too many tokens, bad parameters.
    """

    default_status_code = 400


class ContentFilterError(LLMError):
    """Response blocked by safety filters."""

    default_status_code = 400


class ProviderError(LLMError):
    """500/502/503 - Provider-side or connection failure."""

    default_status_code = 503


class ModelNotFoundError(LLMError):
    """404 - Model identifier not recognized."""

    default_status_code = 404


# Only rate limiting / overload is retried by the solver; everything else is terminal.
RETRYABLE_ERRORS = (RateLimitError,)
NON_RETRYABLE_ERRORS = (
    AuthenticationError,
    TimeoutError,
    InvalidRequestError,
    ContentFilterError,
    ProviderError,
    ModelNotFoundError,
)
