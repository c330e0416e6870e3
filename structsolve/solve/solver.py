"""Call-with-retry: the single point of contact with the completion service.

Every call returns a ``SolveResponse``; provider exceptions never escape.
Rate-limit / overload failures are retried with exponential backoff, any other
service failure is returned immediately with the upstream status code.
"""

import asyncio
import logging
import os
import uuid
from typing import Any

from pydantic import ValidationError

from structsolve.llm import (
    RETRYABLE_ERRORS,
    ChatMessage,
    LLMError,
    LLMProvider,
    LLMRequest,
    create_provider,
)

from .options import SolveRequestOptions
from .responses import (
    INVALID_REQUEST_FORMAT,
    INVALID_REQUEST_OPTIONS,
    MAX_RETRIES_REACHED,
    ErrorPayload,
    ResultStatus,
    SolveResponse,
)

logger = logging.getLogger(__name__)

# A request is either a single prompt or an ordered list of messages
SolveRequest = str | list[ChatMessage | dict[str, Any]]


def _format_number(value: float) -> str:
    """Render whole numbers without a trailing ``.0``."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)


def invalid_request_response() -> SolveResponse:
    return SolveResponse(
        status=ResultStatus.INVALID_REQUEST,
        data=ErrorPayload(error=INVALID_REQUEST_FORMAT, text="void"),
    )


def coerce_options(options: SolveRequestOptions | dict[str, Any] | None) -> SolveRequestOptions:
    """Accept options as a model, a plain dict or None.

    Raises:
        ValidationError: If a recognized option has an invalid value.
    """
    if options is None:
        return SolveRequestOptions()
    if isinstance(options, SolveRequestOptions):
        return options
    return SolveRequestOptions.model_validate(options)


class Solver:
    """Completion service client with retry policy and request validation.

    Configuration (env vars, overridden by constructor arguments, which are
    in turn overridden by per-call options):
    - SOLVE_DEFAULT_PROVIDER: "openai" or "anthropic" (default: "openai")
    - SOLVE_MODEL: Model name (default: provider default)
    - SOLVE_TIMEOUT_SECONDS: Request timeout (default: 60)
    - SOLVE_MAX_RETRIES: Retries after the first attempt (default: 0)
    - SOLVE_INITIAL_DELAY_MS: First backoff delay in ms (default: 1000)
    - SOLVE_DELAY_EXPONENTIAL: Backoff multiplier (default: 2)
    - SOLVE_TEMPERATURE: Sampling temperature (default: 1.0)
    """

    DEFAULT_PROVIDER = "openai"
    DEFAULT_TIMEOUT = 60.0
    DEFAULT_MAX_RETRIES = 0
    DEFAULT_INITIAL_DELAY_MS = 1000
    DEFAULT_DELAY_EXPONENTIAL = 2
    DEFAULT_TEMPERATURE = 1.0

    def __init__(
        self,
        provider: LLMProvider | str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        initial_delay: float | None = None,
        delay_exponential: float | None = None,
        temperature: float | None = None,
        api_key: str | None = None,
    ):
        """Initialize the solver.

        Args:
            provider: Provider instance or name. Defaults to SOLVE_DEFAULT_PROVIDER.
            model: Model name. Defaults to SOLVE_MODEL, then the provider default.
            timeout: Request timeout in seconds. Defaults to SOLVE_TIMEOUT_SECONDS.
            max_retries: Retries after the first attempt. Defaults to SOLVE_MAX_RETRIES.
            initial_delay: First backoff delay in ms. Defaults to SOLVE_INITIAL_DELAY_MS.
            delay_exponential: Backoff multiplier. Defaults to SOLVE_DELAY_EXPONENTIAL.
            temperature: Sampling temperature. Defaults to SOLVE_TEMPERATURE.
            api_key: API key for a provider built by name.
        """
        self._timeout = (
            timeout
            if timeout is not None
            else float(os.environ.get("SOLVE_TIMEOUT_SECONDS", self.DEFAULT_TIMEOUT))
        )
        self._model = model or os.environ.get("SOLVE_MODEL", "")
        self._max_retries = (
            max_retries
            if max_retries is not None
            else int(os.environ.get("SOLVE_MAX_RETRIES", self.DEFAULT_MAX_RETRIES))
        )
        self._initial_delay = (
            initial_delay
            if initial_delay is not None
            else float(os.environ.get("SOLVE_INITIAL_DELAY_MS", self.DEFAULT_INITIAL_DELAY_MS))
        )
        self._delay_exponential = (
            delay_exponential
            if delay_exponential is not None
            else float(os.environ.get("SOLVE_DELAY_EXPONENTIAL", self.DEFAULT_DELAY_EXPONENTIAL))
        )
        self._temperature = (
            temperature
            if temperature is not None
            else float(os.environ.get("SOLVE_TEMPERATURE", self.DEFAULT_TEMPERATURE))
        )

        if isinstance(provider, LLMProvider):
            self._provider = provider
        else:
            self._provider = create_provider(
                provider or os.environ.get("SOLVE_DEFAULT_PROVIDER", self.DEFAULT_PROVIDER),
                api_key=api_key,
                timeout=self._timeout,
            )

    @property
    def provider(self) -> LLMProvider:
        return self._provider

    async def solve(
        self,
        request: SolveRequest,
        options: SolveRequestOptions | dict[str, Any] | None = None,
    ) -> SolveResponse:
        """Send a prompt or message list to the completion service.

        Args:
            request: A single prompt (sent as one user message) or a list of
                role/content messages.
            options: Per-call options; see ``SolveRequestOptions``.

        Returns:
            ``status=200`` with the raw text, or a failure status with an
            ``ErrorPayload``.
        """
        try:
            opts = coerce_options(options)
        except ValidationError as e:
            return SolveResponse(
                status=ResultStatus.INVALID_REQUEST,
                data=ErrorPayload(error=INVALID_REQUEST_OPTIONS, text=str(e)),
            )

        messages = self._to_messages(request)
        if messages is None:
            if opts.verbose:
                logger.error("Invalid request format: %r", type(request).__name__)
            return invalid_request_response()

        llm_request = LLMRequest(
            messages=messages,
            model=opts.model or self._model,
            temperature=opts.temperature if opts.temperature is not None else self._temperature,
            max_tokens=opts.max_tokens,
            extra_params=opts.passthrough_params,
        )

        return await self._solve_with_retry(llm_request, opts, str(uuid.uuid4()))

    @staticmethod
    def _to_messages(request: Any) -> list[ChatMessage] | None:
        """Normalize a request into messages, or None if its shape is invalid."""
        if isinstance(request, str):
            return [ChatMessage(role="user", content=request)]
        if not isinstance(request, list):
            return None
        try:
            return [
                m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m)
                for m in request
            ]
        except ValidationError:
            return None

    async def _solve_with_retry(
        self,
        request: LLMRequest,
        opts: SolveRequestOptions,
        correlation_id: str,
    ) -> SolveResponse:
        """Run the attempt loop for one call."""
        max_retries = opts.max_retries if opts.max_retries is not None else self._max_retries
        initial_delay = (
            opts.initial_delay if opts.initial_delay is not None else self._initial_delay
        )
        delay_exponential = (
            opts.delay_exponential
            if opts.delay_exponential is not None
            else self._delay_exponential
        )
        verbose = opts.verbose
        last_error: LLMError | None = None

        for attempt in range(max_retries + 1):
            if verbose:
                logger.info(
                    "Attempting request to %s (attempt %d/%d)",
                    self._provider.name,
                    attempt + 1,
                    max_retries + 1,
                    extra={
                        "correlation_id": correlation_id,
                        "provider": self._provider.name,
                        "attempt": attempt + 1,
                    },
                )

            try:
                response = await self._provider.generate(request)

            except RETRYABLE_ERRORS as e:
                last_error = e
                e.correlation_id = correlation_id

                if verbose:
                    logger.warning(
                        "Retryable error on attempt %d/%d: %s",
                        attempt + 1,
                        max_retries + 1,
                        e.message,
                        extra={
                            "correlation_id": correlation_id,
                            "provider": self._provider.name,
                            "attempt": attempt + 1,
                            "status_code": e.status_code,
                            "error_type": type(e).__name__,
                            "retry_after": e.retry_after,
                        },
                    )

                if attempt < max_retries:
                    delay_ms = initial_delay * delay_exponential**attempt
                    if verbose:
                        logger.info(
                            "Waiting %s ms before retry",
                            _format_number(delay_ms),
                            extra={"correlation_id": correlation_id},
                        )
                    await asyncio.sleep(delay_ms / 1000)
                continue

            except LLMError as e:
                if verbose:
                    logger.error(
                        "Non-retryable error from %s: %s",
                        self._provider.name,
                        e.message,
                        extra={
                            "correlation_id": correlation_id,
                            "provider": self._provider.name,
                            "status_code": e.status_code,
                            "error_type": type(e).__name__,
                        },
                    )
                return SolveResponse(
                    status=e.status_code,
                    data=ErrorPayload(
                        error=f"{self._provider.display_name} API Error",
                        text=e.message,
                    ),
                )

            if verbose:
                logger.info(
                    "Request succeeded",
                    extra={
                        "correlation_id": correlation_id,
                        "provider": response.provider,
                        "model": response.model,
                        "latency_ms": response.latency_ms,
                        "prompt_tokens": response.usage.prompt_tokens,
                        "completion_tokens": response.usage.completion_tokens,
                        "finish_reason": response.finish_reason,
                    },
                )
            return SolveResponse(status=ResultStatus.OK, data=response.text or "")

        return SolveResponse(
            status=last_error.status_code,
            data=ErrorPayload(
                error=MAX_RETRIES_REACHED,
                text=(
                    f"Exponential fail with inital delay: {_format_number(initial_delay)}, "
                    f"max reties: {max_retries} "
                    f"and delay exponential: {_format_number(delay_exponential)}"
                ),
            ),
        )


# Convenience functions for module-level access
_default_solver: Solver | None = None


def get_solver() -> Solver:
    """Get the default solver singleton (built from the environment on first use)."""
    global _default_solver
    if _default_solver is None:
        _default_solver = Solver()
    return _default_solver


def set_solver(solver: Solver | None) -> None:
    """Replace the default solver (None resets it)."""
    global _default_solver
    _default_solver = solver


async def solve(
    request: SolveRequest,
    options: SolveRequestOptions | dict[str, Any] | None = None,
) -> SolveResponse:
    """Call the completion service using the default solver."""
    return await get_solver().solve(request, options)
