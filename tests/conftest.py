"""Pytest fixtures for testing."""

import os
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest

from structsolve.llm import LLMProvider, LLMResponse, Usage
from structsolve.solve import solver as solver_module
from structsolve.solve.solver import Solver

SOLVE_ENV_VARS = (
    "SOLVE_DEFAULT_PROVIDER",
    "SOLVE_MODEL",
    "SOLVE_TIMEOUT_SECONDS",
    "SOLVE_MAX_RETRIES",
    "SOLVE_INITIAL_DELAY_MS",
    "SOLVE_DELAY_EXPONENTIAL",
    "SOLVE_TEMPERATURE",
)


def create_mock_response(text: str | None = "Test response") -> LLMResponse:
    """Create a mock LLMResponse for testing."""
    return LLMResponse(
        text=text,
        finish_reason="stop",
        usage=Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        model="test-model",
        provider="openai",
        latency_ms=100,
    )


@pytest.fixture(autouse=True)
def isolated_environment() -> Generator[None, None, None]:
    """Drop solver env vars and the default solver around each test."""
    env = {k: v for k, v in os.environ.items() if k not in SOLVE_ENV_VARS}
    with patch.dict(os.environ, env, clear=True):
        solver_module.set_solver(None)
        yield
        solver_module.set_solver(None)


@pytest.fixture
def make_response() -> Callable[..., LLMResponse]:
    """Factory for successful provider responses."""
    return create_mock_response


@pytest.fixture
def make_provider() -> Callable[..., AsyncMock]:
    """Factory for a fake provider.

    Each positional argument is one ``generate`` outcome: a string becomes a
    successful response with that text, an exception is raised.
    """

    def _make(*outcomes: Any) -> AsyncMock:
        provider = AsyncMock(spec=LLMProvider)
        provider.name = "openai"
        provider.display_name = "OpenAI"
        provider.generate = AsyncMock(
            side_effect=[
                create_mock_response(o) if isinstance(o, str) else o for o in outcomes
            ]
        )
        return provider

    return _make


@pytest.fixture
def make_solver(make_provider) -> Callable[..., Solver]:
    """Factory for a Solver backed by a fake provider (``solver.provider``)."""

    def _make(*outcomes: Any, **kwargs: Any) -> Solver:
        return Solver(provider=make_provider(*outcomes), **kwargs)

    return _make


@pytest.fixture
def mock_sleep() -> Generator[AsyncMock, None, None]:
    """Skip backoff delays and record them."""
    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep
