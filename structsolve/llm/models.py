"""Completion service data models.

Vendor-neutral request and response models for the completion service.
These models abstract away provider-specific details.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field


class ChatMessage(BaseModel):
    """A single role-tagged message sent to the completion service."""

    role: Literal["system", "user", "assistant"]
    content: str


class LLMRequest(BaseModel):
    """Vendor-neutral completion request."""

    messages: list[ChatMessage]
    model: str = ""  # empty means the provider default
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    max_tokens: int | None = None
    # Model-tuning parameters forwarded to the provider uninterpreted
    extra_params: dict[str, Any] = Field(default_factory=dict)


class Usage(BaseModel):
    """Token usage statistics."""

    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class LLMResponse(BaseModel):
    """Vendor-neutral completion response."""

    text: str | None
    finish_reason: str
    usage: Usage
    model: str
    provider: str
    latency_ms: int
    request_id: str | None = None
