"""Per-call request options."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SolveRequestOptions(BaseModel):
    """Options accepted by every solve operation.

    Unset values fall back to the ``Solver`` defaults. Keys not declared here
    (``top_p``, ``presence_penalty``, ...) are forwarded to the completion
    service untouched.
    """

    model_config = ConfigDict(extra="allow")

    verbose: bool = False
    model: str | None = None
    temperature: float | None = Field(default=None, ge=0.0, le=2.0)
    max_tokens: int | None = Field(default=None, gt=0)
    max_retries: int | None = Field(default=None, ge=0)
    initial_delay: int | float | None = Field(default=None, ge=0)  # milliseconds
    delay_exponential: int | float | None = Field(default=None, ge=0)
    # Re-check repaired output against the schema (off by default)
    revalidate_repair: bool = False

    @property
    def passthrough_params(self) -> dict[str, Any]:
        """Undeclared keys, forwarded to the provider as-is."""
        return dict(self.model_extra or {})
