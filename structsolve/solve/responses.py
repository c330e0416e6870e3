"""Result types shared by every solve operation.

Every public operation returns ``{status, data}``. ``status`` carries two
numberspaces:

- ``0``, ``1`` and ``2`` are raised by this pipeline (see ``ResultStatus``),
- ``200`` is success,
- anything else is the upstream completion service's HTTP-like code.
"""

import logging
from enum import IntEnum
from typing import Any

from pydantic import BaseModel

logger = logging.getLogger(__name__)

# Status codes below this value are produced locally, never by the service
INTERNAL_STATUS_LIMIT = 3

# Error tags (part of the response contract)
INVALID_REQUEST_FORMAT = "Invalid request format"
INVALID_REQUEST_OPTIONS = "Invalid request options"
MAX_RETRIES_REACHED = "MAX RETRIES REACHED"
SCHEMA_PARSE_ERROR = "ZOD PARSE ERROR"
REPAIR_PARSE_ERROR = "ERROR PARSING HANDLED PARSE ERROR"
REPAIR_SOLVE_ERROR = "ERROR SOLVING HANDLED PARSE ERROR"


class ResultStatus(IntEnum):
    """Pipeline-internal status codes plus success."""

    INVALID_REQUEST = 0
    PARSE_REPAIR_FAILED = 1
    SCHEMA_VALIDATION_FAILED = 2
    OK = 200


def is_internal_status(status: int) -> bool:
    """True for codes produced by this pipeline rather than the service."""
    return status < INTERNAL_STATUS_LIMIT


class ErrorPayload(BaseModel):
    """Failure body: a fixed error tag plus a human readable text."""

    error: str
    text: str

    def __str__(self) -> str:
        return f"{self.error}: {self.text}"


class _StatusMixin:
    """Helpers that keep the two status numberspaces apart."""

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    @property
    def is_internal_error(self) -> bool:
        return not self.ok and is_internal_status(self.status)

    @property
    def is_upstream_error(self) -> bool:
        return not self.ok and not is_internal_status(self.status)

    @property
    def error(self) -> ErrorPayload | None:
        """The failure payload, or None on success."""
        return None if self.ok else self.data


class SolveResponse(_StatusMixin, BaseModel):
    """Result of a single call-with-retry: raw text on success."""

    status: int
    data: str | ErrorPayload


class SolveJsonResponse(_StatusMixin, BaseModel):
    """Result of a structured solve: the decoded output on success."""

    status: int
    data: Any


def handle_error(status: int, error: str, message: str, verbose: bool = False) -> SolveJsonResponse:
    """Normalize any failure exit into the uniform response shape."""
    if verbose:
        logger.error(
            "STATUS: %s ERROR: %s: %s",
            status,
            error,
            message,
            extra={"status_code": status, "error_tag": error},
        )
    return SolveJsonResponse(status=status, data=ErrorPayload(error=error, text=message))
