"""Single-shot structured queries."""

import json
import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from structsolve.llm import ChatMessage

from .options import SolveRequestOptions
from .resolver import full_parse
from .responses import (
    INVALID_REQUEST_OPTIONS,
    ResultStatus,
    SolveJsonResponse,
    SolveResponse,
    handle_error,
)
from .schema import get_json_schema
from .solver import Solver, coerce_options, get_solver

logger = logging.getLogger(__name__)

SOLVE_JSON_INSTRUCTIONS = (
    "Read the data, the {target_key} and use your knowledge to respond to it following "
    "these instructions and the outputSchema. {instructions} \n\n Your output must be a json "
    "following the exact outputSchema. IMPORTANT: Your output will be parsed to JSON so do "
    "not output plain text!"
)


class Target(BaseModel):
    """The key/value pair the model is asked to respond to."""

    key: str
    value: str


class SolveJsonRequest(BaseModel):
    """A structured query.

    Attributes:
        instructions: Task instructions for the model.
        target: The question (or other item) to answer, sent under ``target.key``.
        output_schema: Validation type for the answer.
        data: Supporting data, passed through as-is.
        safe_key: Key used to wrap non-JSON output during repair.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    instructions: str
    target: Target
    output_schema: Any
    data: dict[str, Any] = Field(default_factory=dict)
    safe_key: str | None = None


def build_solve_json_messages(request: SolveJsonRequest) -> list[ChatMessage]:
    """Build the single system message sent for a structured query."""
    content = {
        "instructions": SOLVE_JSON_INSTRUCTIONS.format(
            target_key=request.target.key,
            instructions=request.instructions,
        ),
        "outputSchema": get_json_schema(request.output_schema),
        request.target.key: request.target.value,
        "data": request.data,
    }
    return [ChatMessage(role="system", content=json.dumps(content, default=str))]


async def resolve_solved(
    solved: SolveResponse,
    output_schema: Any,
    safe_key: str | None,
    opts: SolveRequestOptions,
    solver: Solver,
) -> SolveJsonResponse:
    """Shared post-processing for the request builders."""
    if solved.ok:
        return await full_parse(
            solved.data,
            output_schema,
            opts.verbose,
            safe_key,
            options=opts,
            solver=solver,
        )

    if opts.verbose:
        logger.error("SOLVE ERROR %s", solved.data.model_dump())
    return handle_error(solved.status, solved.data.error, solved.data.text, opts.verbose)


async def solve_json(
    request: SolveJsonRequest,
    options: SolveRequestOptions | dict[str, Any] | None = None,
    *,
    solver: Solver | None = None,
) -> SolveJsonResponse:
    """Answer a single structured query.

    Args:
        request: The query.
        options: Per-call options.
        solver: Solver to use. Defaults to the module-level solver.

    Returns:
        ``status=200`` with data matching ``request.output_schema``, or a
        normalized failure.
    """
    try:
        opts = coerce_options(options)
    except ValidationError as e:
        return handle_error(ResultStatus.INVALID_REQUEST, INVALID_REQUEST_OPTIONS, str(e))

    solver = solver or get_solver()
    solved = await solver.solve(build_solve_json_messages(request), opts)

    return await resolve_solved(solved, request.output_schema, request.safe_key, opts, solver)
