"""Structured response resolution.

Raw text from a successful call goes through:

1. parse (``json.loads``),
2. validate against the caller's schema, when parsing succeeded,
3. repair, when parsing failed: one extra call asking the model to fix its
   own output, followed by a second parse.

Schema violations are final and never repaired. Repaired output is only
parsed, not validated, unless ``revalidate_repair`` is requested.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from .options import SolveRequestOptions
from .responses import (
    REPAIR_PARSE_ERROR,
    REPAIR_SOLVE_ERROR,
    SCHEMA_PARSE_ERROR,
    ResultStatus,
    SolveJsonResponse,
    SolveResponse,
    handle_error,
)
from .schema import get_type_adapter
from .solver import Solver, get_solver

logger = logging.getLogger(__name__)

DEFAULT_SAFE_KEY = "text"

PARSE_ERROR_PROMPT = """
###INSTRUCTIONS:
An error was caught while trying to parse JSON from text. The text may contain a JSON string: read the error and correct it without modifying the content.
If the text does not contain a JSON string please return it like this "{{"{safe_key}":"text..."}}". Make sure to escape all line breaks and bad characters!

###ERROR:
{error}

###TEXT:
{text}
"""


async def solve_parse_error(
    text: str,
    error: str,
    safe_key: str = DEFAULT_SAFE_KEY,
    options: SolveRequestOptions | None = None,
    solver: Solver | None = None,
) -> SolveResponse:
    """Ask the model to turn ``text`` into valid JSON.

    Args:
        text: The output that failed to parse.
        error: The parse error message.
        safe_key: Key used to wrap text that holds no JSON at all.
        options: Options for the repair call.
        solver: Solver to use. Defaults to the module-level solver.
    """
    prompt = PARSE_ERROR_PROMPT.format(safe_key=safe_key, error=error, text=text)
    return await (solver or get_solver()).solve(prompt, options)


def schema_parse(
    value: Any,
    text: str,
    schema: Any,
    verbose: bool = False,
) -> SolveJsonResponse:
    """Validate already-decoded ``value`` (from ``text``) against ``schema``.

    Validation runs on the JSON text in strict mode, so a JSON string is not
    accepted where the schema wants a number.
    """
    try:
        get_type_adapter(schema).validate_json(text, strict=True)
    except ValidationError as e:
        return handle_error(ResultStatus.SCHEMA_VALIDATION_FAILED, SCHEMA_PARSE_ERROR, str(e), verbose)
    return SolveJsonResponse(status=ResultStatus.OK, data=value)


async def handle_parse_error(
    text: str,
    error: str,
    schema: Any,
    verbose: bool = False,
    safe_key: str | None = None,
    *,
    options: SolveRequestOptions | None = None,
    solver: Solver | None = None,
) -> SolveJsonResponse:
    """Run the single repair round-trip for unparseable output."""
    if verbose:
        logger.warning("PARSE ERROR %s: %s", error, text)

    solved = await solve_parse_error(
        text, error, safe_key or DEFAULT_SAFE_KEY, options=options, solver=solver
    )

    if verbose:
        logger.info("Repair call finished with status %s", solved.status)

    if not solved.ok:
        return handle_error(solved.status, REPAIR_SOLVE_ERROR, solved.data.model_dump_json(), verbose)

    try:
        value = json.loads(solved.data)
    except json.JSONDecodeError as e:
        return handle_error(ResultStatus.PARSE_REPAIR_FAILED, REPAIR_PARSE_ERROR, str(e), verbose)

    if options is not None and options.revalidate_repair:
        return schema_parse(value, solved.data, schema, verbose)

    return SolveJsonResponse(status=ResultStatus.OK, data=value)


async def full_parse(
    text: str,
    schema: Any,
    verbose: bool = False,
    safe_key: str | None = None,
    *,
    options: SolveRequestOptions | None = None,
    solver: Solver | None = None,
) -> SolveJsonResponse:
    """Resolve raw model output into schema-checked data.

    Args:
        text: Raw text from a successful call.
        schema: Validation type (see ``structsolve.solve.schema``).
        verbose: Log diagnostics.
        safe_key: Key used by the repair call to wrap non-JSON text.
        options: Options forwarded to the repair call.
        solver: Solver for the repair call. Defaults to the module-level solver.

    Returns:
        ``status=200`` with the decoded value, or a normalized failure.
    """
    try:
        value = json.loads(text)
    except json.JSONDecodeError as e:
        return await handle_parse_error(
            text, str(e), schema, verbose, safe_key, options=options, solver=solver
        )

    return schema_parse(value, text, schema, verbose)
