"""Multi-turn structured chat."""

import json
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from structsolve.llm import ChatMessage

from .conversation import AssistantTurn, SystemTurn, Turn, UserTurn, parse_conversation, turn_content
from .options import SolveRequestOptions
from .responses import INVALID_REQUEST_OPTIONS, ResultStatus, SolveJsonResponse, handle_error
from .schema import get_json_schema
from .solve_json import resolve_solved
from .solver import Solver, coerce_options, get_solver

SOLVE_CHAT_INSTRUCTIONS = (
    "Read the data, the conversation and use your knowledge to respond to it following "
    "these instructions and the outputSchema. {instructions} \n\n Your output must be a json "
    "based on outputSchema. Your output will be parsed to JSON so do not output plain text!"
)

SCHEMA_REMINDER = {"important": "Dont forget to output following the outputSchema!"}


class SolveChatRequest(BaseModel):
    """A structured reply to a conversation.

    Attributes:
        instructions: Persona / task instructions for the model.
        messages: The conversation so far.
        output_schema: Validation type for the reply.
        custom: Extra data for the system preamble, passed through as-is.
        safe_key: Key used to wrap non-JSON output during repair.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    instructions: str
    messages: list[Turn]
    output_schema: Any
    custom: dict[str, Any] = Field(default_factory=dict)
    safe_key: str | None = None


def format_messages(
    conversation: list[SystemTurn | UserTurn | AssistantTurn | dict[str, Any]],
) -> list[ChatMessage]:
    """Turn a conversation into messages, one per turn, in order.

    The content of each message is the turn without its role, as JSON. The
    last user turn also carries a reminder to follow the output schema.
    The input is not modified.
    """
    turns = parse_conversation(conversation)

    last_user_index = next(
        (i for i in range(len(turns) - 1, -1, -1) if isinstance(turns[i], UserTurn)),
        None,
    )

    messages = []
    for index, turn in enumerate(turns):
        content = turn_content(turn)
        if index == last_user_index:
            content = {**content, **SCHEMA_REMINDER}
        messages.append(ChatMessage(role=turn.role, content=json.dumps(content, default=str)))
    return messages


def build_solve_chat_messages(request: SolveChatRequest) -> list[ChatMessage]:
    """System preamble followed by the formatted conversation."""
    preamble = {
        "instructions": SOLVE_CHAT_INSTRUCTIONS.format(instructions=request.instructions),
        "outputSchema": get_json_schema(request.output_schema),
        "data": {**request.custom},
    }
    return [
        ChatMessage(role="system", content=json.dumps(preamble, default=str)),
        *format_messages(request.messages),
    ]


async def solve_chat(
    request: SolveChatRequest,
    options: SolveRequestOptions | dict[str, Any] | None = None,
    *,
    solver: Solver | None = None,
) -> SolveJsonResponse:
    """Produce the next structured reply in a conversation.

    Args:
        request: Conversation, instructions and output schema.
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
    solved = await solver.solve(build_solve_chat_messages(request), opts)

    return await resolve_solved(solved, request.output_schema, request.safe_key, opts, solver)
