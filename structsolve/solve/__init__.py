"""Structured-response resolution pipeline.

Request builders (``solve_json``, ``solve_chat``) send schema-aware prompts
through the call-with-retry primitive (``solve``) and resolve the raw text
into schema-checked data, repairing malformed JSON with one extra call.
"""

from .conversation import AssistantTurn, Conversation, SystemTurn, Turn, UserTurn
from .options import SolveRequestOptions
from .resolver import full_parse, handle_parse_error, solve_parse_error
from .responses import (
    ErrorPayload,
    ResultStatus,
    SolveJsonResponse,
    SolveResponse,
    handle_error,
    is_internal_status,
)
from .schema import get_json_schema, get_type_adapter
from .solve_chat import SolveChatRequest, format_messages, solve_chat
from .solve_json import SolveJsonRequest, Target, solve_json
from .solver import SolveRequest, Solver, get_solver, set_solver, solve
from .tokens import count_chat_tokens, get_encoder

__all__ = [
    "Solver",
    "SolveRequest",
    "SolveRequestOptions",
    "SolveResponse",
    "SolveJsonResponse",
    "ErrorPayload",
    "ResultStatus",
    "is_internal_status",
    "get_solver",
    "set_solver",
    "solve",
    "solve_json",
    "SolveJsonRequest",
    "Target",
    "solve_chat",
    "SolveChatRequest",
    "format_messages",
    "Conversation",
    "Turn",
    "SystemTurn",
    "UserTurn",
    "AssistantTurn",
    "full_parse",
    "handle_parse_error",
    "solve_parse_error",
    "handle_error",
    "get_json_schema",
    "get_type_adapter",
    "count_chat_tokens",
    "get_encoder",
]
