"""Typed, schema-validated requests over an unreliable completion service."""

from .solve import (
    AssistantTurn,
    Conversation,
    ErrorPayload,
    ResultStatus,
    SolveChatRequest,
    SolveJsonRequest,
    SolveJsonResponse,
    SolveRequest,
    SolveRequestOptions,
    SolveResponse,
    Solver,
    SystemTurn,
    Target,
    UserTurn,
    count_chat_tokens,
    full_parse,
    get_json_schema,
    get_solver,
    solve,
    solve_chat,
    solve_json,
)

__all__ = [
    "Solver",
    "SolveRequest",
    "SolveRequestOptions",
    "SolveResponse",
    "SolveJsonResponse",
    "ErrorPayload",
    "ResultStatus",
    "get_solver",
    "solve",
    "solve_json",
    "SolveJsonRequest",
    "Target",
    "solve_chat",
    "SolveChatRequest",
    "Conversation",
    "SystemTurn",
    "UserTurn",
    "AssistantTurn",
    "full_parse",
    "get_json_schema",
    "count_chat_tokens",
]
