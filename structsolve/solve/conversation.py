"""Conversation turn types for chat solving.

A conversation is an ordered list of role-tagged turns. Turns are a tagged
union on ``role``; plain dicts are validated into the matching variant.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class SystemTurn(BaseModel):
    """A system turn carrying arbitrary key/value data."""

    model_config = ConfigDict(extra="allow")

    role: Literal["system"] = "system"


class UserTurn(BaseModel):
    """A user turn: the message plus free-form data."""

    model_config = ConfigDict(extra="allow")

    role: Literal["user"] = "user"
    message: str
    data: dict[str, Any] = Field(default_factory=dict)


class AssistantTurn(BaseModel):
    """An assistant turn carrying a message, an action, or both."""

    model_config = ConfigDict(extra="allow")

    role: Literal["assistant"] = "assistant"
    message: str | None = None
    action: dict[str, Any] | None = None


Turn = Annotated[Union[SystemTurn, UserTurn, AssistantTurn], Field(discriminator="role")]

Conversation = list[Turn]

_conversation_adapter = TypeAdapter(Conversation)


def parse_conversation(turns: list[Turn | dict[str, Any]]) -> list[SystemTurn | UserTurn | AssistantTurn]:
    """Validate a list of turns or dicts into typed turns, keeping order."""
    return _conversation_adapter.validate_python(
        [t.model_dump() if isinstance(t, BaseModel) else t for t in turns]
    )


def turn_content(turn: SystemTurn | UserTurn | AssistantTurn) -> dict[str, Any]:
    """Everything in a turn except its role, as JSON-ready data.

    Raises:
        TypeError: For an object that is not a conversation turn.
    """
    if isinstance(turn, (SystemTurn, UserTurn)):
        return turn.model_dump(exclude={"role"})
    if isinstance(turn, AssistantTurn):
        # Unset message/action are left out; extra fields are kept as given
        unset = {k for k in ("message", "action") if getattr(turn, k) is None}
        return turn.model_dump(exclude={"role", *unset})
    raise TypeError(f"Unknown conversation turn: {type(turn).__name__}")
