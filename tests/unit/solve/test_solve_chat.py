"""Unit tests for multi-turn structured chat.

Tests cover:
- Turn formatting and the output-schema reminder
- The system preamble
- End-to-end chat solving through a fake provider
"""

import json

import pytest
from pydantic import BaseModel, ValidationError

from structsolve.llm import ProviderError
from structsolve.solve.conversation import AssistantTurn, SystemTurn, UserTurn
from structsolve.solve.solve_chat import (
    SCHEMA_REMINDER,
    SolveChatRequest,
    build_solve_chat_messages,
    format_messages,
    solve_chat,
)


class Reply(BaseModel):
    message: str


def contents(messages):
    return [json.loads(m.content) for m in messages]


class TestFormatMessages:
    """Tests for conversation formatting."""

    def test_reminder_only_on_last_user_turn(self):
        conversation = [
            UserTurn(message="Hi", data={"mood": "happy"}),
            AssistantTurn(message="Hello!"),
            UserTurn(message="How are you?"),
            AssistantTurn(action={"type": "wave"}),
        ]

        messages = format_messages(conversation)

        assert [m.role for m in messages] == ["user", "assistant", "user", "assistant"]
        assert contents(messages) == [
            {"message": "Hi", "data": {"mood": "happy"}},
            {"message": "Hello!"},
            {"message": "How are you?", "data": {}, **SCHEMA_REMINDER},
            {"action": {"type": "wave"}},
        ]

    def test_no_user_turn_means_no_reminder(self):
        messages = format_messages([AssistantTurn(message="Welcome")])

        assert contents(messages) == [{"message": "Welcome"}]

    def test_system_turn_keeps_arbitrary_fields(self):
        messages = format_messages([SystemTurn(topic="weather", lang="en")])

        assert messages[0].role == "system"
        assert contents(messages) == [{"topic": "weather", "lang": "en"}]

    def test_assistant_turn_with_message_and_action(self):
        messages = format_messages(
            [AssistantTurn(message="Done", action={"type": "save", "id": 3})]
        )

        assert contents(messages) == [{"message": "Done", "action": {"type": "save", "id": 3}}]

    def test_dict_turns_are_accepted(self):
        messages = format_messages(
            [
                {"role": "system", "note": "be brief"},
                {"role": "user", "message": "Hey"},
            ]
        )

        assert [m.role for m in messages] == ["system", "user"]
        assert contents(messages)[1] == {"message": "Hey", "data": {}, **SCHEMA_REMINDER}

    def test_input_is_not_modified(self):
        turn = UserTurn(message="Hi", data={"a": 1})
        conversation = [turn]

        format_messages(conversation)

        assert conversation == [turn]
        assert turn.data == {"a": 1}
        assert "important" not in turn.model_dump()

    def test_extra_turn_fields_are_kept(self):
        messages = format_messages(
            [
                {"role": "user", "message": "hi", "data": {}, "name": "Sam"},
                {"role": "assistant", "message": "yo", "mood": "happy"},
                AssistantTurn(action={"type": "nod"}, note=None),
            ]
        )

        assert contents(messages) == [
            {"message": "hi", "data": {}, "name": "Sam", **SCHEMA_REMINDER},
            {"message": "yo", "mood": "happy"},
            {"action": {"type": "nod"}, "note": None},
        ]

    def test_empty_conversation(self):
        assert format_messages([]) == []

    def test_unknown_role_rejected(self):
        with pytest.raises(ValidationError):
            format_messages([{"role": "tool", "message": "72F"}])


class TestBuildMessages:
    """Tests for the full prompt sent by solve_chat."""

    def test_preamble_then_conversation(self):
        request = SolveChatRequest(
            instructions="You are a friendly bot.",
            messages=[UserTurn(message="Hi")],
            output_schema=Reply,
            custom={"user_name": "Sam"},
        )

        messages = build_solve_chat_messages(request)

        assert [m.role for m in messages] == ["system", "user"]
        preamble = json.loads(messages[0].content)
        assert list(preamble) == ["instructions", "outputSchema", "data"]
        assert "You are a friendly bot." in preamble["instructions"]
        assert preamble["data"] == {"user_name": "Sam"}
        assert preamble["outputSchema"]["$defs"]["Output"]["required"] == ["message"]

    def test_request_accepts_dict_turns(self):
        request = SolveChatRequest(
            instructions="",
            messages=[{"role": "user", "message": "Hi"}],
            output_schema=Reply,
        )

        assert isinstance(request.messages[0], UserTurn)


class TestSolveChat:
    """Tests for end-to-end chat solving."""

    @pytest.mark.asyncio
    async def test_success(self, make_solver):
        solver = make_solver('{"message": "Hello Sam!"}')
        request = SolveChatRequest(
            instructions="Greet the user.",
            messages=[UserTurn(message="Hi")],
            output_schema=Reply,
        )

        response = await solve_chat(request, solver=solver)

        assert response.status == 200
        assert response.data == {"message": "Hello Sam!"}
        sent = solver.provider.generate.call_args.args[0].messages
        assert len(sent) == 2

    @pytest.mark.asyncio
    async def test_upstream_failure(self, make_solver):
        solver = make_solver(ProviderError("Error Message", status_code=500))
        request = SolveChatRequest(
            instructions="Greet the user.",
            messages=[UserTurn(message="Hi")],
            output_schema=Reply,
        )

        response = await solve_chat(request, {"max_retries": 2}, solver=solver)

        assert response.status == 500
        assert str(response.data) == "OpenAI API Error: Error Message"
        assert solver.provider.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_options(self, make_solver):
        solver = make_solver()
        request = SolveChatRequest(
            instructions="Greet the user.",
            messages=[UserTurn(message="Hi")],
            output_schema=Reply,
        )

        response = await solve_chat(request, {"max_tokens": 0}, solver=solver)

        assert response.status == 0
        assert response.data.error == "Invalid request options"
        solver.provider.generate.assert_not_called()
