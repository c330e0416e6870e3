"""Unit tests for single-shot structured queries."""

import json

import pytest
from pydantic import BaseModel

from structsolve.llm import ProviderError, RateLimitError
from structsolve.solve.solve_json import (
    SolveJsonRequest,
    Target,
    build_solve_json_messages,
    solve_json,
)


class Answer(BaseModel):
    answer: str
    confidence: float


def make_request(**overrides) -> SolveJsonRequest:
    fields = {
        "instructions": "Answer briefly.",
        "target": Target(key="question", value="What is the capital of France?"),
        "output_schema": Answer,
        "data": {"region": "Europe"},
    }
    fields.update(overrides)
    return SolveJsonRequest(**fields)


class TestBuildMessages:
    """Tests for the prompt sent by solve_json."""

    def test_single_system_message(self):
        messages = build_solve_json_messages(make_request())

        assert len(messages) == 1
        assert messages[0].role == "system"

    def test_message_content(self):
        content = json.loads(build_solve_json_messages(make_request())[0].content)

        assert list(content) == ["instructions", "outputSchema", "question", "data"]
        assert "Answer briefly." in content["instructions"]
        assert "the question" in content["instructions"]
        assert content["question"] == "What is the capital of France?"
        assert content["data"] == {"region": "Europe"}
        assert content["outputSchema"]["$ref"] == "#/$defs/Output"
        assert set(content["outputSchema"]["$defs"]["Output"]["properties"]) == {
            "answer",
            "confidence",
        }

    def test_target_key_is_configurable(self):
        request = make_request(target=Target(key="task", value="Summarize"))

        content = json.loads(build_solve_json_messages(request)[0].content)

        assert content["task"] == "Summarize"
        assert "question" not in content


class TestSolveJson:
    """Tests for the end-to-end structured query."""

    @pytest.mark.asyncio
    async def test_success(self, make_solver):
        solver = make_solver('{"answer": "Paris", "confidence": 0.9}')

        response = await solve_json(make_request(), solver=solver)

        assert response.status == 200
        assert response.data == {"answer": "Paris", "confidence": 0.9}
        assert solver.provider.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_upstream_failure_is_not_repaired(self, make_solver):
        solver = make_solver(ProviderError("Error Message", status_code=500))

        response = await solve_json(make_request(), {"max_retries": 3}, solver=solver)

        assert response.status == 500
        assert response.data.error == "OpenAI API Error"
        assert response.data.text == "Error Message"
        assert solver.provider.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_rate_limit_exhaustion(self, make_solver, mock_sleep):
        solver = make_solver(RateLimitError("Slow down"), RateLimitError("Slow down"))

        response = await solve_json(make_request(), {"max_retries": 1}, solver=solver)

        assert response.status == 429
        assert response.data.error == "MAX RETRIES REACHED"

    @pytest.mark.asyncio
    async def test_malformed_output_is_repaired(self, make_solver):
        solver = make_solver(
            "{answer: 'Paris', confidence: 0.9}",
            '{"answer": "Paris", "confidence": 0.9}',
        )

        response = await solve_json(make_request(), solver=solver)

        assert response.status == 200
        assert response.data == {"answer": "Paris", "confidence": 0.9}
        assert solver.provider.generate.call_count == 2

    @pytest.mark.asyncio
    async def test_repair_uses_safe_key(self, make_solver):
        solver = make_solver("Paris", '{"reply": "Paris"}')

        response = await solve_json(make_request(safe_key="reply"), solver=solver)

        repair_prompt = solver.provider.generate.call_args_list[1].args[0].messages[0].content
        assert '{"reply":"text..."}' in repair_prompt
        assert response.data == {"reply": "Paris"}

    @pytest.mark.asyncio
    async def test_schema_violation(self, make_solver):
        solver = make_solver('{"answer": "Paris"}')

        response = await solve_json(make_request(), solver=solver)

        assert response.status == 2
        assert response.data.error == "ZOD PARSE ERROR"
        assert solver.provider.generate.call_count == 1

    @pytest.mark.asyncio
    async def test_invalid_options(self, make_solver):
        solver = make_solver()

        response = await solve_json(make_request(), {"temperature": 5}, solver=solver)

        assert response.status == 0
        assert response.data.error == "Invalid request options"
        solver.provider.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_options_reach_the_provider(self, make_solver):
        solver = make_solver('{"answer": "Paris", "confidence": 1}')

        await solve_json(make_request(), {"model": "gpt-4o", "temperature": 0}, solver=solver)

        request = solver.provider.generate.call_args.args[0]
        assert request.model == "gpt-4o"
        assert request.temperature == 0
