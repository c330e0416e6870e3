#!/usr/bin/env python3
"""Run a structured solve against a live completion service.

Modes:
- prompt: plain call-with-retry, prints the raw text
- json:   single structured query (question -> {answer, confidence})
- chat:   structured reply to a short conversation

API keys are read from the environment (or a .env file):
OPENAI_API_KEY / ANTHROPIC_API_KEY, plus the SOLVE_* solver settings.

Usage:
    python scripts/run_solve.py prompt "Say hi"
    python scripts/run_solve.py json "What is the capital of France?" --provider anthropic
    python scripts/run_solve.py chat "Hi, I'm Sam" --max-retries 3 -v
"""

import argparse
import asyncio
import json
import logging
import sys

from dotenv import load_dotenv
from pydantic import BaseModel

from structsolve.solve import (
    SolveChatRequest,
    SolveJsonRequest,
    Solver,
    Target,
    UserTurn,
    count_chat_tokens,
    solve_chat,
    solve_json,
)
from structsolve.solve.solve_json import build_solve_json_messages

load_dotenv()


class Answer(BaseModel):
    answer: str
    confidence: float


class Reply(BaseModel):
    message: str
    mood: str


async def run(args: argparse.Namespace) -> int:
    solver = Solver(provider=args.provider, model=args.model)
    options = {"verbose": args.verbose}
    if args.max_retries is not None:
        options["max_retries"] = args.max_retries

    if args.mode == "prompt":
        response = await solver.solve(args.text, options)
    elif args.mode == "json":
        request = SolveJsonRequest(
            instructions="Answer briefly and rate your confidence from 0 to 1.",
            target=Target(key="question", value=args.text),
            output_schema=Answer,
        )
        print(f"Prompt tokens: ~{count_chat_tokens(build_solve_json_messages(request))}")
        response = await solve_json(request, options, solver=solver)
    else:
        request = SolveChatRequest(
            instructions="You are a friendly assistant. Reply and describe your mood in one word.",
            messages=[UserTurn(message=args.text)],
            output_schema=Reply,
        )
        response = await solve_chat(request, options, solver=solver)

    print("=" * 70)
    print(f"Status: {response.status}")
    if response.ok:
        data = response.data
        print(data if isinstance(data, str) else json.dumps(data, indent=2))
    else:
        print(f"Error: {response.data}")
    print("=" * 70)

    return 0 if response.ok else 1


def main():
    parser = argparse.ArgumentParser(
        description="Run a structured solve against a live completion service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("mode", choices=["prompt", "json", "chat"], help="What to run")
    parser.add_argument("text", help="Prompt, question or user message")
    parser.add_argument("--provider", choices=["openai", "anthropic"],
                        help="Completion service (default: SOLVE_DEFAULT_PROVIDER or openai)")
    parser.add_argument("--model", help="Model override")
    parser.add_argument("--max-retries", type=int, help="Rate-limit retries")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Log attempts, retries and failures")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
