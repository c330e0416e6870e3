"""Token counting for prompt budgeting.

The encoder is built on first use and shared by the whole process. It is
read-only after construction and safe to use from concurrent calls.
"""

from collections.abc import Iterable
from functools import lru_cache
from typing import Any

import tiktoken

from structsolve.llm import ChatMessage

ENCODING_MODEL = "gpt-3.5-turbo"

# Per-message and per-reply overhead of the chat format
TOKENS_PER_MESSAGE = 5
TOKENS_PER_REPLY = 3


@lru_cache(maxsize=1)
def get_encoder() -> tiktoken.Encoding:
    """Return the shared encoder."""
    return tiktoken.encoding_for_model(ENCODING_MODEL)


def count_chat_tokens(messages: Iterable[ChatMessage | dict[str, Any]]) -> int:
    """Estimate the prompt tokens used by ``messages``."""
    contents = [
        m.content if isinstance(m, ChatMessage) else str(m["content"]) for m in messages
    ]
    tokens = get_encoder().encode(" ".join(contents))
    return len(tokens) + len(contents) * TOKENS_PER_MESSAGE + TOKENS_PER_REPLY
