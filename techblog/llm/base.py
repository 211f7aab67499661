"""LLM provider protocol and shared response parsing."""

import json
import re
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

T = TypeVar("T", bound=BaseModel)

JSON_INSTRUCTION = (
    "Respond with a single JSON object only. No markdown, no code fence, no explanation."
)


class LLMProvider(Protocol):
    """Protocol for LLM backends (OpenAI, Anthropic).

    Both methods accept ``system`` (system prompt), ``temperature`` and
    ``max_tokens`` keyword arguments.
    """

    def complete(self, prompt: str, **kwargs: Any) -> str:
        """Return raw text completion."""
        ...

    def complete_structured(self, prompt: str, schema: type[T], **kwargs: Any) -> T:
        """Return completion parsed into the given Pydantic model (JSON)."""
        ...


def strip_code_fence(raw: str) -> str:
    text = raw.strip()
    if text.startswith("```"):
        text = re.sub(r"^```\w*\n?", "", text)
        text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


def parse_structured(raw: str, schema: type[T]) -> T:
    data = json.loads(strip_code_fence(raw))
    return schema.model_validate(data)
