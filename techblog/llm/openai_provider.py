"""OpenAI LLM implementation with structured output via JSON mode."""

from typing import Any

from openai import OpenAI

from techblog.llm.base import JSON_INSTRUCTION, T, parse_structured


class OpenAIProvider:
    """OpenAI chat completion with optional structured (JSON) output."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "gpt-4o",
    ):
        self._client = OpenAI(api_key=api_key)
        self._model = model

    def complete(self, prompt: str, **kwargs: Any) -> str:
        # OpenAI exceptions propagate as-is; callers decide whether to degrade or fail
        system = kwargs.pop("system", None)
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        response = self._client.chat.completions.create(
            model=kwargs.pop("model", None) or self._model,
            messages=messages,
            **kwargs,
        )
        msg = response.choices[0].message
        return msg.content or ""

    def complete_structured(self, prompt: str, schema: type[T], **kwargs: Any) -> T:
        raw = self.complete(
            f"{prompt}\n\n{JSON_INSTRUCTION}",
            response_format={"type": "json_object"},
            **kwargs,
        )
        return parse_structured(raw, schema)
