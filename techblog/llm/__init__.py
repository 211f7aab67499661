"""LLM adapter layer: OpenAI and Anthropic behind a common protocol."""

from techblog.llm.anthropic_provider import AnthropicProvider
from techblog.llm.base import LLMProvider
from techblog.llm.openai_provider import OpenAIProvider


def get_provider(provider_name: str, **kwargs: object) -> LLMProvider:
    """Return the configured LLM provider. provider_name: 'openai' | 'anthropic'."""
    if provider_name.lower() == "anthropic":
        return AnthropicProvider(**kwargs)
    return OpenAIProvider(**kwargs)


__all__ = ["LLMProvider", "OpenAIProvider", "AnthropicProvider", "get_provider"]
