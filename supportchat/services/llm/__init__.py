from typing import Dict, Type

from ...config import Settings
from ...errors import ConfigurationError
from .base import BaseLLM
from .anthropic import AnthropicLLM
from .openai import OpenAILLM

PROVIDERS: Dict[str, Type[BaseLLM]] = {
    AnthropicLLM.provider: AnthropicLLM,
    OpenAILLM.provider: OpenAILLM,
}


def create_llm(settings: Settings) -> BaseLLM:
    """Build the single configured LLM backend."""
    provider = settings.llm_provider.strip().lower()
    llm_class = PROVIDERS.get(provider)
    if llm_class is None:
        raise ConfigurationError(
            f"Unsupported LLM provider: {settings.llm_provider!r} "
            f"(expected one of: {', '.join(sorted(PROVIDERS))})"
        )
    if not settings.llm_api_key:
        raise ConfigurationError("LLM_API_KEY is required in environment variables")
    return llm_class(
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
    )


__all__ = ["BaseLLM", "AnthropicLLM", "OpenAILLM", "PROVIDERS", "create_llm"]
