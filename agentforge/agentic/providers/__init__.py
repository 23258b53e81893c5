"""
Model Provider Adapters
=======================

One adapter per vendor, all behind ``ModelProvider``:

    openai     POST {base}/chat/completions
    anthropic  POST {base}/messages
    google     POST {base}/models/{model}:generateContent
    litellm    OpenAI protocol against a LiteLLM gateway (via pydantic-ai)

``select_provider`` picks the vendor from the model name; ``create_provider``
builds the adapter with the request's key, falling back to the environment.
"""

import httpx

from agentforge.agentic.providers.anthropic import AnthropicProvider
from agentforge.agentic.providers.base import (
    LITELLM_PREFIXES,
    ModelProvider,
    ProviderKind,
    RunConfig,
    select_provider,
    split_words,
)
from agentforge.agentic.providers.google import GoogleProvider
from agentforge.agentic.providers.litellm import LiteLLMProvider, format_model_for_litellm
from agentforge.agentic.providers.openai import OpenAIProvider
from agentforge.errors import MissingAPIKeyError
from agentforge.settings import LiteLLMSettings, LLMSettings, settings

PROVIDER_CLASSES: dict[ProviderKind, type[ModelProvider]] = {
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.ANTHROPIC: AnthropicProvider,
    ProviderKind.GOOGLE: GoogleProvider,
    ProviderKind.LITELLM: LiteLLMProvider,
}


def resolve_api_key(
    kind: ProviderKind,
    api_key: str | None,
    llm_settings: LLMSettings | None = None,
) -> str | None:
    """Request key first, then the vendor key from the environment."""
    if api_key:
        return api_key
    llm_settings = llm_settings or settings.llm
    env_keys = {
        ProviderKind.OPENAI: llm_settings.openai_api_key,
        ProviderKind.ANTHROPIC: llm_settings.anthropic_api_key,
        ProviderKind.GOOGLE: llm_settings.google_api_key,
    }
    return env_keys.get(kind)


def create_provider(
    kind: ProviderKind,
    api_key: str | None = None,
    base_url: str | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    llm_settings: LLMSettings | None = None,
    litellm_settings: LiteLLMSettings | None = None,
) -> ModelProvider:
    """
    Build the adapter for ``kind``.

    Raises:
        MissingAPIKeyError: no key in the request or the environment
            (the LiteLLM gateway accepts a placeholder key)
    """
    key = resolve_api_key(kind, api_key, llm_settings)
    if kind == ProviderKind.LITELLM:
        return LiteLLMProvider(
            key, base_url, litellm_settings=litellm_settings, client=client
        )
    if not key:
        raise MissingAPIKeyError(kind.value)
    return PROVIDER_CLASSES[kind](key, base_url, client=client)


__all__ = [
    "AnthropicProvider",
    "GoogleProvider",
    "LITELLM_PREFIXES",
    "LiteLLMProvider",
    "ModelProvider",
    "OpenAIProvider",
    "PROVIDER_CLASSES",
    "ProviderKind",
    "RunConfig",
    "create_provider",
    "format_model_for_litellm",
    "resolve_api_key",
    "select_provider",
    "split_words",
]
