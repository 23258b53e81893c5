"""Provider selection and the adapter base class."""

import re
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from enum import Enum
from typing import Any, AsyncIterator

import httpx
from pydantic import BaseModel

from agentforge.agentic.context import CompletionResult, RunState
from agentforge.errors import ProviderError
from agentforge.settings import LiteLLMSettings, settings


class ProviderKind(str, Enum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GOOGLE = "google"
    LITELLM = "litellm"


# Model name prefixes that only a LiteLLM gateway understands
LITELLM_PREFIXES = (
    "anthropic",
    "gemini",
    "cohere",
    "replicate",
    "together_ai",
    "azure",
    "openrouter",
)


def select_provider(
    model_name: str, litellm_settings: LiteLLMSettings | None = None
) -> ProviderKind:
    """
    Choose the vendor adapter for a model name. First match wins:

    1. LiteLLM gateway enabled (USE_LITELLM=true or LITELLM_URL set) → litellm
    2. "<prefix>/..." with a gateway-only prefix → litellm
    3. name contains gpt → openai, claude → anthropic, gemini → google,
       llama / mixtral / mistral → litellm
    4. otherwise openai
    """
    litellm_settings = litellm_settings or settings.litellm
    if litellm_settings.active:
        return ProviderKind.LITELLM

    name = model_name.lower()
    if "/" in name and name.split("/", 1)[0] in LITELLM_PREFIXES:
        return ProviderKind.LITELLM

    if "gpt" in name:
        return ProviderKind.OPENAI
    if "claude" in name:
        return ProviderKind.ANTHROPIC
    if "gemini" in name:
        return ProviderKind.GOOGLE
    if any(family in name for family in ("llama", "mixtral", "mistral")):
        return ProviderKind.LITELLM
    return ProviderKind.OPENAI


def split_words(text: str) -> list[str]:
    """Split text into word chunks that concatenate back to the original."""
    return [chunk for chunk in re.split(r"(?<=\s)(?=\S)", text) if chunk]


class RunConfig(BaseModel):
    """Per-run settings handed to the engine and to the provider."""

    provider: Any
    max_turns: int = 10
    model_override: str | None = None

    model_config = {"arbitrary_types_allowed": True, "protected_namespaces": ()}


class ModelProvider(ABC):
    """
    One vendor adapter. Each call is a single request to a single vendor:
    no retries and no fallback to another vendor.

    Tests (or callers that pool connections) may pass their own
    ``httpx.AsyncClient``; otherwise one is opened per request.
    """

    kind: ProviderKind

    def __init__(
        self,
        api_key: str,
        base_url: str,
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float | None = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client
        self.timeout = timeout if timeout is not None else settings.llm.request_timeout

    def model_name(self, agent, config: RunConfig) -> str:
        return config.model_override or agent.model.name

    @abstractmethod
    async def get_completion(self, state: RunState, agent, config: RunConfig) -> CompletionResult:
        """Send the conversation and return the model's next message."""

    async def stream_completion(
        self, state: RunState, agent, config: RunConfig
    ) -> AsyncIterator[str]:
        """Yield text deltas. Vendors without native streaming chunk the full reply."""
        result = await self.get_completion(state, agent, config)
        for chunk in split_words(result.content or ""):
            yield chunk

    @asynccontextmanager
    async def _http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str],
        params: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        async with self._http() as client:
            response = await client.post(url, json=payload, headers=headers, params=params)
        if response.is_error:
            raise ProviderError(self.kind.value, response.text, status_code=response.status_code)
        return response.json()
