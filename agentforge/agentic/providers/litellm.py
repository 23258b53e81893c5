"""LiteLLM gateway adapter.

The gateway speaks the OpenAI chat completions protocol, so the request is
handed to pydantic-ai's OpenAI chat model pointed at the gateway URL. The
conversation is converted to pydantic-ai's native message types first.

Storage format → pydantic-ai format:
    system / instructions  ModelRequest(parts=[SystemPromptPart])
    user                   ModelRequest(parts=[UserPromptPart])
    assistant              ModelResponse(parts=[TextPart, ToolCallPart...])
    tool                   ModelRequest(parts=[ToolReturnPart])
"""

from uuid import uuid4

from pydantic_ai.direct import model_request
from pydantic_ai.exceptions import ModelHTTPError
from pydantic_ai.messages import (
    ModelMessage,
    ModelRequest,
    ModelResponse,
    SystemPromptPart,
    TextPart,
    ToolCallPart,
    ToolReturnPart,
    UserPromptPart,
)
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider as FrameworkOpenAIProvider
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition as FrameworkToolDefinition

from agentforge.agentic.context import ChatMessage, CompletionResult, RunState, ToolCall
from agentforge.agentic.providers.base import ModelProvider, ProviderKind, RunConfig
from agentforge.errors import ProviderError
from agentforge.settings import LiteLLMSettings, settings

# Bare model names → gateway model ids
LITELLM_MODEL_MAP = {
    "gpt-4-turbo": "gpt-4-turbo-preview",
    "claude-3-opus": "anthropic/claude-3-opus-20240229",
    "claude-3-sonnet": "anthropic/claude-3-sonnet-20240229",
    "claude-3-haiku": "anthropic/claude-3-haiku-20240307",
    "claude-3.5-sonnet": "anthropic/claude-3-5-sonnet-20240620",
    "gemini-pro": "gemini/gemini-pro",
    "gemini-ultra": "gemini/gemini-ultra",
    "command": "cohere/command",
    "command-light": "cohere/command-light",
    "command-r": "cohere/command-r",
    "llama-2-70b": "together_ai/togethercomputer/llama-2-70b-chat",
    "mixtral-8x7b": "together_ai/mistralai/Mixtral-8x7B-Instruct-v0.1",
    "llama-2-70b-chat": "replicate/meta/llama-2-70b-chat",
    "mistral-7b": "replicate/mistralai/mistral-7b-instruct-v0.1",
}

VENDOR_PREFIXES = {
    "anthropic": "anthropic/",
    "google": "gemini/",
    "azure": "azure/",
    "cohere": "cohere/",
    "together": "together_ai/",
    "replicate": "replicate/",
    "huggingface": "huggingface/",
    "openrouter": "openrouter/",
}


def format_model_for_litellm(model: str, vendor: str | None = None) -> str:
    """Prefix a bare model name the way the gateway routes it."""
    if "/" in model:
        return model
    if model in LITELLM_MODEL_MAP:
        return LITELLM_MODEL_MAP[model]
    if vendor and vendor.lower() in VENDOR_PREFIXES:
        return f"{VENDOR_PREFIXES[vendor.lower()]}{model}"
    return model


def to_framework_messages(instructions: str, messages: list[ChatMessage]) -> list[ModelMessage]:
    converted: list[ModelMessage] = [ModelRequest(parts=[SystemPromptPart(content=instructions)])]
    for message in messages:
        if message.role == "system":
            converted.append(ModelRequest(parts=[SystemPromptPart(content=message.content or "")]))
        elif message.role == "user":
            converted.append(ModelRequest(parts=[UserPromptPart(content=message.content or "")]))
        elif message.role == "assistant":
            parts = []
            if message.content:
                parts.append(TextPart(content=message.content))
            for call in message.tool_calls or []:
                parts.append(
                    ToolCallPart(tool_name=call.name, args=call.arguments, tool_call_id=call.id)
                )
            if parts:
                converted.append(ModelResponse(parts=parts))
        elif message.role == "tool":
            converted.append(
                ModelRequest(
                    parts=[
                        ToolReturnPart(
                            tool_name=message.name or "",
                            content=message.content or "",
                            tool_call_id=message.tool_call_id or f"call_{uuid4().hex[:12]}",
                        )
                    ]
                )
            )
    return converted


class LiteLLMProvider(ModelProvider):
    """
    Adapter for a LiteLLM gateway.

    ``model`` may be any pydantic-ai Model; tests pass a FunctionModel.
    """

    kind = ProviderKind.LITELLM

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        litellm_settings: LiteLLMSettings | None = None,
        model: Model | None = None,
        **kwargs,
    ):
        self.litellm_settings = litellm_settings or settings.litellm
        super().__init__(
            api_key or self.litellm_settings.api_key or "anything",
            base_url or self.litellm_settings.base_url,
            **kwargs,
        )
        self._model = model

    def model_name(self, agent, config: RunConfig) -> str:
        name = super().model_name(agent, config)
        if self.litellm_settings.prefix_models:
            return format_model_for_litellm(name, agent.model.provider)
        return name

    def _framework_model(self, model_name: str) -> Model:
        if self._model is not None:
            return self._model
        provider = FrameworkOpenAIProvider(
            base_url=self.base_url,
            api_key=self.api_key,
            http_client=self._client,
        )
        return OpenAIChatModel(model_name, provider=provider)

    async def get_completion(self, state: RunState, agent, config: RunConfig) -> CompletionResult:
        parameters = ModelRequestParameters(
            function_tools=[
                FrameworkToolDefinition(
                    name=tool.name,
                    description=tool.description,
                    parameters_json_schema=tool.vendor_parameters(),
                )
                for tool in agent.tools
            ],
            allow_text_output=True,
        )
        try:
            response = await model_request(
                self._framework_model(self.model_name(agent, config)),
                to_framework_messages(agent.render_instructions(state.context), state.messages),
                model_settings=ModelSettings(
                    temperature=agent.model.temperature,
                    max_tokens=agent.model.max_tokens,
                ),
                model_request_parameters=parameters,
            )
        except ModelHTTPError as e:
            raise ProviderError(self.kind.value, str(e.body), status_code=e.status_code) from e

        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for part in response.parts:
            if isinstance(part, TextPart):
                texts.append(part.content)
            elif isinstance(part, ToolCallPart):
                tool_calls.append(
                    ToolCall(
                        id=part.tool_call_id,
                        name=part.tool_name,
                        arguments=part.args_as_json_str(),
                    )
                )
        return CompletionResult(content="".join(texts) or None, tool_calls=tool_calls)
