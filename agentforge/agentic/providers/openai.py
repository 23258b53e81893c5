"""OpenAI chat completions adapter."""

import json
from typing import Any, AsyncIterator

from agentforge.agentic.context import ChatMessage, CompletionResult, RunState, ToolCall
from agentforge.agentic.providers.base import ModelProvider, ProviderKind, RunConfig
from agentforge.errors import ProviderError
from agentforge.settings import settings


def to_openai_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """
    Map conversation messages to the chat completions format.

    Tool results are sent back as assistant messages carrying the call id.
    """
    converted: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "tool":
            converted.append(
                {
                    "role": "assistant",
                    "content": message.content or "",
                    "tool_call_id": message.tool_call_id,
                }
            )
            continue
        item: dict[str, Any] = {"role": message.role, "content": message.content}
        if message.tool_calls:
            item["tool_calls"] = [
                {
                    "id": call.id,
                    "type": "function",
                    "function": {"name": call.name, "arguments": call.arguments},
                }
                for call in message.tool_calls
            ]
        converted.append(item)
    return converted


class OpenAIProvider(ModelProvider):
    kind = ProviderKind.OPENAI

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        super().__init__(api_key, base_url or settings.llm.openai_base_url, **kwargs)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

    def _payload(self, state: RunState, agent, config: RunConfig) -> dict[str, Any]:
        system = {"role": "system", "content": agent.render_instructions(state.context)}
        payload: dict[str, Any] = {
            "model": self.model_name(agent, config),
            "messages": [system, *to_openai_messages(state.messages)],
            "temperature": agent.model.temperature,
            "max_tokens": agent.model.max_tokens,
        }
        if agent.tools:
            payload["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.vendor_parameters(),
                    },
                }
                for tool in agent.tools
            ]
        return payload

    async def get_completion(self, state: RunState, agent, config: RunConfig) -> CompletionResult:
        data = await self._post_json(
            f"{self.base_url}/chat/completions",
            self._payload(state, agent, config),
            self._headers(),
        )
        choices = data.get("choices") or []
        if not choices:
            return CompletionResult()
        message = choices[0].get("message") or {}
        tool_calls = [
            ToolCall(
                id=call["id"],
                name=call["function"]["name"],
                arguments=call["function"].get("arguments") or "{}",
            )
            for call in message.get("tool_calls") or []
        ]
        return CompletionResult(content=message.get("content"), tool_calls=tool_calls)

    async def stream_completion(
        self, state: RunState, agent, config: RunConfig
    ) -> AsyncIterator[str]:
        payload = self._payload(state, agent, config)
        payload["stream"] = True
        async with self._http() as client:
            async with client.stream(
                "POST",
                f"{self.base_url}/chat/completions",
                json=payload,
                headers=self._headers(),
            ) as response:
                if response.is_error:
                    body = (await response.aread()).decode(errors="replace")
                    raise ProviderError(self.kind.value, body, status_code=response.status_code)
                async for line in response.aiter_lines():
                    if not line.startswith("data:"):
                        continue
                    data = line[len("data:"):].strip()
                    if data == "[DONE]":
                        break
                    chunk = json.loads(data)
                    choices = chunk.get("choices") or []
                    content = choices[0].get("delta", {}).get("content") if choices else None
                    if content:
                        yield content
