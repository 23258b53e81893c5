"""Anthropic messages API adapter."""

import json
from typing import Any

from agentforge.agentic.context import ChatMessage, CompletionResult, RunState, ToolCall
from agentforge.agentic.providers.base import ModelProvider, ProviderKind, RunConfig
from agentforge.settings import settings

ANTHROPIC_VERSION = "2023-06-01"


def _tool_input(arguments: str) -> dict[str, Any]:
    try:
        value = json.loads(arguments or "{}")
    except json.JSONDecodeError:
        return {"input": arguments}
    return value if isinstance(value, dict) else {"input": value}


def to_anthropic_messages(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Assistant stays assistant; everything else is sent as user."""
    converted: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "system":
            continue
        if message.role == "tool":
            converted.append(
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "tool_result",
                            "tool_use_id": message.tool_call_id,
                            "content": message.content or "",
                        }
                    ],
                }
            )
        elif message.role == "assistant" and message.tool_calls:
            blocks: list[dict[str, Any]] = []
            if message.content:
                blocks.append({"type": "text", "text": message.content})
            blocks.extend(
                {
                    "type": "tool_use",
                    "id": call.id,
                    "name": call.name,
                    "input": _tool_input(call.arguments),
                }
                for call in message.tool_calls
            )
            converted.append({"role": "assistant", "content": blocks})
        elif message.role == "assistant":
            converted.append({"role": "assistant", "content": message.content or ""})
        else:
            converted.append({"role": "user", "content": message.content or ""})
    return converted


class AnthropicProvider(ModelProvider):
    kind = ProviderKind.ANTHROPIC

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        super().__init__(api_key, base_url or settings.llm.anthropic_base_url, **kwargs)

    async def get_completion(self, state: RunState, agent, config: RunConfig) -> CompletionResult:
        payload: dict[str, Any] = {
            "model": self.model_name(agent, config),
            "system": agent.render_instructions(state.context),
            "messages": to_anthropic_messages(state.messages),
            "temperature": agent.model.temperature,
            "max_tokens": agent.model.max_tokens,
        }
        if agent.tools:
            payload["tools"] = [
                {
                    "name": tool.name,
                    "description": tool.description,
                    "input_schema": tool.vendor_parameters(),
                }
                for tool in agent.tools
            ]

        data = await self._post_json(
            f"{self.base_url}/messages",
            payload,
            {
                "Content-Type": "application/json",
                "x-api-key": self.api_key,
                "anthropic-version": ANTHROPIC_VERSION,
            },
        )

        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for block in data.get("content") or []:
            if block.get("type") == "text":
                texts.append(block.get("text", ""))
            elif block.get("type") == "tool_use":
                tool_calls.append(
                    ToolCall(
                        id=block["id"],
                        name=block["name"],
                        arguments=json.dumps(block.get("input") or {}),
                    )
                )
        return CompletionResult(content="".join(texts) or None, tool_calls=tool_calls)
