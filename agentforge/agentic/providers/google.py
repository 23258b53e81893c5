"""Google Generative Language (Gemini) adapter."""

import json
from typing import Any
from uuid import uuid4

from agentforge.agentic.context import ChatMessage, CompletionResult, RunState, ToolCall
from agentforge.agentic.providers.base import ModelProvider, ProviderKind, RunConfig
from agentforge.settings import settings


def to_google_contents(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Assistant turns become role "model"; everything else is "user"."""
    contents: list[dict[str, Any]] = []
    for message in messages:
        if message.role == "system":
            continue
        if message.role == "tool":
            contents.append(
                {
                    "role": "user",
                    "parts": [
                        {
                            "functionResponse": {
                                "name": message.name or "",
                                "response": {"content": message.content or ""},
                            }
                        }
                    ],
                }
            )
            continue

        parts: list[dict[str, Any]] = []
        if message.content:
            parts.append({"text": message.content})
        for call in message.tool_calls or []:
            try:
                args = json.loads(call.arguments or "{}")
            except json.JSONDecodeError:
                args = {"input": call.arguments}
            parts.append({"functionCall": {"name": call.name, "args": args}})
        if not parts:
            parts.append({"text": ""})
        role = "model" if message.role == "assistant" else "user"
        contents.append({"role": role, "parts": parts})
    return contents


class GoogleProvider(ModelProvider):
    kind = ProviderKind.GOOGLE

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        super().__init__(api_key, base_url or settings.llm.google_base_url, **kwargs)

    async def get_completion(self, state: RunState, agent, config: RunConfig) -> CompletionResult:
        payload: dict[str, Any] = {
            "contents": to_google_contents(state.messages),
            "systemInstruction": {"parts": [{"text": agent.render_instructions(state.context)}]},
            "generationConfig": {
                "temperature": agent.model.temperature,
                "maxOutputTokens": agent.model.max_tokens,
            },
        }
        if agent.tools:
            payload["tools"] = [
                {
                    "functionDeclarations": [
                        {
                            "name": tool.name,
                            "description": tool.description,
                            "parameters": tool.vendor_parameters(),
                        }
                        for tool in agent.tools
                    ]
                }
            ]

        model = self.model_name(agent, config)
        data = await self._post_json(
            f"{self.base_url}/models/{model}:generateContent",
            payload,
            {"Content-Type": "application/json"},
            params={"key": self.api_key},
        )

        candidates = data.get("candidates") or []
        if not candidates:
            return CompletionResult()
        texts: list[str] = []
        tool_calls: list[ToolCall] = []
        for part in (candidates[0].get("content") or {}).get("parts") or []:
            if "text" in part:
                texts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                tool_calls.append(
                    ToolCall(
                        id=f"call_{uuid4().hex[:12]}",
                        name=call["name"],
                        arguments=json.dumps(call.get("args") or {}),
                    )
                )
        return CompletionResult(content="".join(texts) or None, tool_calls=tool_calls)
