"""
Unit tests for the vendor HTTP adapters.

Requests are served by httpx.MockTransport, so each test sees exactly the
request the adapter would send to the vendor.
"""

import json

import httpx
import pytest

from agentforge.agentic.assembler import AgentDescriptor
from agentforge.agentic.builtin_tools import BUILTIN_TOOLS
from agentforge.agentic.context import ChatMessage, RunContext, RunState, ToolCall
from agentforge.agentic.providers import (
    AnthropicProvider,
    GoogleProvider,
    OpenAIProvider,
    RunConfig,
)
from agentforge.agentic.providers.anthropic import to_anthropic_messages
from agentforge.agentic.providers.google import to_google_contents
from agentforge.agentic.providers.openai import to_openai_messages
from agentforge.errors import ProviderError
from agentforge.models.config import ModelConfig


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def agent() -> AgentDescriptor:
    return AgentDescriptor(
        name="helper",
        instructions="Be brief, {{userId}}.",
        tools=[BUILTIN_TOOLS["calculator"]],
        model=ModelConfig(name="test-model", temperature=0, max_tokens=100),
    )


@pytest.fixture
def state() -> RunState:
    return RunState(
        messages=[ChatMessage(role="user", content="What is 2+2?")],
        context=RunContext(user_id="ada"),
    )


@pytest.fixture
def config() -> RunConfig:
    return RunConfig(provider=None)


CONVERSATION = [
    ChatMessage(role="user", content="What is 2+2?"),
    ChatMessage(
        role="assistant",
        content=None,
        tool_calls=[ToolCall(id="call_1", name="calculator", arguments='{"expression": "2+2"}')],
    ),
    ChatMessage(role="tool", content="Result: 4", tool_call_id="call_1", name="calculator"),
]


class TestOpenAI:
    @pytest.mark.asyncio
    async def test_request_and_tool_call_parsing(self, agent, state, config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "choices": [
                        {
                            "message": {
                                "content": None,
                                "tool_calls": [
                                    {
                                        "id": "call_1",
                                        "type": "function",
                                        "function": {
                                            "name": "calculator",
                                            "arguments": '{"expression": "2+2"}',
                                        },
                                    }
                                ],
                            }
                        }
                    ]
                },
            )

        provider = OpenAIProvider("sk-test", "https://api.test/v1", client=mock_client(handler))
        result = await provider.get_completion(state, agent, config)

        assert seen["url"] == "https://api.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        body = seen["body"]
        assert body["model"] == "test-model"
        assert body["temperature"] == 0
        assert body["max_tokens"] == 100
        assert body["messages"][0] == {"role": "system", "content": "Be brief, ada."}
        assert body["messages"][1] == {"role": "user", "content": "What is 2+2?"}
        assert body["tools"][0]["type"] == "function"
        assert body["tools"][0]["function"]["name"] == "calculator"
        assert body["tools"][0]["function"]["parameters"]["required"] == ["expression"]

        assert result.content is None
        assert result.tool_calls == [
            ToolCall(id="call_1", name="calculator", arguments='{"expression": "2+2"}')
        ]

    @pytest.mark.asyncio
    async def test_model_override(self, agent, state):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["model"] = json.loads(request.content)["model"]
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        provider = OpenAIProvider("sk", "https://api.test/v1", client=mock_client(handler))
        result = await provider.get_completion(
            state, agent, RunConfig(provider=None, model_override="gpt-4o-mini")
        )

        assert seen["model"] == "gpt-4o-mini"
        assert result.content == "ok"

    @pytest.mark.asyncio
    async def test_vendor_error(self, agent, state, config):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(401, text='{"error": "invalid api key"}')

        provider = OpenAIProvider("bad", "https://api.test/v1", client=mock_client(handler))

        with pytest.raises(ProviderError) as exc_info:
            await provider.get_completion(state, agent, config)

        assert str(exc_info.value) == 'OpenAI API error: {"error": "invalid api key"}'
        assert exc_info.value.vendor_status == 401

    @pytest.mark.asyncio
    async def test_streaming(self, agent, state, config):
        stream = (
            'data: {"choices": [{"delta": {"role": "assistant"}}]}\n\n'
            'data: {"choices": [{"delta": {"content": "Hel"}}]}\n\n'
            'data: {"choices": [{"delta": {"content": "lo"}}]}\n\n'
            "data: [DONE]\n\n"
        )
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["stream"] = json.loads(request.content)["stream"]
            return httpx.Response(
                200, content=stream.encode(), headers={"content-type": "text/event-stream"}
            )

        provider = OpenAIProvider("sk", "https://api.test/v1", client=mock_client(handler))
        chunks = [c async for c in provider.stream_completion(state, agent, config)]

        assert seen["stream"] is True
        assert chunks == ["Hel", "lo"]

    def test_tool_results_become_assistant_messages(self):
        messages = to_openai_messages(CONVERSATION)

        assert messages[1]["tool_calls"][0] == {
            "id": "call_1",
            "type": "function",
            "function": {"name": "calculator", "arguments": '{"expression": "2+2"}'},
        }
        assert messages[2] == {"role": "assistant", "content": "Result: 4", "tool_call_id": "call_1"}


class TestAnthropic:
    @pytest.mark.asyncio
    async def test_request_and_response(self, agent, state, config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "content": [
                        {"type": "text", "text": "Let me calculate."},
                        {
                            "type": "tool_use",
                            "id": "toolu_1",
                            "name": "calculator",
                            "input": {"expression": "2+2"},
                        },
                    ]
                },
            )

        provider = AnthropicProvider("ak-test", "https://anthropic.test/v1", client=mock_client(handler))
        result = await provider.get_completion(state, agent, config)

        assert seen["url"] == "https://anthropic.test/v1/messages"
        assert seen["headers"]["x-api-key"] == "ak-test"
        assert seen["headers"]["anthropic-version"] == "2023-06-01"
        body = seen["body"]
        assert body["system"] == "Be brief, ada."
        assert body["messages"] == [{"role": "user", "content": "What is 2+2?"}]
        assert body["tools"][0]["name"] == "calculator"
        assert body["tools"][0]["input_schema"]["type"] == "object"

        assert result.content == "Let me calculate."
        assert result.tool_calls[0].id == "toolu_1"
        assert json.loads(result.tool_calls[0].arguments) == {"expression": "2+2"}

    @pytest.mark.asyncio
    async def test_stream_falls_back_to_word_chunks(self, agent, state, config):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Four is the answer"}]})

        provider = AnthropicProvider("ak", "https://anthropic.test/v1", client=mock_client(handler))
        chunks = [c async for c in provider.stream_completion(state, agent, config)]

        assert chunks == ["Four ", "is ", "the ", "answer"]

    def test_tool_blocks(self):
        messages = to_anthropic_messages(CONVERSATION)

        assert messages[1] == {
            "role": "assistant",
            "content": [
                {"type": "tool_use", "id": "call_1", "name": "calculator", "input": {"expression": "2+2"}}
            ],
        }
        assert messages[2] == {
            "role": "user",
            "content": [{"type": "tool_result", "tool_use_id": "call_1", "content": "Result: 4"}],
        }


class TestGoogle:
    @pytest.mark.asyncio
    async def test_request_and_response(self, agent, state, config):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["key"] = request.url.params["key"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(
                200,
                json={
                    "candidates": [
                        {
                            "content": {
                                "parts": [
                                    {"text": "Calling."},
                                    {"functionCall": {"name": "calculator", "args": {"expression": "2+2"}}},
                                ]
                            }
                        }
                    ]
                },
            )

        provider = GoogleProvider("g-key", "https://google.test/v1beta", client=mock_client(handler))
        result = await provider.get_completion(state, agent, config)

        assert seen["path"] == "/v1beta/models/test-model:generateContent"
        assert seen["key"] == "g-key"
        body = seen["body"]
        assert body["systemInstruction"] == {"parts": [{"text": "Be brief, ada."}]}
        assert body["generationConfig"] == {"temperature": 0, "maxOutputTokens": 100}
        assert body["contents"] == [{"role": "user", "parts": [{"text": "What is 2+2?"}]}]
        assert body["tools"][0]["functionDeclarations"][0]["name"] == "calculator"

        assert result.content == "Calling."
        assert result.tool_calls[0].name == "calculator"
        assert json.loads(result.tool_calls[0].arguments) == {"expression": "2+2"}

    @pytest.mark.asyncio
    async def test_no_candidates(self, agent, state, config):
        provider = GoogleProvider(
            "g", "https://google.test/v1beta",
            client=mock_client(lambda request: httpx.Response(200, json={"candidates": []})),
        )
        result = await provider.get_completion(state, agent, config)
        assert result.content is None
        assert result.tool_calls == []

    @pytest.mark.asyncio
    async def test_vendor_error(self, agent, state, config):
        provider = GoogleProvider(
            "g", "https://google.test/v1beta",
            client=mock_client(lambda request: httpx.Response(500, text="boom")),
        )
        with pytest.raises(ProviderError, match="Google API error: boom"):
            await provider.get_completion(state, agent, config)

    def test_roles(self):
        contents = to_google_contents(CONVERSATION)

        assert contents[1] == {
            "role": "model",
            "parts": [{"functionCall": {"name": "calculator", "args": {"expression": "2+2"}}}],
        }
        assert contents[2] == {
            "role": "user",
            "parts": [{"functionResponse": {"name": "calculator", "response": {"content": "Result: 4"}}}],
        }
