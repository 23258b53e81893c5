"""
Turn Engine - The tool-calling loop behind every execution
===========================================================

    user message
        │
        ▼
    input guardrails
        │
        ▼
    ┌─► provider.get_completion ──► tool calls? ──no──► final text
    │                                   │
    │                                  yes
    │                                   ▼
    └──── tool messages ◄──── execute each call

One call to ``run`` performs at most ``config.max_turns`` model requests.
Tool failures never abort the run: the error text is returned to the model as
the tool result and the loop continues. Failures that do abort the run are
guardrail violations, provider errors, an output that does not match the
output schema, and running out of turns.
"""

import json
import re
from typing import Any, AsyncIterator

from loguru import logger
from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from agentforge.agentic.context import ChatMessage, RunState, ToolCall
from agentforge.agentic.guardrails import check_guardrails
from agentforge.agentic.providers.base import RunConfig, split_words
from agentforge.errors import AgentExecutionError

FENCE_PATTERN = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class RunResult(BaseModel):
    output: str
    messages: list[ChatMessage] = Field(default_factory=list)
    turns: int = 0


def _last_user_message(state: RunState) -> str:
    for message in reversed(state.messages):
        if message.role == "user":
            return message.content or ""
    return ""


async def execute_tool_call(call: ToolCall, agent, state: RunState) -> str:
    """Run one tool call. Every failure becomes an ``Error: ...`` string."""
    tool = agent.get_tool(call.name)
    if tool is None:
        logger.warning(f"Model called unknown tool '{call.name}'")
        return f"Error: Tool '{call.name}' not found"

    try:
        args = json.loads(call.arguments or "{}")
    except json.JSONDecodeError as e:
        return f"Error: Invalid JSON arguments for tool '{call.name}': {e}"

    try:
        result = await tool.invoke(args, state.context)
    except ValidationError as e:
        return f"Error: Invalid arguments for tool '{call.name}': {e}"
    except Exception as e:
        logger.exception(f"Tool '{call.name}' failed")
        return f"Error: Tool '{call.name}' failed: {e}"

    logger.debug(f"Tool '{call.name}' returned {len(result)} chars")
    return result


def enforce_output_schema(content: str, schema: Any) -> str:
    """Validate the final answer against the output schema and re-serialise it."""
    text = content.strip()
    fenced = FENCE_PATTERN.match(text)
    if fenced:
        text = fenced.group(1)
    adapter = TypeAdapter(schema)
    try:
        value = adapter.validate_json(text)
    except ValidationError as e:
        raise AgentExecutionError(f"Output does not match the output schema: {e}") from e
    return adapter.dump_json(value, by_alias=True).decode()


async def run(state: RunState, agent, config: RunConfig) -> RunResult:
    """
    Drive the conversation in ``state`` to a final answer.

    Args:
        state: Conversation so far (normally one user message) plus run context
        agent: AgentDescriptor from the assembler
        config: Provider, turn limit and model override

    Returns:
        RunResult with the final output and the full message list

    Raises:
        GuardrailViolation: input or output rejected
        ProviderError: vendor request failed
        AgentExecutionError: turn limit reached or output schema mismatch
    """
    check_guardrails(_last_user_message(state), agent.input_guardrails, "input")

    while state.turn < config.max_turns:
        state.turn += 1
        completion = await config.provider.get_completion(state, agent, config)

        if not completion.tool_calls:
            output = completion.content or ""
            state.messages.append(ChatMessage(role="assistant", content=output))
            if agent.output_schema is not None:
                output = enforce_output_schema(output, agent.output_schema)
            check_guardrails(output, agent.output_guardrails, "output")
            return RunResult(output=output, messages=state.messages, turns=state.turn)

        state.messages.append(
            ChatMessage(
                role="assistant",
                content=completion.content,
                tool_calls=completion.tool_calls,
            )
        )
        for call in completion.tool_calls:
            result = await execute_tool_call(call, agent, state)
            state.messages.append(
                ChatMessage(role="tool", content=result, tool_call_id=call.id, name=call.name)
            )

    raise AgentExecutionError(f"Agent '{agent.name}' exceeded {config.max_turns} turns")


def streams_directly(agent) -> bool:
    """Plain chat agents stream vendor deltas; everything else runs the loop first."""
    return not agent.tools and agent.output_schema is None and agent.output_guardrails is None


async def stream_run(state: RunState, agent, config: RunConfig) -> AsyncIterator[str]:
    """Yield the answer as text chunks."""
    if not streams_directly(agent):
        result = await run(state, agent, config)
        for chunk in split_words(result.output):
            yield chunk
        return

    check_guardrails(_last_user_message(state), agent.input_guardrails, "input")
    state.turn += 1
    parts: list[str] = []
    async for chunk in config.provider.stream_completion(state, agent, config):
        parts.append(chunk)
        yield chunk
    state.messages.append(ChatMessage(role="assistant", content="".join(parts)))
