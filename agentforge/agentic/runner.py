"""Execution dispatcher shared by the API and the CLI.

Every dispatch of an agent is recorded:

    load agent ─► execution row (running) ─► assemble ─► provider ─► engine
                                                                       │
                              completed (output, duration) ◄── ok ─────┤
                              failed (error, duration)     ◄── error ──┘

The row is written as ``running`` before any model call and updated exactly
once when the run ends. Errors are recorded and then re-raised unchanged so
the caller can map them to a response.
"""

import time
from typing import AsyncIterator

from loguru import logger
from pydantic import BaseModel

from agentforge.agentic.assembler import AgentDescriptor, assemble_agent, resolve_model_config
from agentforge.agentic.context import ChatMessage, RunContext, RunState
from agentforge.agentic.engine import run, stream_run
from agentforge.agentic.providers import RunConfig, create_provider, select_provider
from agentforge.errors import NotFoundError
from agentforge.models.core import utcnow
from agentforge.models.entities import Agent, AgentExecution
from agentforge.services.repository import Repository
from agentforge.settings import Settings
from agentforge.settings import settings as default_settings


class ExecutionOptions(BaseModel):
    """Caller-supplied knobs for one dispatch."""

    api_key: str | None = None
    base_url: str | None = None
    user_id: str | None = None
    session_id: str | None = None
    conversation_id: str | None = None


class ExecutionResult(BaseModel):
    execution_id: str
    output: str
    duration_ms: int


class StreamChunk(BaseModel):
    content: str


class StreamDone(BaseModel):
    execution_id: str
    duration_ms: int


def _elapsed_ms(started: float) -> int:
    return max(0, int((time.monotonic() - started) * 1000))


async def load_agent(db, agent_id: str) -> Agent:
    agent = await Repository(Agent, db, table_name="agents").get_by_id(agent_id)
    if agent is None:
        raise NotFoundError(f"Agent not found: {agent_id}")
    return agent


async def _create_execution(db, agent: Agent, input: str, settings: Settings) -> AgentExecution:
    # Same model name the provider is later chosen from
    model = resolve_model_config(agent).name
    provider = select_provider(model, settings.litellm).value
    executions = Repository(AgentExecution, db, table_name="agent_executions")
    return await executions.create(
        AgentExecution(
            agent_id=agent.id,
            input=input,
            status="running",
            metadata={"input": input, "model": model, "provider": provider},
        )
    )


async def _prepare_run(
    agent: Agent,
    input: str,
    options: ExecutionOptions,
    db,
    settings: Settings,
) -> tuple[AgentDescriptor, RunState, RunConfig]:
    descriptor = await assemble_agent(agent, db, tool_settings=settings.tools)
    kind = select_provider(descriptor.model.name, settings.litellm)
    provider = create_provider(
        kind,
        options.api_key,
        options.base_url or descriptor.model.base_url,
        llm_settings=settings.llm,
        litellm_settings=settings.litellm,
    )
    context = RunContext(
        user_id=options.user_id or "anonymous",
        agent_id=agent.id,
        session_id=options.session_id or f"session-{int(time.time() * 1000)}",
        conversation_id=options.conversation_id,
    )
    state = RunState(messages=[ChatMessage(role="user", content=input)], context=context)
    config = RunConfig(provider=provider, max_turns=settings.llm.max_turns)
    return descriptor, state, config


async def _complete_execution(db, execution: AgentExecution, output: str, duration_ms: int) -> None:
    await Repository(AgentExecution, db, table_name="agent_executions").update(
        execution.id,
        {
            "status": "completed",
            "output": output,
            "duration_ms": duration_ms,
            "completed_at": utcnow(),
        },
    )
    logger.info(f"Execution {execution.id} completed in {duration_ms}ms")


async def _fail_execution(db, execution: AgentExecution, error: Exception, duration_ms: int) -> None:
    await Repository(AgentExecution, db, table_name="agent_executions").update(
        execution.id,
        {
            "status": "failed",
            "error": str(error),
            "duration_ms": duration_ms,
            "completed_at": utcnow(),
        },
    )
    logger.error(f"Execution {execution.id} failed after {duration_ms}ms: {error}")


async def run_agent(
    db,
    agent_id: str,
    input: str,
    options: ExecutionOptions | None = None,
    *,
    settings: Settings | None = None,
) -> ExecutionResult:
    """
    Run an agent to completion and record the execution.

    Args:
        db: Connected DatabaseService
        agent_id: Stored agent id
        input: User message
        options: API key, base URL and run identity

    Returns:
        ExecutionResult with the execution id, output and duration

    Raises:
        NotFoundError: unknown agent (nothing is recorded)
        Any assembly, provider or engine error, after it is recorded
    """
    options = options or ExecutionOptions()
    settings = settings or default_settings

    agent = await load_agent(db, agent_id)
    execution = await _create_execution(db, agent, input, settings)
    logger.info(f"Execution {execution.id} started: agent={agent.name} model={agent.model}")

    started = time.monotonic()
    try:
        descriptor, state, config = await _prepare_run(agent, input, options, db, settings)
        result = await run(state, descriptor, config)
    except Exception as e:
        await _fail_execution(db, execution, e, _elapsed_ms(started))
        raise

    duration_ms = _elapsed_ms(started)
    await _complete_execution(db, execution, result.output, duration_ms)
    return ExecutionResult(execution_id=execution.id, output=result.output, duration_ms=duration_ms)


async def stream_agent(
    db,
    agent_id: str,
    input: str,
    options: ExecutionOptions | None = None,
    *,
    settings: Settings | None = None,
) -> AsyncIterator[StreamChunk | StreamDone]:
    """
    Run an agent and yield its answer as it is produced.

    Yields StreamChunk items, then one StreamDone. The execution row is
    completed from the accumulated chunks.
    """
    options = options or ExecutionOptions()
    settings = settings or default_settings

    agent = await load_agent(db, agent_id)
    execution = await _create_execution(db, agent, input, settings)
    logger.info(f"Streaming execution {execution.id} started: agent={agent.name}")

    started = time.monotonic()
    parts: list[str] = []
    try:
        descriptor, state, config = await _prepare_run(agent, input, options, db, settings)
        async for chunk in stream_run(state, descriptor, config):
            parts.append(chunk)
            yield StreamChunk(content=chunk)
    except Exception as e:
        await _fail_execution(db, execution, e, _elapsed_ms(started))
        raise

    duration_ms = _elapsed_ms(started)
    await _complete_execution(db, execution, "".join(parts), duration_ms)
    yield StreamDone(execution_id=execution.id, duration_ms=duration_ms)
