"""
Agent Assembler - Stored agent record → runnable AgentDescriptor
=================================================================

The flow is: Agent row → instructions + model config + output schema + tools
→ AgentDescriptor.

A descriptor is rebuilt on every run and never cached, so edits to the agent
or its tools apply to the next execution.

INSTRUCTIONS
------------
``instructions`` if non-empty, else the legacy ``system_prompt``, else
"You are a helpful assistant." The text is a template: ``{{key}}`` resolves
against the run context when the descriptor renders it. Agents with an output
schema get the schema appended so the model answers in JSON.

MODEL CONFIG
------------
Defaults ``{name: agent.model, temperature: 0.7, max_tokens: 2000}`` with the
stored ``model_settings`` on top. The stored config may rename the model;
otherwise the name stays ``agent.model``.

HANDOFFS
--------
Handoff names are carried on the descriptor unresolved. Nothing transfers
control to them yet.
"""

import json
from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from agentforge.agentic.context import RunContext
from agentforge.agentic.schema_bridge import to_runtime_schema, to_vendor_params
from agentforge.agentic.tool_resolver import resolve_tools
from agentforge.agentic.tools import ToolDefinition, render_template
from agentforge.errors import InvalidRequestError
from agentforge.models.config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    GuardrailConfig,
    JsonSchemaOutput,
    MemoryConfig,
    ModelConfig,
    RuntimeSchemaOutput,
)
from agentforge.models.entities import Agent
from agentforge.services.repository import Repository
from agentforge.settings import ToolSettings

DEFAULT_INSTRUCTIONS = "You are a helpful assistant."


class AgentDescriptor(BaseModel):
    """Everything the turn engine needs to run one agent."""

    name: str
    instructions: str
    tools: list[ToolDefinition] = Field(default_factory=list)
    model: ModelConfig
    output_schema: Any | None = None
    handoffs: list[str] = Field(default_factory=list)
    memory: MemoryConfig | None = None
    input_guardrails: GuardrailConfig | None = None
    output_guardrails: GuardrailConfig | None = None

    model_config = {"arbitrary_types_allowed": True}

    def render_instructions(self, context: RunContext) -> str:
        text = render_template(self.instructions, context.template_vars())
        if self.output_schema is not None:
            schema = json.dumps(to_vendor_params(self.output_schema))
            text += f"\n\nRespond only with JSON matching this schema:\n{schema}"
        return text

    def get_tool(self, name: str) -> ToolDefinition | None:
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None


def select_instructions(agent: Agent) -> str:
    return agent.instructions or agent.system_prompt or DEFAULT_INSTRUCTIONS


def resolve_model_config(agent: Agent) -> ModelConfig:
    """Defaults first, stored values on top."""
    merged: dict[str, Any] = {
        "name": agent.model,
        "temperature": DEFAULT_TEMPERATURE,
        "max_tokens": DEFAULT_MAX_TOKENS,
    }
    if agent.model_settings is not None:
        stored = agent.model_settings.model_dump(exclude_unset=True, exclude_none=True)
        merged.update(stored)
        merged["name"] = stored.get("name") or agent.model
    return ModelConfig(**merged)


def resolve_output_schema(agent: Agent) -> Any | None:
    declared = agent.output_schema
    if declared is None:
        return None
    if isinstance(declared, RuntimeSchemaOutput):
        return declared.schema_type
    if isinstance(declared, JsonSchemaOutput):
        return to_runtime_schema(declared.json_schema, f"{agent.name}_output")
    return None


async def assemble_agent(
    agent: Agent,
    db=None,
    *,
    tool_settings: ToolSettings | None = None,
) -> AgentDescriptor:
    """
    Build the runtime descriptor for a stored agent.

    Args:
        agent: Stored agent record
        db: DatabaseService for resolving non-built-in tools
        tool_settings: Overrides ``settings.tools``

    Returns:
        AgentDescriptor ready for the turn engine
    """
    tools = await resolve_tools(agent.tools, db, tool_settings=tool_settings)
    model = resolve_model_config(agent)

    if agent.handoffs:
        logger.warning(
            f"Agent '{agent.name}' declares handoffs {agent.handoffs}; "
            "handoffs are carried but not executed"
        )

    descriptor = AgentDescriptor(
        name=agent.name,
        instructions=select_instructions(agent),
        tools=tools,
        model=model,
        output_schema=resolve_output_schema(agent),
        handoffs=list(agent.handoffs),
        memory=agent.memory_config or MemoryConfig(type=agent.memory_type),
        input_guardrails=agent.input_guardrails,
        output_guardrails=agent.output_guardrails,
    )
    logger.debug(
        f"Assembled agent '{agent.name}': model={model.name} "
        f"tools={[t.name for t in tools]} structured={descriptor.output_schema is not None}"
    )
    return descriptor


async def validate_agent_configuration(
    agent: Agent,
    db=None,
    *,
    tool_settings: ToolSettings | None = None,
) -> list[str]:
    """
    Check that an agent can be assembled.

    Raises:
        InvalidRequestError: name or model missing, or a tool does not resolve

    Returns:
        Warnings (currently: handoff targets that do not exist)
    """
    if not agent.name:
        raise InvalidRequestError("Agent name is required")
    if not agent.model:
        raise InvalidRequestError("Agent model is required")

    tools = await resolve_tools(agent.tools, db, tool_settings=tool_settings)
    if len(tools) != len(agent.tools):
        raise InvalidRequestError(
            f"Some tools could not be loaded ({len(tools)} of {len(agent.tools)} resolved)"
        )

    warnings: list[str] = []
    if agent.handoffs and db is not None:
        repo = Repository(Agent, db, table_name="agents")
        existing = await repo.find({"name": list(agent.handoffs), "user_id": agent.user_id})
        found = {a.name for a in existing}
        for name in agent.handoffs:
            if name not in found:
                warnings.append(f"Handoff agent '{name}' not found")
    for warning in warnings:
        logger.warning(warning)
    return warnings
