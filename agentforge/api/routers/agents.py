"""Agents router - create, list, retrieve, update and delete agent configurations.

Request bodies accept snake_case or camelCase keys (``systemPrompt``,
``knowledgeSources``, ``modelConfig``...). Every write is validated twice
before it reaches the database: the config structs (model settings,
guardrails, output schema, duplicate tools) and then tool resolution, so an
agent is never stored with a tool that cannot be loaded.
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from agentforge.agentic.assembler import validate_agent_configuration
from agentforge.api.dependencies import get_db, get_user_id
from agentforge.errors import InvalidRequestError, NotFoundError
from agentforge.models.entities import Agent
from agentforge.services import agents as agent_store
from agentforge.services.agents import AgentWithSources, KnowledgeSourceInput
from agentforge.settings import settings

router = APIRouter(prefix="/agents", tags=["agents"])


class AgentFields(BaseModel):
    """Writable agent fields. All optional so PUT can send a subset."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )

    name: str | None = None
    description: str | None = None
    model: str | None = None
    instructions: str | None = None
    system_prompt: str | None = None
    model_settings: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("model_settings", "modelSettings", "modelConfig"),
    )
    tools: list[str] | None = None
    capabilities: list[str] | None = None
    handoffs: list[str] | None = None
    output_schema: dict[str, Any] | None = None
    memory_type: str | None = None
    memory_config: dict[str, Any] | None = None
    input_guardrails: Any = None
    output_guardrails: Any = None
    config: dict[str, Any] | None = None
    status: str | None = None
    team_id: str | None = None
    knowledge_sources: list[KnowledgeSourceInput] | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"knowledge_sources"})


class DeleteResponse(BaseModel):
    success: bool = True


def _validated_agent(data: dict[str, Any]) -> Agent:
    try:
        return Agent.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid agent configuration: {e}") from e


@router.get("", response_model=list[AgentWithSources])
async def list_agents(db=Depends(get_db), user_id: str = Depends(get_user_id)):
    """List the caller's agents, most recently updated first."""
    return await agent_store.list_agents(db, user_id)


@router.post("", response_model=AgentWithSources, status_code=201)
async def create_agent(
    body: AgentFields, db=Depends(get_db), user_id: str = Depends(get_user_id)
):
    """Create an agent with its knowledge sources."""
    data = body.changes()
    if not data.get("instructions"):
        data["instructions"] = data.get("system_prompt") or ""
    agent = _validated_agent({**data, "user_id": user_id})
    await validate_agent_configuration(agent, db, tool_settings=settings.tools)
    return await agent_store.create_agent(db, agent, body.knowledge_sources)


@router.get("/{agent_id}", response_model=AgentWithSources)
async def get_agent(agent_id: str, db=Depends(get_db)):
    agent = await agent_store.get_agent(db, agent_id)
    if agent is None:
        raise NotFoundError("Agent not found")
    return agent


@router.put("/{agent_id}", response_model=AgentWithSources)
async def update_agent(agent_id: str, body: AgentFields, db=Depends(get_db)):
    """Update the fields sent; knowledge sources are replaced when present."""
    existing = await agent_store.get_agent(db, agent_id)
    if existing is None:
        raise NotFoundError("Agent not found")

    changes = body.changes()
    merged = _validated_agent(
        {**existing.model_dump(exclude={"knowledge_sources"}), **changes}
    )
    await validate_agent_configuration(merged, db, tool_settings=settings.tools)

    columns = merged.model_dump(mode="json", include=set(changes))
    updated = await agent_store.update_agent(db, agent_id, columns, body.knowledge_sources)
    if updated is None:
        raise NotFoundError("Agent not found")
    return updated


@router.delete("/{agent_id}", response_model=DeleteResponse)
async def delete_agent(agent_id: str, db=Depends(get_db)):
    """Delete an agent with its knowledge sources and executions."""
    if not await agent_store.delete_agent(db, agent_id):
        raise NotFoundError("Agent not found")
    return DeleteResponse()
