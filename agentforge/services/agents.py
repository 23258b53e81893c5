"""Agent persistence: agents with their knowledge sources, and execution history.

Knowledge sources are owned by their agent. Create and update replace the
whole set inside the same transaction as the agent write:

    BEGIN
      INSERT/UPDATE agents ...
      DELETE FROM knowledge_sources WHERE agent_id = $1
      INSERT INTO knowledge_sources ... (one per source)
    COMMIT
"""

from typing import Any

from loguru import logger
from pydantic import BaseModel, Field

from agentforge.models.entities import Agent, AgentExecution, KnowledgeSource, KnowledgeSourceType
from agentforge.services.repository import Repository


class KnowledgeSourceInput(BaseModel):
    type: KnowledgeSourceType
    name: str
    source: str
    settings: dict[str, Any] | None = None


class AgentWithSources(Agent):
    knowledge_sources: list[KnowledgeSource] = Field(default_factory=list)


def _agents(db) -> Repository[Agent]:
    return Repository(Agent, db, table_name="agents")


def _sources(db) -> Repository[KnowledgeSource]:
    return Repository(KnowledgeSource, db, table_name="knowledge_sources")


async def ensure_user(db, user_id: str, conn=None) -> None:
    """Create a placeholder user row so agents can reference it."""
    sql = (
        "INSERT INTO users (id, email) VALUES ($1, $2) "
        "ON CONFLICT (id) DO NOTHING"
    )
    email = f"{user_id}@agentforge.local"
    if conn is not None:
        await conn.execute(sql, user_id, email)
    else:
        await db.execute(sql, user_id, email)


async def _replace_sources(
    db, agent_id: str, sources: list[KnowledgeSourceInput], conn
) -> list[KnowledgeSource]:
    repo = _sources(db)
    await repo.delete_where({"agent_id": agent_id}, conn=conn)
    return await repo.create_many(
        [KnowledgeSource(agent_id=agent_id, **source.model_dump()) for source in sources],
        conn=conn,
    )


async def create_agent(
    db, agent: Agent, knowledge_sources: list[KnowledgeSourceInput] | None = None
) -> AgentWithSources:
    """Insert an agent and its knowledge sources in one transaction."""
    async with db.transaction() as conn:
        await ensure_user(db, agent.user_id, conn=conn)
        stored = await _agents(db).create(agent, conn=conn)
        sources = await _replace_sources(db, stored.id, knowledge_sources or [], conn)
    logger.info(f"Created agent '{stored.name}' ({stored.id}) with {len(sources)} knowledge sources")
    return AgentWithSources(**stored.model_dump(), knowledge_sources=sources)


async def update_agent(
    db,
    agent_id: str,
    changes: dict[str, Any],
    knowledge_sources: list[KnowledgeSourceInput] | None = None,
) -> AgentWithSources | None:
    """
    Update agent columns. When ``knowledge_sources`` is given (even empty) the
    stored set is replaced; when it is None the sources are left alone.

    Returns:
        The updated agent, or None when no agent has that id
    """
    async with db.transaction() as conn:
        repo = _agents(db)
        if changes:
            stored = await repo.update(agent_id, changes, conn=conn)
        else:
            stored = await repo.get_by_id(agent_id, conn=conn)
        if stored is None:
            return None
        if knowledge_sources is not None:
            await _replace_sources(db, agent_id, knowledge_sources, conn)
        sources = await _sources(db).find({"agent_id": agent_id}, conn=conn)
    logger.info(f"Updated agent '{stored.name}' ({agent_id})")
    return AgentWithSources(**stored.model_dump(), knowledge_sources=sources)


async def get_agent(db, agent_id: str) -> AgentWithSources | None:
    agent = await _agents(db).get_by_id(agent_id)
    if agent is None:
        return None
    sources = await _sources(db).find({"agent_id": agent_id})
    return AgentWithSources(**agent.model_dump(), knowledge_sources=sources)


async def list_agents(db, user_id: str) -> list[AgentWithSources]:
    """The user's agents, most recently updated first."""
    agents = await _agents(db).find({"user_id": user_id}, order_by="updated_at DESC")
    if not agents:
        return []
    sources = await _sources(db).find({"agent_id": [a.id for a in agents]})
    by_agent: dict[str, list[KnowledgeSource]] = {}
    for source in sources:
        by_agent.setdefault(source.agent_id, []).append(source)
    return [
        AgentWithSources(**agent.model_dump(), knowledge_sources=by_agent.get(agent.id, []))
        for agent in agents
    ]


async def delete_agent(db, agent_id: str) -> bool:
    """Hard delete; sources and executions follow by cascade."""
    deleted = await _agents(db).delete(agent_id)
    if deleted:
        logger.info(f"Deleted agent {agent_id}")
    return deleted


async def list_executions(db, agent_id: str, limit: int = 50) -> list[AgentExecution]:
    """Executions of one agent, most recent first."""
    return await Repository(AgentExecution, db, table_name="agent_executions").find(
        {"agent_id": agent_id}, order_by="created_at DESC", limit=limit
    )
