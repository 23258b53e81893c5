"""AgentForge CLI - Command Line Interface."""

import asyncio
import sys
from pathlib import Path

import click
import yaml

from agentforge import __version__

# Columns that belong to one stored row rather than to the agent's definition
EXPORT_EXCLUDE = {"id", "user_id", "team_id", "created_at", "updated_at", "knowledge_sources"}


@click.group()
@click.version_option(__version__)
def cli():
    """AgentForge - configure, store and run LLM agents."""
    pass


@cli.command()
@click.option("--host", "-h", default="0.0.0.0", help="Host to bind")
@click.option("--port", "-p", default=8000, help="Port to bind")
@click.option("--reload/--no-reload", default=False, help="Enable auto-reload")
def serve(host: str, port: int, reload: bool):
    """Start the AgentForge API server."""
    import uvicorn

    click.echo(f"Starting AgentForge server v{__version__} on http://{host}:{port}")
    click.echo(f"  API docs: http://{host}:{port}/docs")
    uvicorn.run(
        "agentforge.api.main:app",
        host=host,
        port=port,
        reload=reload,
    )


@cli.command()
def install():
    """Install database schema (tables, indexes)."""
    asyncio.run(_install_async())


async def _install_async():
    """Async implementation of install command."""
    from agentforge.services.database import DatabaseService

    click.echo("Installing AgentForge database schema...")

    db = DatabaseService()
    await db.connect()

    try:
        await db.install_schema()
        click.echo("Database schema installed successfully!")
    except Exception as e:
        click.echo(f"Error installing schema: {e}", err=True)
        sys.exit(1)
    finally:
        await db.disconnect()


@cli.command()
@click.option("--user-id", "-u", help="User to create (default: API__DEFAULT_USER_ID)")
def seed(user_id: str | None):
    """Create the default user and the built-in tool rows."""
    asyncio.run(_seed_async(user_id))


async def _seed_async(user_id: str | None):
    from agentforge.agentic.builtin_tools import builtin_tool_records
    from agentforge.models.entities import Tool
    from agentforge.services.agents import ensure_user
    from agentforge.services.database import DatabaseService
    from agentforge.services.repository import Repository
    from agentforge.settings import settings

    async with DatabaseService() as db:
        await ensure_user(db, user_id or settings.api.default_user_id)
        repo = Repository(Tool, db, table_name="tools")
        created = updated = 0
        for record in builtin_tool_records():
            existing = await repo.get_by_name(record.name)
            if existing is None:
                await repo.create(record)
                created += 1
            else:
                columns = record.model_dump(
                    include={"display_name", "description", "category", "parameters", "is_builtin"}
                )
                await repo.update(existing.id, columns)
                updated += 1
    click.echo(f"Seeded built-in tools: {created} created, {updated} updated")


@cli.command()
@click.argument("agent_id")
@click.argument("input")
@click.option("--stream/--no-stream", default=False, help="Stream output")
@click.option("--api-key", envvar="AGENTFORGE_API_KEY", help="Vendor API key for this run")
@click.option("--base-url", help="Override the vendor base URL")
@click.option("--user-id", "-u", default="cli-user", help="User ID for the run context")
def run(agent_id: str, input: str, stream: bool, api_key: str | None, base_url: str | None, user_id: str):
    """
    Run a stored agent once.

    Examples:
        agentforge run 3f2c... "What is 2 + 2?"
        agentforge run 3f2c... "Tell me a story" --stream
    """
    asyncio.run(_run_async(agent_id, input, stream, api_key, base_url, user_id))


async def _run_async(
    agent_id: str,
    input: str,
    stream: bool,
    api_key: str | None,
    base_url: str | None,
    user_id: str,
):
    from agentforge.agentic.runner import ExecutionOptions, StreamChunk, run_agent, stream_agent
    from agentforge.errors import AgentForgeError
    from agentforge.services.database import DatabaseService

    options = ExecutionOptions(api_key=api_key, base_url=base_url, user_id=user_id)
    async with DatabaseService() as db:
        try:
            if stream:
                async for event in stream_agent(db, agent_id, input, options):
                    if isinstance(event, StreamChunk):
                        click.echo(event.content, nl=False)
                    else:
                        click.echo()
                        click.echo(
                            f"[execution {event.execution_id} in {event.duration_ms}ms]", err=True
                        )
            else:
                result = await run_agent(db, agent_id, input, options)
                click.echo(result.output)
                click.echo(f"[execution {result.execution_id} in {result.duration_ms}ms]", err=True)
        except AgentForgeError as e:
            click.echo(f"Error: {e.message}", err=True)
            sys.exit(1)


@cli.command()
@click.argument("agent_id")
def export(agent_id: str):
    """Print an agent definition as YAML."""
    asyncio.run(_export_async(agent_id))


async def _export_async(agent_id: str):
    from agentforge.services.agents import get_agent
    from agentforge.services.database import DatabaseService

    async with DatabaseService() as db:
        agent = await get_agent(db, agent_id)
    if agent is None:
        click.echo(f"Error: Agent '{agent_id}' not found", err=True)
        sys.exit(1)

    data = agent.model_dump(mode="json", exclude=EXPORT_EXCLUDE, exclude_none=True)
    data["knowledge_sources"] = [
        source.model_dump(mode="json", include={"type", "name", "source", "settings"}, exclude_none=True)
        for source in agent.knowledge_sources
    ]
    click.echo(yaml.safe_dump(data, sort_keys=False, allow_unicode=True))


@cli.command(name="import")
@click.argument("path", type=click.Path(exists=True))
@click.option("--user-id", "-u", help="Owner of the new agent (default: API__DEFAULT_USER_ID)")
def import_agent(path: str, user_id: str | None):
    """Create a new agent from a YAML definition."""
    asyncio.run(_import_async(path, user_id))


async def _import_async(path: str, user_id: str | None):
    from pydantic import ValidationError

    from agentforge.agentic.assembler import validate_agent_configuration
    from agentforge.errors import AgentForgeError
    from agentforge.models.entities import Agent
    from agentforge.services.agents import KnowledgeSourceInput, create_agent
    from agentforge.services.database import DatabaseService
    from agentforge.settings import settings

    data = yaml.safe_load(Path(path).read_text()) or {}
    if not isinstance(data, dict):
        click.echo("Error: agent YAML must be a mapping", err=True)
        sys.exit(1)

    sources_data = data.pop("knowledge_sources", None) or []
    for key in EXPORT_EXCLUDE:
        data.pop(key, None)
    try:
        agent = Agent.model_validate({**data, "user_id": user_id or settings.api.default_user_id})
        sources = [KnowledgeSourceInput.model_validate(s) for s in sources_data]
    except ValidationError as e:
        click.echo(f"Error: invalid agent definition: {e}", err=True)
        sys.exit(1)

    async with DatabaseService() as db:
        try:
            await validate_agent_configuration(agent, db, tool_settings=settings.tools)
            stored = await create_agent(db, agent, sources)
        except AgentForgeError as e:
            click.echo(f"Error: {e.message}", err=True)
            sys.exit(1)
    click.echo(f"Imported agent '{stored.name}' ({stored.id})")


if __name__ == "__main__":
    cli()
