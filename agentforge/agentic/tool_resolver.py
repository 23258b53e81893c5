"""
Tool Resolver - Turn an agent's tool identifiers into executable tools
=======================================================================

RESOLUTION FLOW
---------------

1. Identifiers are deduplicated, keeping the first occurrence.
2. Each identifier that names a built-in resolves to the built-in.
3. Everything else is fetched from the ``tools`` table in ONE query, matching
   either ``id`` or ``name``.
4. A returned row whose name is a built-in still yields the built-in.
5. Remaining rows become custom tools.

Identifiers that match nothing are logged and skipped; resolution never
raises for them. A list made only of built-ins never touches the database.

CUSTOM TOOL BEHAVIOUR
---------------------
A row's ``implementation`` is one of a closed set of variants:

    echo        reply "Tool <name> called with args: <json>"
    template    render {{arg}} placeholders from the call arguments
    http        send the arguments to a configured URL
    expression  evaluate a restricted expression over the arguments

Stored implementations only take effect when ``TOOLS__ALLOW_CUSTOM_CODE`` is
enabled. Without it (or without an implementation) every custom tool is an
echo tool.
"""

import json
from typing import Any

import httpx
from loguru import logger

from agentforge.agentic.builtin_tools import BUILTIN_TOOLS
from agentforge.agentic.context import RunContext
from agentforge.agentic.expressions import evaluate
from agentforge.agentic.schema_bridge import to_runtime_schema
from agentforge.agentic.tools import (
    ToolDefinition,
    ToolHandler,
    as_plain_data,
    render_template,
)
from agentforge.models.config import (
    EchoImplementation,
    ExpressionImplementation,
    HttpImplementation,
    TemplateImplementation,
)
from agentforge.models.entities import Tool
from agentforge.services.repository import Repository
from agentforge.settings import ToolSettings, settings


def _echo_handler(name: str) -> ToolHandler:
    async def execute(args: Any, context: RunContext) -> str:
        return f"Tool {name} called with args: {json.dumps(as_plain_data(args))}"

    return execute


def _template_handler(impl: TemplateImplementation) -> ToolHandler:
    async def execute(args: Any, context: RunContext) -> str:
        values = as_plain_data(args)
        if not isinstance(values, dict):
            values = {"input": values}
        return render_template(impl.template, {**context.template_vars(), **values})

    return execute


def _http_handler(impl: HttpImplementation, timeout: float) -> ToolHandler:
    async def execute(args: Any, context: RunContext) -> str:
        payload = as_plain_data(args)
        async with httpx.AsyncClient(timeout=timeout) as client:
            if impl.method == "GET":
                params = payload if isinstance(payload, dict) else {"input": payload}
                response = await client.get(impl.url, params=params, headers=impl.headers)
            else:
                response = await client.post(impl.url, json=payload, headers=impl.headers)
        data = response.text
        suffix = "..." if len(data) > 500 else ""
        return f"Response ({response.status_code}): {data[:500]}{suffix}"

    return execute


def _expression_handler(impl: ExpressionImplementation) -> ToolHandler:
    async def execute(args: Any, context: RunContext) -> str:
        values = as_plain_data(args)
        if not isinstance(values, dict):
            values = {"input": values}
        result = evaluate(impl.expression, values)
        if isinstance(result, (dict, list)):
            return json.dumps(result)
        return str(result)

    return execute


def build_handler(record: Tool, tool_settings: ToolSettings) -> ToolHandler:
    """Pick the handler for a custom tool row."""
    impl = record.implementation
    if impl is None or isinstance(impl, EchoImplementation):
        return _echo_handler(record.name)

    if not tool_settings.allow_custom_code:
        logger.debug(
            f"Tool '{record.name}' has a {impl.kind} implementation but custom code is "
            "disabled; using echo handler"
        )
        return _echo_handler(record.name)

    if isinstance(impl, TemplateImplementation):
        return _template_handler(impl)
    if isinstance(impl, HttpImplementation):
        return _http_handler(impl, tool_settings.http_timeout)
    if isinstance(impl, ExpressionImplementation):
        return _expression_handler(impl)
    raise ValueError(f"Unsupported implementation kind: {impl.kind}")


def create_custom_tool(record: Tool, tool_settings: ToolSettings | None = None) -> ToolDefinition:
    """Build a ToolDefinition from a ``tools`` row."""
    tool_settings = tool_settings or settings.tools
    return ToolDefinition(
        name=record.name,
        display_name=record.display_name,
        description=record.description or record.display_name or record.name,
        category=record.category,
        parameters=to_runtime_schema(record.parameters, f"{record.name}_params"),
        execute=build_handler(record, tool_settings),
        is_builtin=False,
    )


async def resolve_tools(
    identifiers: list[str],
    db=None,
    *,
    tool_settings: ToolSettings | None = None,
) -> list[ToolDefinition]:
    """
    Resolve tool identifiers (ids or names) to executable tools.

    Args:
        identifiers: Tool ids or canonical names, possibly with duplicates
        db: DatabaseService used for non-built-in identifiers
        tool_settings: Overrides ``settings.tools`` (custom code flag)

    Returns:
        Tools in first-resolution order, unique by canonical name
    """
    unique = list(dict.fromkeys(i for i in identifiers if i))
    resolved: dict[str, ToolDefinition] = {}
    pending: list[str] = []

    for identifier in unique:
        builtin = BUILTIN_TOOLS.get(identifier)
        if builtin is not None:
            resolved.setdefault(builtin.name, builtin)
        else:
            pending.append(identifier)

    if not pending:
        return list(resolved.values())

    if db is None:
        logger.warning(f"No database available to resolve tools: {pending}")
        return list(resolved.values())

    repo = Repository(Tool, db, table_name="tools")
    records = await repo.find_by_ids_or_names(pending, strict=False)
    matched: set[str] = set()

    for record in records:
        matched.update({record.id, record.name})
        if record.name in resolved:
            continue
        builtin = BUILTIN_TOOLS.get(record.name)
        if builtin is not None:
            resolved[builtin.name] = builtin
            continue
        try:
            resolved[record.name] = create_custom_tool(record, tool_settings)
        except Exception as e:
            logger.error(f"Failed to load tool '{record.name}': {e}")

    missing = [identifier for identifier in pending if identifier not in matched]
    if missing:
        logger.warning(f"Tools not found: {missing}")

    return list(resolved.values())
