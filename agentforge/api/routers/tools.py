"""Tools router - list, retrieve, create, update and delete registry tools.

Built-in tool rows (``is_builtin``) mirror the in-process registry and are
read-only here: PUT and DELETE answer 403 and change nothing.
"""

from typing import Any

from fastapi import APIRouter, Depends
from loguru import logger
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from agentforge.agentic.builtin_tools import BUILTIN_TOOLS
from agentforge.api.dependencies import get_db
from agentforge.errors import BuiltinToolError, InvalidRequestError, NotFoundError
from agentforge.models.entities import Tool
from agentforge.services.repository import Repository

router = APIRouter(prefix="/tools", tags=["tools"])


class ToolFields(BaseModel):
    """Writable tool fields. ``parameters`` may be JSON Schema or the legacy list form."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str | None = None
    display_name: str | None = None
    description: str | None = None
    category: str | None = None
    parameters: dict[str, Any] | list[dict[str, Any]] | None = None
    output_schema: dict[str, Any] | None = None
    implementation: dict[str, Any] | str | None = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class DeleteResponse(BaseModel):
    success: bool = True


def _tools(db) -> Repository[Tool]:
    return Repository(Tool, db, table_name="tools")


def _validated_tool(data: dict[str, Any]) -> Tool:
    try:
        return Tool.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestError(f"Invalid tool definition: {e}") from e


async def _existing_custom_tool(db, tool_id: str, action: str) -> Tool:
    tool = await _tools(db).get_by_id(tool_id)
    if tool is None:
        raise NotFoundError("Tool not found")
    if tool.is_builtin:
        raise BuiltinToolError(f"Cannot {action} built-in tools")
    return tool


@router.get("", response_model=list[Tool])
async def list_tools(db=Depends(get_db)):
    """All registry tools, grouped by category."""
    return await _tools(db).find({}, order_by="category ASC, display_name ASC")


@router.post("", response_model=Tool, status_code=201)
async def create_tool(body: ToolFields, db=Depends(get_db)):
    """Register a custom tool."""
    tool = _validated_tool({**body.changes(), "is_builtin": False})
    if tool.name in BUILTIN_TOOLS:
        raise InvalidRequestError(f"Tool name '{tool.name}' is reserved for a built-in tool")
    created = await _tools(db).create(tool)
    logger.info(f"Created tool '{created.name}' ({created.id})")
    return created


@router.get("/{tool_id}", response_model=Tool)
async def get_tool(tool_id: str, db=Depends(get_db)):
    tool = await _tools(db).get_by_id(tool_id)
    if tool is None:
        raise NotFoundError("Tool not found")
    return tool


@router.put("/{tool_id}", response_model=Tool)
async def update_tool(tool_id: str, body: ToolFields, db=Depends(get_db)):
    existing = await _existing_custom_tool(db, tool_id, "modify")
    changes = body.changes()
    merged = _validated_tool({**existing.model_dump(), **changes})
    if merged.name in BUILTIN_TOOLS:
        raise InvalidRequestError(f"Tool name '{merged.name}' is reserved for a built-in tool")
    if not changes:
        return existing

    columns = {name: getattr(merged, name) for name in changes}
    updated = await _tools(db).update(tool_id, columns)
    if updated is None:
        raise NotFoundError("Tool not found")
    return updated


@router.delete("/{tool_id}", response_model=DeleteResponse)
async def delete_tool(tool_id: str, db=Depends(get_db)):
    await _existing_custom_tool(db, tool_id, "delete")
    await _tools(db).delete(tool_id)
    return DeleteResponse()
