"""Executable tool definitions and placeholder templating."""

import re
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel, TypeAdapter

from agentforge.agentic.context import RunContext
from agentforge.agentic.schema_bridge import to_vendor_params

PLACEHOLDER_PATTERN = re.compile(r"\{\{(\w+)\}\}")

ToolHandler = Callable[[Any, RunContext], Awaitable[str]]


def render_template(template: str, values: Mapping[str, Any]) -> str:
    """Replace ``{{key}}`` with ``values[key]``; unknown keys stay verbatim."""

    def replace(match: re.Match) -> str:
        value = values.get(match.group(1))
        if value is None:
            return match.group(0)
        return str(value)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def as_plain_data(value: Any) -> Any:
    """Validated tool arguments back to JSON-compatible data."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True)
    return value


class ToolDefinition(BaseModel):
    """
    A tool the model can call.

    ``parameters`` is a runtime schema (usually a pydantic model class).
    ``execute`` receives the arguments after validation against it.
    """

    name: str
    description: str = ""
    parameters: Any
    execute: ToolHandler
    display_name: str | None = None
    category: str = "custom"
    is_builtin: bool = False

    model_config = {"arbitrary_types_allowed": True}

    def validate_arguments(self, args: Any) -> Any:
        return TypeAdapter(self.parameters).validate_python(args)

    async def invoke(self, args: Any, context: RunContext) -> str:
        """Validate raw arguments and run the handler."""
        return await self.execute(self.validate_arguments(args), context)

    def vendor_parameters(self) -> dict[str, Any]:
        return to_vendor_params(self.parameters)
