"""Versioned configuration structs stored on agent and tool records.

Each struct is validated when the record is written, so a run never has to
guess at the shape of a stored config. Composition is defaults first, stored
values on top (see ``agentforge.agentic.assembler.resolve_model_config``).
"""

import json
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, model_validator


DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2000


class ModelConfig(BaseModel):
    """Model parameters for one agent. Unknown keys are kept as provider extras."""

    version: int = 1
    name: str | None = None
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0, le=2)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    provider: str | None = None
    base_url: str | None = None

    model_config = {"extra": "allow"}

    @model_validator(mode="before")
    @classmethod
    def accept_camel_case(cls, data: Any) -> Any:
        """Configs written by older clients use maxTokens/baseURL."""
        if isinstance(data, dict):
            data = dict(data)
            if "maxTokens" in data and "max_tokens" not in data:
                data["max_tokens"] = data.pop("maxTokens")
            for key in ("baseURL", "baseUrl"):
                if key in data and "base_url" not in data:
                    data["base_url"] = data.pop(key)
        return data


class MemoryConfig(BaseModel):
    """Conversation memory descriptor. Persisted and carried, not executed."""

    version: int = 1
    type: Literal["in-memory", "redis", "postgres"] = "in-memory"
    config: dict[str, Any] = Field(default_factory=dict)


class GuardrailRule(BaseModel):
    type: str
    config: dict[str, Any] = Field(default_factory=dict)


class GuardrailConfig(BaseModel):
    """Ordered guardrail rules for one stage (input or output)."""

    version: int = 1
    rules: list[GuardrailRule] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def wrap_rule_list(cls, data: Any) -> Any:
        if isinstance(data, list):
            return {"rules": data}
        return data


# -----------------------------------------------------------------------------
# Output schema: JSON description (persisted) or runtime type (in-process only)
# -----------------------------------------------------------------------------


class JsonSchemaOutput(BaseModel):
    kind: Literal["json_schema"] = "json_schema"
    json_schema: dict[str, Any]


class RuntimeSchemaOutput(BaseModel):
    """Output constraint given directly as a Python type, e.g. a pydantic model."""

    kind: Literal["runtime"] = "runtime"
    schema_type: Any

    model_config = {"arbitrary_types_allowed": True}


OutputSchemaSpec = Annotated[
    Union[JsonSchemaOutput, RuntimeSchemaOutput], Field(discriminator="kind")
]


def coerce_output_schema(value: Any) -> Any:
    """Read a stored output schema, accepting a bare JSON schema as the json_schema variant."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            return None
    if isinstance(value, dict) and not value:
        return None
    if isinstance(value, dict) and "kind" not in value:
        return {"kind": "json_schema", "json_schema": value}
    return value


# -----------------------------------------------------------------------------
# Custom tool behaviour: a closed set of variants
# -----------------------------------------------------------------------------


class EchoImplementation(BaseModel):
    kind: Literal["echo"] = "echo"


class TemplateImplementation(BaseModel):
    """Render ``{{arg}}`` placeholders from the call arguments."""

    kind: Literal["template"] = "template"
    template: str


class HttpImplementation(BaseModel):
    """Forward the call arguments to a fixed URL."""

    kind: Literal["http"] = "http"
    url: str
    method: Literal["GET", "POST"] = "POST"
    headers: dict[str, str] = Field(default_factory=dict)


class ExpressionImplementation(BaseModel):
    """Sandboxed expression over the call arguments."""

    kind: Literal["expression"] = "expression"
    expression: str


ToolImplementation = Annotated[
    Union[
        EchoImplementation,
        TemplateImplementation,
        HttpImplementation,
        ExpressionImplementation,
    ],
    Field(discriminator="kind"),
]

_implementation_adapter = TypeAdapter(ToolImplementation)


def parse_tool_implementation(value: Any) -> Any:
    """Parse the stored implementation column.

    JSON objects are validated against the tagged variants. Any other
    non-empty string is treated as an expression body.
    """
    if value is None or value == "":
        return None
    if isinstance(value, BaseModel):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
        except json.JSONDecodeError:
            return ExpressionImplementation(expression=value)
        if not isinstance(decoded, dict):
            return ExpressionImplementation(expression=value)
        value = decoded
    return _implementation_adapter.validate_python(value)

