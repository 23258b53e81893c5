"""Persisted AgentForge entities.

One model per table in ``agentforge/sql/install.sql``. JSONB columns come back
from asyncpg as strings and are parsed by the ``before`` validators; TEXT[]
columns arrive as lists (or NULL).
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import Field, field_serializer, field_validator

from agentforge.models.config import (
    GuardrailConfig,
    JsonSchemaOutput,
    MemoryConfig,
    ModelConfig,
    OutputSchemaSpec,
    ToolImplementation,
    coerce_output_schema,
    parse_tool_implementation,
)
from agentforge.models.core import CoreModel, parse_json_value


AgentStatus = Literal["draft", "active", "archived"]
ExecutionStatus = Literal["running", "completed", "failed"]
MemoryType = Literal["in-memory", "redis", "postgres"]
KnowledgeSourceType = Literal["document", "url", "api"]


class User(CoreModel):
    email: str
    name: str | None = None


class Team(CoreModel):
    name: str
    description: str | None = None


class TeamMember(CoreModel):
    user_id: str
    team_id: str
    role: str = "member"


class Agent(CoreModel):
    """Stored agent configuration."""

    name: str
    description: str | None = None
    model: str
    instructions: str = ""
    system_prompt: str | None = None
    model_settings: ModelConfig | None = None
    tools: list[str] = Field(default_factory=list)
    capabilities: list[str] = Field(default_factory=list)
    handoffs: list[str] = Field(default_factory=list)
    output_schema: OutputSchemaSpec | None = None
    memory_type: MemoryType = "in-memory"
    memory_config: MemoryConfig | None = None
    input_guardrails: GuardrailConfig | None = None
    output_guardrails: GuardrailConfig | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    status: AgentStatus = "draft"
    user_id: str
    team_id: str | None = None

    model_config = {"from_attributes": True, "protected_namespaces": ()}

    @field_validator(
        "model_settings",
        "memory_config",
        "input_guardrails",
        "output_guardrails",
        mode="before",
    )
    @classmethod
    def parse_jsonb(cls, v: Any) -> Any:
        return parse_json_value(v)

    @field_validator("config", mode="before")
    @classmethod
    def default_config(cls, v: Any) -> Any:
        return parse_json_value(v) or {}

    @field_validator("output_schema", mode="before")
    @classmethod
    def parse_output_schema(cls, v: Any) -> Any:
        return coerce_output_schema(v)

    @field_serializer("output_schema")
    def serialize_output_schema(self, value: Any) -> Any:
        # Only the JSON variant is persistable; it is stored as the bare schema
        if isinstance(value, JsonSchemaOutput):
            return value.json_schema
        return None

    @field_validator("tools", "capabilities", "handoffs", mode="before")
    @classmethod
    def parse_text_array(cls, v: Any) -> Any:
        if v is None:
            return []
        return parse_json_value(v)

    @field_validator("instructions", mode="before")
    @classmethod
    def default_instructions(cls, v: Any) -> Any:
        return v or ""

    @field_validator("tools")
    @classmethod
    def tools_unique(cls, v: list[str]) -> list[str]:
        duplicates = sorted({t for t in v if v.count(t) > 1})
        if duplicates:
            raise ValueError(f"duplicate tool entries: {', '.join(duplicates)}")
        return v


def parameters_from_descriptors(params: list[dict[str, Any]]) -> dict[str, Any]:
    """Convert the legacy list-of-parameter form into a JSON Schema object.

    [{"name": "q", "type": "string", "description": "...", "required": true}]
    """
    properties: dict[str, Any] = {}
    required: list[str] = []
    for param in params:
        name = param.get("name")
        if not name:
            continue
        prop: dict[str, Any] = {"type": param.get("type", "string")}
        if param.get("description"):
            prop["description"] = param["description"]
        if param.get("enum"):
            prop["enum"] = param["enum"]
        properties[name] = prop
        if param.get("required"):
            required.append(name)
    return {"type": "object", "properties": properties, "required": required}


class Tool(CoreModel):
    """Tool registry entry. Built-in rows mirror the in-process registry."""

    name: str
    display_name: str | None = None
    description: str = ""
    category: str = "custom"
    parameters: dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}, "required": []}
    )
    output_schema: dict[str, Any] | None = None
    implementation: ToolImplementation | None = None
    is_builtin: bool = False

    @field_validator("parameters", mode="before")
    @classmethod
    def parse_parameters(cls, v: Any) -> Any:
        v = parse_json_value(v)
        if v is None:
            return {"type": "object", "properties": {}, "required": []}
        if isinstance(v, list):
            return parameters_from_descriptors(v)
        return v

    @field_validator("output_schema", mode="before")
    @classmethod
    def parse_output_schema(cls, v: Any) -> Any:
        return parse_json_value(v)

    @field_validator("implementation", mode="before")
    @classmethod
    def parse_implementation(cls, v: Any) -> Any:
        return parse_tool_implementation(v)

    @field_validator("description", mode="before")
    @classmethod
    def default_description(cls, v: Any) -> Any:
        return v or ""


class KnowledgeSource(CoreModel):
    agent_id: str
    type: KnowledgeSourceType
    name: str
    source: str
    settings: dict[str, Any] | None = None

    @field_validator("settings", mode="before")
    @classmethod
    def parse_jsonb(cls, v: Any) -> Any:
        return parse_json_value(v)


class AgentExecution(CoreModel):
    """One dispatch of an agent. Created running, updated exactly once."""

    agent_id: str
    input: str
    output: str | None = None
    status: ExecutionStatus = "running"
    error: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    trace_id: str | None = None
    run_id: str | None = None
    completed_at: datetime | None = None

    @field_validator("metadata", mode="before")
    @classmethod
    def parse_jsonb(cls, v: Any) -> Any:
        v = parse_json_value(v)
        return v if v is not None else {}
