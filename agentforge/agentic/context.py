"""
Run Context and Turn State
==========================

RunContext carries the WHO (user, session, conversation) for one dispatch.
It is built by the execution dispatcher, passed to the instruction renderer
and to every tool call, and discarded when the run ends. It is never stored
globally.

RunState is the conversation the turn engine accumulates: the initial user
message, assistant turns (with tool calls) and tool results.

TEMPLATE VARIABLES
------------------
``{{key}}`` placeholders in agent instructions resolve against
``RunContext.template_vars()``: each context field under both its snake_case
and camelCase name (``user_id`` / ``userId``) plus every metadata key.
"""

from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class RunContext(BaseModel):
    """Per-run identity and metadata passed to instructions and tools."""

    user_id: str | None = None
    agent_id: str | None = None
    session_id: str | None = None
    conversation_id: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def template_vars(self) -> dict[str, Any]:
        values: dict[str, Any] = dict(self.metadata)
        for name in ("user_id", "agent_id", "session_id", "conversation_id"):
            value = getattr(self, name)
            if value is not None:
                values[name] = value
                values[to_camel(name)] = value
        return values


class ToolCall(BaseModel):
    """A tool invocation requested by the model. ``arguments`` is a JSON string."""

    id: str
    name: str
    arguments: str = "{}"


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant", "tool"]
    content: str | None = None
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None


class RunState(BaseModel):
    run_id: str = Field(default_factory=lambda: str(uuid4()))
    trace_id: str = Field(default_factory=lambda: str(uuid4()))
    messages: list[ChatMessage] = Field(default_factory=list)
    context: RunContext = Field(default_factory=RunContext)
    turn: int = 0


class CompletionResult(BaseModel):
    """One provider response: text, tool calls, or both."""

    content: str | None = None
    tool_calls: list[ToolCall] = Field(default_factory=list)
