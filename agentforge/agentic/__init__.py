"""AgentForge agentic module - from stored configuration to a finished run.

Core Components:
- Schema bridge: JSON Schema to runtime types and back
- Tool resolver: built-in and stored tools to executable definitions
- Assembler: stored agent to AgentDescriptor
- Providers: vendor adapters behind one interface
- Engine: the tool-calling turn loop
- Runner: run_agent/stream_agent, which record every execution
"""

from agentforge.agentic.assembler import (
    AgentDescriptor,
    assemble_agent,
    validate_agent_configuration,
)
from agentforge.agentic.context import ChatMessage, RunContext, RunState, ToolCall
from agentforge.agentic.engine import RunResult, run, stream_run
from agentforge.agentic.providers import (
    ProviderKind,
    RunConfig,
    create_provider,
    select_provider,
)
from agentforge.agentic.runner import (
    ExecutionOptions,
    ExecutionResult,
    StreamChunk,
    StreamDone,
    run_agent,
    stream_agent,
)
from agentforge.agentic.schema_bridge import to_runtime_schema, to_vendor_params
from agentforge.agentic.tool_resolver import resolve_tools
from agentforge.agentic.tools import ToolDefinition

__all__ = [
    # Schema bridge
    "to_runtime_schema",
    "to_vendor_params",
    # Tools
    "ToolDefinition",
    "resolve_tools",
    # Assembly
    "AgentDescriptor",
    "assemble_agent",
    "validate_agent_configuration",
    # Context
    "ChatMessage",
    "RunContext",
    "RunState",
    "ToolCall",
    # Providers
    "ProviderKind",
    "RunConfig",
    "create_provider",
    "select_provider",
    # Engine
    "RunResult",
    "run",
    "stream_run",
    # Runner
    "ExecutionOptions",
    "ExecutionResult",
    "StreamChunk",
    "StreamDone",
    "run_agent",
    "stream_agent",
]
