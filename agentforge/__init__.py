"""AgentForge - configure, store and run LLM agents over a REST API."""

__version__ = "0.1.0"

from agentforge.models.core import CoreModel
from agentforge.models.entities import Agent, AgentExecution, Tool

__all__ = ["CoreModel", "Agent", "AgentExecution", "Tool"]
