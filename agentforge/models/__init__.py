"""AgentForge data models."""

from agentforge.models.config import (
    GuardrailConfig,
    GuardrailRule,
    JsonSchemaOutput,
    MemoryConfig,
    ModelConfig,
    RuntimeSchemaOutput,
)
from agentforge.models.core import CoreModel
from agentforge.models.entities import (
    Agent,
    AgentExecution,
    KnowledgeSource,
    Team,
    TeamMember,
    Tool,
    User,
)

__all__ = [
    "CoreModel",
    "Agent",
    "AgentExecution",
    "KnowledgeSource",
    "Team",
    "TeamMember",
    "Tool",
    "User",
    "ModelConfig",
    "MemoryConfig",
    "GuardrailConfig",
    "GuardrailRule",
    "JsonSchemaOutput",
    "RuntimeSchemaOutput",
]
