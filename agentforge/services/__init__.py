"""AgentForge services."""

from agentforge.services.database import DatabaseService
from agentforge.services.repository import Repository

__all__ = [
    "DatabaseService",
    "Repository",
]
