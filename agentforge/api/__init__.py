"""AgentForge API module."""
