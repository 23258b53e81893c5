"""AgentForge API routers."""
