"""AgentForge command line interface."""
