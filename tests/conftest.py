"""
Pytest configuration and shared fixtures for agentforge tests.

Test Organization:
- tests/unit/        - Mock-only tests, no external dependencies
- tests/integration/ - Tests requiring PostgreSQL
"""

import pytest


@pytest.fixture
def agent_row() -> dict:
    """A stored agent as asyncpg returns it (JSONB columns as strings)."""
    return {
        "id": "agent-1",
        "name": "helper",
        "description": "Answers questions",
        "model": "gpt-4o",
        "instructions": "You help {{userId}}.",
        "system_prompt": None,
        "model_settings": '{"temperature": 0.2, "max_tokens": 256}',
        "tools": [],
        "capabilities": [],
        "handoffs": [],
        "output_schema": None,
        "memory_type": "in-memory",
        "memory_config": None,
        "input_guardrails": None,
        "output_guardrails": None,
        "config": "{}",
        "status": "active",
        "user_id": "user-1",
        "team_id": None,
    }


@pytest.fixture
def execution_row() -> dict:
    return {
        "id": "exec-1",
        "agent_id": "agent-1",
        "input": "hi",
        "status": "running",
        "metadata": "{}",
    }
