"""
Pytest configuration for integration tests.

Integration tests need a real PostgreSQL database and are skipped unless
POSTGRES__CONNECTION_STRING is set. The schema is installed (idempotently)
before each test; rows created by a test are owned by TEST_USER and removed
afterwards.

Usage:
    POSTGRES__CONNECTION_STRING="postgresql://..." pytest tests/integration/
"""

import os

import pytest

TEST_USER = "integration-test-user"

requires_database = pytest.mark.skipif(
    not os.getenv("POSTGRES__CONNECTION_STRING"),
    reason="POSTGRES__CONNECTION_STRING not set",
)


@pytest.fixture
async def db():
    """Provide a connected database service with the schema installed."""
    from agentforge.services.database import DatabaseService

    service = DatabaseService(os.environ["POSTGRES__CONNECTION_STRING"])
    await service.connect()
    await service.install_schema()

    yield service

    # Agents, sources and executions follow the user by cascade
    await service.execute("DELETE FROM users WHERE id = $1", TEST_USER)
    await service.execute("DELETE FROM tools WHERE name LIKE 'it_%'")
    await service.disconnect()


def pytest_collection_modifyitems(items):
    """Automatically add 'integration' marker to all tests in /integration/."""
    for item in items:
        if "/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
            item.add_marker(requires_database)
