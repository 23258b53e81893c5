"""
Pytest configuration and fixtures for agentforge unit tests.

Unit tests MUST be isolated from external dependencies:
- No database connections
- No LLM API calls
- No external services

The database is a mock passed explicitly wherever a DatabaseService is
expected; vendor HTTP goes through httpx.MockTransport.
"""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest


def _mock_connection() -> MagicMock:
    conn = MagicMock()
    conn.execute = AsyncMock(return_value="OK")
    conn.fetch = AsyncMock(return_value=[])
    conn.fetchrow = AsyncMock(return_value=None)
    return conn


@pytest.fixture
def mock_db():
    """
    Mock DatabaseService.

    ``transaction()`` yields ``mock_db.conn`` so tests can inspect the
    statements issued inside a transaction.
    """
    db = MagicMock()
    db.connect = AsyncMock()
    db.disconnect = AsyncMock()
    db.execute = AsyncMock(return_value="OK")
    db.fetch = AsyncMock(return_value=[])
    db.fetchrow = AsyncMock(return_value=None)
    db.fetchval = AsyncMock(return_value=None)
    db.conn = _mock_connection()

    @asynccontextmanager
    async def transaction():
        yield db.conn

    db.transaction = transaction
    return db


@pytest.fixture
def client(mock_db):
    """API test client serving from the mock database."""
    from fastapi.testclient import TestClient

    from agentforge.api.main import create_app

    with TestClient(create_app(db=mock_db)) as test_client:
        yield test_client


def pytest_collection_modifyitems(items):
    """Automatically add 'unit' marker to all tests in /unit/."""
    for item in items:
        if "/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
