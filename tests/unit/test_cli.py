"""Unit tests for the CLI commands that touch the store."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import yaml
from click.testing import CliRunner

from agentforge.agentic.runner import ExecutionResult
from agentforge.cli.main import cli
from agentforge.errors import NotFoundError
from agentforge.models.entities import KnowledgeSource
from agentforge.services.agents import AgentWithSources


@pytest.fixture
def database(mock_db):
    """Patch DatabaseService so ``async with DatabaseService()`` yields the mock."""
    mock_db.__aenter__ = AsyncMock(return_value=mock_db)
    mock_db.__aexit__ = AsyncMock(return_value=False)
    with patch("agentforge.services.database.DatabaseService", MagicMock(return_value=mock_db)):
        yield mock_db


def stored_agent() -> AgentWithSources:
    return AgentWithSources(
        id="agent-1",
        name="helper",
        model="gpt-4o",
        instructions="Be brief.",
        tools=["calculator"],
        user_id="user-1",
        knowledge_sources=[
            KnowledgeSource(agent_id="agent-1", type="url", name="docs", source="https://docs.example.com")
        ],
    )


class TestExportImport:
    def test_export_omits_row_identity(self, database):
        with patch("agentforge.services.agents.get_agent", new=AsyncMock(return_value=stored_agent())):
            result = CliRunner().invoke(cli, ["export", "agent-1"])

        assert result.exit_code == 0
        data = yaml.safe_load(result.stdout)
        assert data["name"] == "helper"
        assert data["tools"] == ["calculator"]
        assert "id" not in data
        assert "user_id" not in data
        assert data["knowledge_sources"] == [
            {"type": "url", "name": "docs", "source": "https://docs.example.com"}
        ]

    def test_export_unknown_agent(self, database):
        with patch("agentforge.services.agents.get_agent", new=AsyncMock(return_value=None)):
            result = CliRunner().invoke(cli, ["export", "nope"])
        assert result.exit_code == 1

    def test_import(self, database, tmp_path):
        path = tmp_path / "helper.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "id": "ignored",
                    "name": "helper",
                    "model": "gpt-4o",
                    "tools": ["calculator"],
                    "knowledge_sources": [
                        {"type": "url", "name": "docs", "source": "https://docs.example.com"}
                    ],
                }
            )
        )
        with patch(
            "agentforge.services.agents.create_agent",
            new=AsyncMock(return_value=stored_agent()),
        ) as create:
            result = CliRunner().invoke(cli, ["import", str(path), "--user-id", "user-7"])

        assert result.exit_code == 0
        assert "Imported agent 'helper' (agent-1)" in result.stdout
        _, agent, sources = create.call_args.args
        assert agent.user_id == "user-7"
        assert agent.id != "ignored"
        assert sources[0].name == "docs"


class TestRun:
    def test_prints_output(self, database):
        result_value = ExecutionResult(execution_id="exec-1", output="4", duration_ms=5)
        with patch("agentforge.agentic.runner.run_agent", new=AsyncMock(return_value=result_value)):
            result = CliRunner().invoke(cli, ["run", "agent-1", "2+2?"])

        assert result.exit_code == 0
        assert result.stdout.splitlines()[0] == "4"

    def test_error_exits_nonzero(self, database):
        with patch(
            "agentforge.agentic.runner.run_agent",
            new=AsyncMock(side_effect=NotFoundError("Agent not found: nope")),
        ):
            result = CliRunner().invoke(cli, ["run", "nope", "hi"])

        assert result.exit_code == 1
