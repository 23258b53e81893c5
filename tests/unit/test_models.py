"""
Unit tests for entity models and stored config structs.

Rows are given the way asyncpg returns them: JSONB columns as strings,
TEXT[] columns as lists or None.
"""

import json

import pytest
from pydantic import ValidationError

from agentforge.models.config import (
    ExpressionImplementation,
    GuardrailConfig,
    HttpImplementation,
    JsonSchemaOutput,
    ModelConfig,
    RuntimeSchemaOutput,
    parse_tool_implementation,
)
from agentforge.models.entities import Agent, AgentExecution, Tool
from agentforge.services.sql_builder import build_insert, build_select, build_update


class TestAgent:
    def test_row_parsing(self, agent_row):
        agent = Agent.model_validate({**agent_row, "tools": None, "handoffs": ["billing"]})

        assert agent.tools == []
        assert agent.handoffs == ["billing"]
        assert agent.model_settings.temperature == 0.2
        assert agent.model_settings.max_tokens == 256
        assert agent.config == {}

    def test_output_schema_from_bare_json_schema(self, agent_row):
        schema = {"type": "object", "properties": {"answer": {"type": "string"}}}
        agent = Agent.model_validate({**agent_row, "output_schema": json.dumps(schema)})

        assert isinstance(agent.output_schema, JsonSchemaOutput)
        assert agent.output_schema.json_schema == schema
        # persisted as the bare schema again
        assert agent.model_dump()["output_schema"] == schema

    def test_runtime_output_schema_is_not_persisted(self):
        agent = Agent(
            name="a", model="gpt-4o", user_id="u", output_schema=RuntimeSchemaOutput(schema_type=dict)
        )
        assert agent.model_dump()["output_schema"] is None

    def test_guardrails_accept_rule_list(self, agent_row):
        agent = Agent.model_validate(
            {**agent_row, "input_guardrails": '[{"type": "max_length", "config": {"max": 5}}]'}
        )
        assert isinstance(agent.input_guardrails, GuardrailConfig)
        assert agent.input_guardrails.rules[0].config == {"max": 5}

    def test_invalid_memory_type(self, agent_row):
        with pytest.raises(ValidationError):
            Agent.model_validate({**agent_row, "memory_type": "disk"})


class TestModelConfig:
    def test_camel_case_keys(self):
        config = ModelConfig.model_validate({"maxTokens": 50, "baseURL": "http://proxy"})
        assert config.max_tokens == 50
        assert config.base_url == "http://proxy"

    def test_temperature_bounds(self):
        with pytest.raises(ValidationError):
            ModelConfig(temperature=3)


class TestTool:
    def test_legacy_parameter_list(self):
        tool = Tool.model_validate(
            {
                "name": "lookup",
                "parameters": [
                    {"name": "q", "type": "string", "description": "Query", "required": True},
                    {"name": "limit", "type": "number"},
                ],
            }
        )
        assert tool.parameters == {
            "type": "object",
            "properties": {
                "q": {"type": "string", "description": "Query"},
                "limit": {"type": "number"},
            },
            "required": ["q"],
        }

    def test_missing_parameters_default_to_empty_object(self):
        tool = Tool.model_validate({"name": "ping", "parameters": None, "description": None})
        assert tool.parameters["properties"] == {}
        assert tool.description == ""

    def test_implementation_variants(self):
        assert parse_tool_implementation(None) is None
        assert parse_tool_implementation("a * 2") == ExpressionImplementation(expression="a * 2")
        http = parse_tool_implementation('{"kind": "http", "url": "https://x.test"}')
        assert isinstance(http, HttpImplementation)
        assert http.method == "POST"


class TestExecution:
    def test_metadata_defaults(self, execution_row):
        execution = AgentExecution.model_validate({**execution_row, "metadata": None})
        assert execution.metadata == {}
        assert execution.status == "running"


class TestSqlBuilder:
    def test_insert_serializes_jsonb_but_not_text_arrays(self):
        agent = Agent(
            id="a1",
            name="helper",
            model="gpt-4o",
            user_id="u1",
            tools=["calculator"],
            model_settings={"temperature": 0},
        )
        sql, params = build_insert(agent, "agents")
        columns = sql.split("(", 1)[1].split(")", 1)[0].split(", ")
        values = dict(zip(columns, params))

        assert sql.startswith("INSERT INTO agents (")
        assert sql.endswith("RETURNING *")
        assert values["tools"] == ["calculator"]
        assert json.loads(values["model_settings"])["temperature"] == 0

    def test_update_refreshes_updated_at(self):
        sql, params = build_update("agents", "a1", {"name": "renamed", "config": {"k": 1}})
        assert sql == (
            "UPDATE agents SET name = $2, config = $3, updated_at = NOW() "
            "WHERE id = $1 RETURNING *"
        )
        assert params == ["a1", "renamed", '{"k": 1}']

    def test_select_with_list_filter_and_limit(self):
        sql, params = build_select(
            "knowledge_sources", {"agent_id": ["a1", "a2"]}, order_by="created_at ASC", limit=5
        )
        assert sql == (
            "SELECT * FROM knowledge_sources WHERE agent_id = ANY($1) "
            "ORDER BY created_at ASC LIMIT $2"
        )
        assert params == [["a1", "a2"], 5]
