"""Unit tests for the tools router."""

import json


def tool_row(**overrides) -> dict:
    row = {
        "id": "tool-1",
        "name": "greeter",
        "display_name": "Greeter",
        "description": "Greets someone",
        "category": "custom",
        "parameters": '{"type": "object", "properties": {"who": {"type": "string"}}, "required": ["who"]}',
        "output_schema": None,
        "implementation": None,
        "is_builtin": False,
    }
    row.update(overrides)
    return row


class TestListAndGet:
    def test_list_grouped_by_category(self, client, mock_db):
        mock_db.fetch.return_value = [
            tool_row(id="t-calc", name="calculator", category="utility", is_builtin=True),
            tool_row(),
        ]

        response = client.get("/api/v1/tools")

        assert response.status_code == 200
        assert [t["name"] for t in response.json()] == ["calculator", "greeter"]
        sql = mock_db.fetch.call_args.args[0]
        assert sql == "SELECT * FROM tools ORDER BY category ASC, display_name ASC"

    def test_get(self, client, mock_db):
        mock_db.fetchrow.return_value = tool_row()

        response = client.get("/api/v1/tools/tool-1")

        assert response.status_code == 200
        assert response.json()["parameters"]["required"] == ["who"]

    def test_get_unknown(self, client, mock_db):
        mock_db.fetchrow.return_value = None
        response = client.get("/api/v1/tools/nope")
        assert response.status_code == 404
        assert response.json() == {"error": "Tool not found"}


class TestCreateTool:
    def test_legacy_parameter_list(self, client, mock_db):
        mock_db.fetchrow.side_effect = lambda sql, *params: tool_row()

        response = client.post(
            "/api/v1/tools",
            json={
                "name": "greeter",
                "displayName": "Greeter",
                "parameters": [{"name": "who", "type": "string", "required": True}],
                "implementation": {"kind": "template", "template": "Hello {{who}}"},
            },
        )

        assert response.status_code == 201
        sql, *params = mock_db.fetchrow.call_args.args
        assert sql.startswith("INSERT INTO tools")
        columns = sql.split("(", 1)[1].split(")", 1)[0].split(", ")
        values = dict(zip(columns, params))
        assert json.loads(values["parameters"]) == {
            "type": "object",
            "properties": {"who": {"type": "string"}},
            "required": ["who"],
        }
        assert json.loads(values["implementation"])["kind"] == "template"
        assert values["is_builtin"] is False

    def test_builtin_name_is_reserved(self, client, mock_db):
        response = client.post("/api/v1/tools", json={"name": "calculator"})

        assert response.status_code == 400
        assert response.json() == {"error": "Tool name 'calculator' is reserved for a built-in tool"}
        mock_db.fetchrow.assert_not_called()

    def test_invalid_implementation(self, client):
        response = client.post(
            "/api/v1/tools", json={"name": "caller", "implementation": {"kind": "http"}}
        )
        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid tool definition")


class TestBuiltinProtection:
    def test_update_builtin(self, client, mock_db):
        mock_db.fetchrow.return_value = tool_row(name="calculator", is_builtin=True)

        response = client.put("/api/v1/tools/tool-1", json={"description": "changed"})

        assert response.status_code == 403
        assert response.json() == {"error": "Cannot modify built-in tools"}
        assert mock_db.fetchrow.call_count == 1

    def test_delete_builtin(self, client, mock_db):
        mock_db.fetchrow.return_value = tool_row(name="calculator", is_builtin=True)

        response = client.delete("/api/v1/tools/tool-1")

        assert response.status_code == 403
        assert response.json() == {"error": "Cannot delete built-in tools"}
        assert mock_db.fetchrow.call_count == 1


class TestUpdateAndDelete:
    def test_update_custom(self, client, mock_db):
        mock_db.fetchrow.side_effect = [tool_row(), tool_row(description="Says hello")]

        response = client.put("/api/v1/tools/tool-1", json={"description": "Says hello"})

        assert response.status_code == 200
        assert response.json()["description"] == "Says hello"
        sql, *params = mock_db.fetchrow.call_args.args
        assert sql.startswith("UPDATE tools SET description = $2, updated_at = NOW()")
        assert params == ["tool-1", "Says hello"]

    def test_rename_to_builtin(self, client, mock_db):
        mock_db.fetchrow.return_value = tool_row()
        response = client.put("/api/v1/tools/tool-1", json={"name": "webSearch"})
        assert response.status_code == 400

    def test_delete_custom(self, client, mock_db):
        mock_db.fetchrow.side_effect = [tool_row(), {"id": "tool-1"}]

        response = client.delete("/api/v1/tools/tool-1")

        assert response.status_code == 200
        assert response.json() == {"success": True}
