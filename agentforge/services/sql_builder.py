"""SQL query builder for Pydantic models.

Generates INSERT, UPDATE, SELECT and DELETE queries from Pydantic model
instances and plain column dicts. Handles serialization and ``$n`` parameter
binding for asyncpg.
"""

import json
from typing import Any

from pydantic import BaseModel

# PostgreSQL TEXT[] columns stay Python lists; every other dict/list is JSONB
PG_ARRAY_FIELDS = {"tools", "capabilities", "handoffs"}


def serialize_columns(data: dict[str, Any]) -> dict[str, Any]:
    """Serialize JSONB values to JSON strings for asyncpg."""
    result: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(mode="json", exclude_none=True)
        if key not in PG_ARRAY_FIELDS and isinstance(value, (dict, list)):
            value = json.dumps(value, default=str)
        result[key] = value
    return result


def model_to_dict(model: BaseModel, exclude_none: bool = True) -> dict[str, Any]:
    """
    Convert Pydantic model to dict suitable for SQL insertion.

    Args:
        model: Pydantic model instance
        exclude_none: Exclude None values (default: True)

    Returns:
        Dict of field_name -> value with JSONB fields as JSON strings
    """
    # Use python mode to preserve datetime objects
    data = model.model_dump(exclude_none=exclude_none, mode="python")
    return serialize_columns(data)


def _where(filters: dict[str, Any], start: int = 1) -> tuple[list[str], list[Any]]:
    clauses = []
    params: list[Any] = []
    idx = start
    for field, value in filters.items():
        if isinstance(value, (list, tuple, set)):
            clauses.append(f"{field} = ANY(${idx})")
            params.append(list(value))
        elif value is None:
            clauses.append(f"{field} IS NULL")
            continue
        else:
            clauses.append(f"{field} = ${idx}")
            params.append(value)
        idx += 1
    return clauses, params


def build_insert(model: BaseModel, table_name: str) -> tuple[str, list[Any]]:
    """
    Build INSERT query from Pydantic model, returning the stored row.

    Args:
        model: Pydantic model instance
        table_name: Target table name

    Returns:
        Tuple of (sql_query, parameters)
    """
    data = model_to_dict(model)

    fields = list(data.keys())
    placeholders = [f"${i+1}" for i in range(len(fields))]
    values = [data[field] for field in fields]

    sql = (
        f"INSERT INTO {table_name} ({', '.join(fields)}) "
        f"VALUES ({', '.join(placeholders)}) RETURNING *"
    )
    return sql, values


def build_update(
    table_name: str, id_value: str, changes: dict[str, Any]
) -> tuple[str, list[Any]]:
    """
    Build UPDATE ... WHERE id = $1 RETURNING * from a column dict.

    ``updated_at`` is always refreshed.
    """
    data = serialize_columns(changes)
    data.pop("id", None)
    data.pop("updated_at", None)

    assignments = [f"{field} = ${i+2}" for i, field in enumerate(data)]
    assignments.append("updated_at = NOW()")
    values = [id_value, *data.values()]

    sql = f"UPDATE {table_name} SET {', '.join(assignments)} WHERE id = $1 RETURNING *"
    return sql, values


def build_select(
    table_name: str,
    filters: dict[str, Any],
    order_by: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> tuple[str, list[Any]]:
    """
    Build SELECT query with filters.

    Args:
        table_name: Source table name
        filters: Dict of field -> value filters (AND-ed together). List values
            match any element; None matches NULL.
        order_by: Optional ORDER BY clause
        limit: Optional LIMIT
        offset: Optional OFFSET

    Returns:
        Tuple of (sql_query, parameters)
    """
    where_clauses, params = _where(filters)
    param_idx = len(params) + 1

    sql = f"SELECT * FROM {table_name}"
    if where_clauses:
        sql += f" WHERE {' AND '.join(where_clauses)}"

    if order_by:
        sql += f" ORDER BY {order_by}"

    if limit is not None:
        sql += f" LIMIT ${param_idx}"
        params.append(limit)
        param_idx += 1

    if offset:
        sql += f" OFFSET ${param_idx}"
        params.append(offset)

    return sql, params


def build_delete(table_name: str, id_value: str) -> tuple[str, list[Any]]:
    """Build DELETE query. Dependent rows go with it via ON DELETE CASCADE."""
    return f"DELETE FROM {table_name} WHERE id = $1 RETURNING id", [id_value]
