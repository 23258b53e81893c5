"""
Generic Repository Pattern for Entity Persistence
===================================================

One generic class performs CRUD for any Pydantic model type, so entity
specific persistence code is limited to the few queries that need joins or
transactions (see ``agentforge.services.agents``).

    repo = Repository(Agent, db, table_name="agents")
    agent = await repo.create(Agent(name="helper", model="gpt-4o", user_id="u1"))
    agents = await repo.find({"user_id": "u1"}, order_by="updated_at DESC")
    await repo.delete(agent.id)

DATABASE ACCESS
---------------
The repository never looks up a global connection. It is handed the
``DatabaseService`` explicitly; tests pass a mock.

TRANSACTIONS
------------
Write methods accept an optional ``conn`` (an asyncpg connection obtained from
``DatabaseService.transaction()``). When given, the statement runs on that
connection, inside the caller's transaction:

    async with db.transaction() as conn:
        agent = await agents.create(agent, conn=conn)
        await sources.delete_where({"agent_id": agent.id}, conn=conn)

HARD DELETE
-----------
Rows are deleted outright. Dependent rows (knowledge sources, executions)
follow through ON DELETE CASCADE foreign keys.
"""

from __future__ import annotations

from typing import Any, Generic, Type, TypeVar

from loguru import logger
from pydantic import BaseModel, ValidationError

from agentforge.services.sql_builder import (
    build_delete,
    build_insert,
    build_select,
    build_update,
    serialize_columns,
)

T = TypeVar("T", bound=BaseModel)


class Repository(Generic[T]):
    """
    Generic repository for any Pydantic model type.

    The generic parameter T enables type inference:

        repo = Repository(Tool, db)
        tools = await repo.find({...})  # list[Tool]
    """

    def __init__(self, model_class: Type[T], db, table_name: str | None = None):
        """
        Args:
            model_class: Pydantic model class used to validate returned rows
            db: DatabaseService (or a mock exposing the same coroutine methods)
            table_name: Optional explicit table name; defaults to the lowercase
                class name plus 's'
        """
        self.db = db
        self.model_class = model_class
        self.table_name = table_name or f"{model_class.__name__.lower()}s"

    async def _fetchrow(self, sql: str, params: list[Any], conn=None) -> dict | None:
        if conn is not None:
            row = await conn.fetchrow(sql, *params)
            return dict(row) if row else None
        return await self.db.fetchrow(sql, *params)

    async def _fetch(self, sql: str, params: list[Any], conn=None) -> list[dict]:
        if conn is not None:
            rows = await conn.fetch(sql, *params)
            return [dict(row) for row in rows]
        return await self.db.fetch(sql, *params)

    def _to_model(self, row: dict) -> T:
        return self.model_class.model_validate(dict(row))

    async def create(self, record: T, conn=None) -> T:
        """Insert a record and return the stored row as a model."""
        sql, params = build_insert(record, self.table_name)
        row = await self._fetchrow(sql, params, conn)
        return self._to_model(row) if row else record

    async def create_many(self, records: list[T], conn=None) -> list[T]:
        return [await self.create(record, conn=conn) for record in records]

    async def update(self, record_id: str, changes: dict[str, Any], conn=None) -> T | None:
        """
        Update selected columns of one record.

        Args:
            record_id: Primary key
            changes: Column -> new value. Nested models and dicts are stored
                as JSONB.

        Returns:
            The updated model, or None when no row has that id
        """
        sql, params = build_update(self.table_name, record_id, changes)
        row = await self._fetchrow(sql, params, conn)
        return self._to_model(row) if row else None

    async def get_by_id(self, record_id: str, conn=None) -> T | None:
        """Get a single record by primary key ID."""
        row = await self._fetchrow(
            f"SELECT * FROM {self.table_name} WHERE id = $1", [record_id], conn
        )
        return self._to_model(row) if row else None

    async def get_by_name(self, name: str, user_id: str | None = None) -> T | None:
        """
        Get a single record by name field.

        When user_id is given only that user's records match.
        """
        filters: dict[str, Any] = {"name": name}
        if user_id:
            filters["user_id"] = user_id
        results = await self.find(filters, limit=1)
        return results[0] if results else None

    async def find(
        self,
        filters: dict[str, Any],
        order_by: str = "created_at ASC",
        limit: int | None = None,
        offset: int = 0,
        conn=None,
    ) -> list[T]:
        """
        Find records matching filter criteria.

            {"agent_id": "abc", "status": "failed"}
            → WHERE agent_id = $1 AND status = $2

        Args:
            filters: Dict of field=value conditions (all must match)
            order_by: SQL ORDER BY clause
            limit: Maximum records to return
            offset: Number of records to skip

        Returns:
            List of matching model instances (empty list if none match)
        """
        sql, params = build_select(
            self.table_name, filters, order_by=order_by, limit=limit, offset=offset
        )
        rows = await self._fetch(sql, params, conn)
        return [self._to_model(row) for row in rows]

    async def find_by_ids_or_names(self, identifiers: list[str], strict: bool = True) -> list[T]:
        """
        Rows whose id or name is in ``identifiers``, in one query.

        With ``strict=False`` rows that fail model validation are logged and
        skipped instead of failing the whole lookup.
        """
        if not identifiers:
            return []
        sql = (
            f"SELECT * FROM {self.table_name} "
            f"WHERE id = ANY($1::text[]) OR name = ANY($1::text[])"
        )
        rows = await self._fetch(sql, [list(identifiers)])
        if strict:
            return [self._to_model(row) for row in rows]
        records: list[T] = []
        for row in rows:
            try:
                records.append(self._to_model(row))
            except ValidationError as e:
                logger.error(f"Skipping invalid {self.table_name} row {row.get('id')}: {e}")
        return records

    async def delete(self, record_id: str, conn=None) -> bool:
        """
        Delete a record.

        Returns:
            True if record was deleted, False if not found
        """
        sql, params = build_delete(self.table_name, record_id)
        row = await self._fetchrow(sql, params, conn)
        return row is not None

    async def delete_where(self, filters: dict[str, Any], conn=None) -> None:
        """Delete every record matching filters."""
        if not filters:
            raise ValueError("delete_where requires at least one filter")
        data = serialize_columns(filters)
        clauses = [f"{field} = ${i+1}" for i, field in enumerate(data)]
        sql = f"DELETE FROM {self.table_name} WHERE {' AND '.join(clauses)}"
        if conn is not None:
            await conn.execute(sql, *data.values())
        else:
            await self.db.execute(sql, *data.values())
