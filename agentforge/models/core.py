"""Core model base class for all AgentForge entities."""

import json
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_json_value(v: Any) -> Any:
    """Parse JSONB strings from asyncpg into Python objects."""
    if isinstance(v, str):
        try:
            return json.loads(v)
        except json.JSONDecodeError:
            return v
    return v


class CoreModel(BaseModel):
    """Base model for all AgentForge entities with system fields."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    model_config = {"from_attributes": True}

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v: Any) -> Any:
        """asyncpg returns UUID columns as uuid.UUID."""
        if v is not None and not isinstance(v, str):
            return str(v)
        return v
