"""Request-scoped dependencies shared by the routers."""

from fastapi import Header, Request

from agentforge.services.database import DatabaseService
from agentforge.settings import settings


def get_db(request: Request) -> DatabaseService:
    """The DatabaseService owned by the application lifespan."""
    return request.app.state.db


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Owner of the request: ``X-User-Id`` header, else the configured default user."""
    return x_user_id or settings.api.default_user_id
