"""AgentForge FastAPI Server.

Mounts under /api/v1:
- /agents - Agent CRUD
- /agents/{id}/execute - Run an agent, list its executions
- /tools - Tool registry CRUD

Architecture:
```
main.py (FastAPI app)
    ├── routers/
    │   ├── agents.py   - Agent configuration
    │   ├── execute.py  - Execution dispatch (JSON or SSE)
    │   └── tools.py    - Tool registry
    │
    └── app.state.db    - DatabaseService opened/closed by the lifespan
```
"""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from agentforge import __version__
from agentforge.api.routers.agents import router as agents_router
from agentforge.api.routers.execute import router as execute_router
from agentforge.api.routers.tools import router as tools_router
from agentforge.errors import AgentForgeError
from agentforge.services.database import DatabaseService


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    db: DatabaseService = app.state.db
    await db.connect()

    yield

    await db.disconnect()


async def agentforge_error_handler(request: Request, exc: AgentForgeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    )
    return JSONResponse(status_code=400, content={"error": f"Invalid request: {details}"})


def create_app(db: DatabaseService | None = None) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        db: Store to serve from; a DatabaseService on the configured
            connection string when omitted
    """
    app = FastAPI(
        title="AgentForge API",
        version=__version__,
        description="Configure, store and run LLM agents",
        lifespan=lifespan,
    )
    app.state.db = db or DatabaseService()

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(AgentForgeError, agentforge_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    # Include routers with /api/v1 prefix
    app.include_router(agents_router, prefix="/api/v1")
    app.include_router(execute_router, prefix="/api/v1")
    app.include_router(tools_router, prefix="/api/v1")

    # Health check
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    # Root info
    @app.get("/")
    async def root() -> dict[str, Any]:
        """API information endpoint."""
        return {
            "name": "AgentForge API",
            "version": __version__,
            "endpoints": {
                "health": "/health",
                "agents": "/api/v1/agents",
                "execute": "/api/v1/agents/{id}/execute",
                "tools": "/api/v1/tools",
                "docs": "/docs",
            },
        }

    return app


# Create default app instance
app = create_app()
