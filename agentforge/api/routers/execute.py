"""Execute router - run an agent and list its past executions.

    POST /agents/{id}/execute  {"input": "...", "apiKey": "...", "baseURL": "...", "streaming": false}
        → {"executionId": "...", "output": "...", "durationMs": 412}

With ``"streaming": true`` the answer arrives as SSE (see api/streaming.py).
Failures are answered with ``{"error": message}`` and the status from
``classify_error``; the execution row has already been marked failed.
"""

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, StreamingResponse
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agentforge.agentic.runner import ExecutionOptions, run_agent, stream_agent
from agentforge.api.dependencies import get_db
from agentforge.api.streaming import execution_events
from agentforge.errors import InvalidRequestError, classify_error
from agentforge.services.agents import list_executions
from agentforge.settings import settings

router = APIRouter(prefix="/agents", tags=["execute"])


class ExecuteRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    input: str | None = None
    api_key: str | None = None
    base_url: str | None = Field(default=None, alias="baseURL")
    streaming: bool = False
    session_id: str | None = None
    conversation_id: str | None = None


class ExecuteResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    execution_id: str
    output: str
    duration_ms: int


class ExecutionInfo(BaseModel):
    """Execution history entry."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    agent_id: str
    input: str
    output: str | None = None
    status: str
    error: str | None = None
    duration_ms: int | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    completed_at: datetime | None = None


@router.post("/{agent_id}/execute")
async def execute_agent(
    agent_id: str, body: ExecuteRequest, req: Request, db=Depends(get_db)
):
    """Run an agent once and record the execution."""
    if not body.input:
        raise InvalidRequestError("Input is required")

    options = ExecutionOptions(
        api_key=body.api_key,
        base_url=body.base_url,
        user_id=req.headers.get("x-user-id"),
        session_id=body.session_id,
        conversation_id=body.conversation_id,
    )

    if body.streaming:
        return StreamingResponse(
            execution_events(stream_agent(db, agent_id, body.input, options)),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    try:
        result = await run_agent(db, agent_id, body.input, options)
    except Exception as e:
        status = classify_error(e)
        if status >= 500:
            logger.exception(f"Execution of agent {agent_id} failed")
        return JSONResponse(status_code=status, content={"error": str(e)})

    return ExecuteResponse(
        execution_id=result.execution_id,
        output=result.output,
        duration_ms=result.duration_ms,
    ).model_dump(by_alias=True)


@router.get("/{agent_id}/execute")
async def execution_history(agent_id: str, db=Depends(get_db)):
    """Most recent executions of an agent."""
    executions = await list_executions(db, agent_id, limit=settings.api.execution_history_limit)
    return [
        ExecutionInfo.model_validate(e.model_dump()).model_dump(mode="json", by_alias=True)
        for e in executions
    ]
