"""SSE framing for streamed executions.

    data: {"content": "Hello "}

    data: {"content": "world"}

    data: {"done": true, "executionId": "...", "durationMs": 412}

    data: [DONE]

A failure after the stream has started is sent as one ``{"error": ...}``
frame followed by ``[DONE]``; the HTTP status is already 200 by then.
"""

import json
from typing import Any, AsyncIterator

from loguru import logger

from agentforge.agentic.runner import StreamChunk, StreamDone


def format_sse(data: dict[str, Any]) -> str:
    return f"data: {json.dumps(data)}\n\n"


def format_done() -> str:
    return "data: [DONE]\n\n"


async def execution_events(events: AsyncIterator[StreamChunk | StreamDone]) -> AsyncIterator[str]:
    """Turn dispatcher events into SSE frames."""
    try:
        async for event in events:
            if isinstance(event, StreamChunk):
                yield format_sse({"content": event.content})
            else:
                yield format_sse(
                    {
                        "done": True,
                        "executionId": event.execution_id,
                        "durationMs": event.duration_ms,
                    }
                )
    except Exception as e:
        logger.error(f"Streaming execution failed: {e}")
        yield format_sse({"error": str(e)})
    yield format_done()
