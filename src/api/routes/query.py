"""Curriculum question answering endpoint (server-sent events)."""

from contextlib import aclosing
from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from src.api.deps import QueryEngine
from src.rag.events import encode_event

router = APIRouter()


class QueryRequest(BaseModel):
    """Question submitted by a user.

    `question` accepts any JSON value; question validation rejects anything
    that is not a non-blank string with a 400.
    """

    question: Any = None


@router.post("/query")
async def query(pipeline: QueryEngine, body: QueryRequest | None = None):
    """Answer a question as a stream of `start`, `token`, `end` / `error` events.

    Validation failures (400), no matching curriculum content (404) and
    configuration problems (500) are returned as JSON before any stream opens.
    """
    stream = await pipeline.answer(body.question if body else None)

    async def generate():
        async with aclosing(stream.__aiter__()) as events:
            async for event in events:
                yield encode_event(event)

    return StreamingResponse(
        generate(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )
