"""Server-sent event payloads for the answer stream."""

from typing import Literal

from pydantic import BaseModel


class StartEvent(BaseModel):
    type: Literal["start"] = "start"
    sources: list[str]


class TokenEvent(BaseModel):
    type: Literal["token"] = "token"
    content: str


class EndEvent(BaseModel):
    type: Literal["end"] = "end"
    sources: list[str]


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error: str


AnswerEvent = StartEvent | TokenEvent | EndEvent | ErrorEvent


def encode_event(event: AnswerEvent) -> str:
    """Render an event as one SSE frame: ``data: <json>\\n\\n``."""
    return f"data: {event.model_dump_json()}\n\n"
