"""
Server-Sent Events framing for incremental chat delivery.

Each event goes out as `data: <json>\n\n` with compact JSON and the
`type` key first:

    data: {"type":"content","content":"There are 50"}
    data: {"type":"complete","response":"There are 50 rows in the users table."}
    data: {"type":"done"}
"""

import json
from typing import Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict


SSE_HEADERS = {
    "Content-Type": "text/event-stream",
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


class ContentEvent(BaseModel):
    type: Literal["content"] = "content"
    content: str

    model_config = ConfigDict(frozen=True)


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    response: str

    model_config = ConfigDict(frozen=True)


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    message: str

    model_config = ConfigDict(frozen=True)


class DoneEvent(BaseModel):
    type: Literal["done"] = "done"

    model_config = ConfigDict(frozen=True)


StreamEvent = Union[ContentEvent, CompleteEvent, ErrorEvent, DoneEvent]


def encode_event(event: StreamEvent) -> str:
    payload = json.dumps(event.model_dump(), separators=(",", ":"), ensure_ascii=False)
    return f"data: {payload}\n\n"


def chunk_text(text: str, size: int = 0) -> Iterator[str]:
    """
    Split an answer into content fragments.

    size <= 0 yields the whole text once. Always yields at least one
    fragment, so an empty answer still produces one (empty) event.
    """
    if size <= 0 or len(text) <= size:
        yield text
        return
    for start in range(0, len(text), size):
        yield text[start : start + size]
