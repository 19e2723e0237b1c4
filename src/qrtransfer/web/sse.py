"""Server-sent events framing for the subscriber stream."""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import aclosing

from pydantic import BaseModel

SSE_MEDIA_TYPE = "text/event-stream"
SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable proxy buffering (nginx)
}


def format_event(event: BaseModel) -> str:
    """Frame one event as an SSE message with a JSON data line."""
    return f"data: {event.model_dump_json(by_alias=True)}\n\n"


async def encode_events(events: AsyncGenerator[BaseModel]) -> AsyncIterator[str]:
    async with aclosing(events) as stream:
        async for event in stream:
            yield format_event(event)
